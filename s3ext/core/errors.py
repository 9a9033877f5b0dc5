"""
Error Handling for the S3 extension layer

Every failure leaves this package as a subclass of S3ExtError so callers
can branch on the kind of failure ("object not found" vs "disk full" vs
"network down") instead of parsing messages.
"""
import asyncio
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError


class ErrorCode(str, Enum):
    """Stable error codes for programmatic handling."""

    # Local I/O errors (IO_xxx)
    IO_OPEN_FAILED = "IO_001"
    IO_READ_FAILED = "IO_002"
    IO_WRITE_FAILED = "IO_003"
    IO_CLOSE_FAILED = "IO_004"

    # Service errors (SERVICE_xxx)
    SERVICE_ERROR = "SERVICE_001"
    SERVICE_NOT_FOUND = "SERVICE_002"
    SERVICE_NO_SUCH_BUCKET = "SERVICE_003"
    SERVICE_ACCESS_DENIED = "SERVICE_004"

    # Transport errors (TRANSPORT_xxx)
    TRANSPORT_ERROR = "TRANSPORT_001"

    # Caller misuse and unexpected responses
    CONTRACT_VIOLATION = "CONTRACT_001"
    RESPONSE_SHAPE = "RESPONSE_001"


class S3ExtError(Exception):
    """
    Base class for every error raised by the extension layer.

    Carries a stable code, a human readable message and a details dict
    with the operation context (bucket, key, path, ...). The underlying
    exception is kept as ``__cause__``.
    """

    default_code = ErrorCode.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class LocalIOError(S3ExtError):
    """Caller-side I/O failed: file missing, permission denied, disk full, broken stream."""

    default_code = ErrorCode.IO_READ_FAILED


class ServiceError(S3ExtError):
    """The storage service rejected the request.

    The service's own error code and HTTP status are preserved.
    """

    default_code = ErrorCode.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        service_code: str,
        http_status: Optional[int] = None,
        operation: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        self.service_code = service_code
        self.http_status = http_status
        self.operation = operation
        self.request_id = request_id


class ObjectNotFoundError(ServiceError):
    """The requested key does not exist."""

    default_code = ErrorCode.SERVICE_NOT_FOUND


class BucketNotFoundError(ServiceError):
    """The requested bucket does not exist."""

    default_code = ErrorCode.SERVICE_NO_SUCH_BUCKET


class AccessDeniedError(ServiceError):
    """Credentials are missing, invalid or lack the required permission."""

    default_code = ErrorCode.SERVICE_ACCESS_DENIED


class TransportError(S3ExtError):
    """Connection, DNS, TLS or body streaming failure reported by the client."""

    default_code = ErrorCode.TRANSPORT_ERROR


class ContractViolationError(S3ExtError, ValueError):
    """The caller used an operation incorrectly; raised before any request."""

    default_code = ErrorCode.CONTRACT_VIOLATION


class ResponseShapeError(S3ExtError):
    """The service answered with a response missing required fields."""

    default_code = ErrorCode.RESPONSE_SHAPE


_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404", "NoSuchVersion"}
_NO_SUCH_BUCKET_CODES = {"NoSuchBucket"}
_ACCESS_DENIED_CODES = {
    "AccessDenied",
    "403",
    "Forbidden",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
}

# Everything the client or a response body raises for a failed request.
# Other exceptions are programming errors and propagate unchanged.
CLIENT_EXCEPTIONS = (
    BotoCoreError,
    ClientError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


def map_client_error(
    exc: Exception,
    operation: str,
    bucket: Optional[str] = None,
    key: Optional[str] = None
) -> S3ExtError:
    """Translate a botocore/transport exception into the error taxonomy.

    ClientError becomes a ServiceError subclass, ParamValidationError (the
    client refused the arguments locally) a ContractViolationError, and the
    remaining CLIENT_EXCEPTIONS a TransportError.

    Args:
        exc: One of CLIENT_EXCEPTIONS raised by the underlying client
        operation: Operation being performed (e.g. 'get_object')
        bucket: Bucket involved, if any
        key: Object key involved, if any

    Returns:
        S3ExtError: Typed error; the caller raises it ``from exc``
    """
    context: Dict[str, Any] = {"operation": operation}
    if bucket is not None:
        context["bucket"] = bucket
    if key is not None:
        context["key"] = key

    if isinstance(exc, ClientError):
        error = exc.response.get('Error', {})
        metadata = exc.response.get('ResponseMetadata', {})
        service_code = str(error.get('Code', 'Unknown'))
        service_message = error.get('Message') or str(exc)

        if service_code in _NOT_FOUND_CODES:
            error_class = ObjectNotFoundError
        elif service_code in _NO_SUCH_BUCKET_CODES:
            error_class = BucketNotFoundError
        elif service_code in _ACCESS_DENIED_CODES:
            error_class = AccessDeniedError
        else:
            error_class = ServiceError

        return error_class(
            f"{operation} failed: {service_message}",
            service_code=service_code,
            http_status=metadata.get('HTTPStatusCode'),
            operation=operation,
            request_id=metadata.get('RequestId'),
            details=context,
        )

    context["error_type"] = type(exc).__name__
    if isinstance(exc, ParamValidationError):
        return ContractViolationError(f"{operation} failed: {exc}", details=context)
    if isinstance(exc, BotoCoreError):
        return TransportError(f"{operation} failed: {exc}", details=context)

    return TransportError(f"{operation} failed: {type(exc).__name__}: {exc}", details=context)


def local_io_error(
    exc: OSError,
    code: ErrorCode,
    **context: Any
) -> LocalIOError:
    """Wrap a caller-side OSError, keeping errno for programmatic checks."""
    details = dict(context)
    details["errno"] = exc.errno
    details["error_type"] = type(exc).__name__
    return LocalIOError(f"{code.name.lower()}: {exc}", code=code, details=details)
