"""Simple Storage Service extensions for aioboto3."""

from s3ext.core.errors import (
    AccessDeniedError,
    BucketNotFoundError,
    ContractViolationError,
    ErrorCode,
    LocalIOError,
    ObjectNotFoundError,
    ResponseShapeError,
    S3ExtError,
    ServiceError,
    TransportError,
)
from s3ext.storage import (
    GetObjectStream,
    ObjectPage,
    ObjectRef,
    ObjectStream,
    ObjectSummary,
    S3Ext,
    UploadResult,
    new_s3client_from_settings,
    new_s3client_with_credentials,
)


__all__ = [
    "S3Ext",
    "new_s3client_with_credentials",
    "new_s3client_from_settings",
    "ObjectStream",
    "GetObjectStream",
    "ObjectRef",
    "ObjectSummary",
    "ObjectPage",
    "UploadResult",
    "ErrorCode",
    "S3ExtError",
    "LocalIOError",
    "ServiceError",
    "ObjectNotFoundError",
    "BucketNotFoundError",
    "AccessDeniedError",
    "TransportError",
    "ContractViolationError",
    "ResponseShapeError",
]
