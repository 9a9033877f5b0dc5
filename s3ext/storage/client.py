"""Construction of S3 client handles.

The returned objects are aioboto3 client context managers; enter them
with ``async with`` to obtain the handle that S3Ext wraps. The caller
owns that lifecycle.
"""

from typing import Optional

import aioboto3
from botocore.config import Config

from s3ext.core.config import Settings, settings as default_settings
from s3ext.core.errors import (
    CLIENT_EXCEPTIONS,
    ContractViolationError,
    ResponseShapeError,
    map_client_error,
)
from s3ext.core.logging_config import get_logger
from s3ext.storage.models import ObjectRef


logger = get_logger(__name__)


async def call(handle, operation: str, bucket: Optional[str] = None, key: Optional[str] = None, **params):
    """Invoke ``handle.<operation>(**params)`` translating client errors.

    Raises:
        ServiceError: The service rejected the request (code preserved)
        TransportError: The request never got a service answer
        ContractViolationError: The client refused the parameters locally
    """
    try:
        return await getattr(handle, operation)(**params)
    except CLIENT_EXCEPTIONS as exc:
        raise map_client_error(exc, operation, bucket, key) from exc


async def get_object(handle, ref: ObjectRef) -> dict:
    """GetObject for ``ref``; the returned response always has a Body.

    Raises:
        ResponseShapeError: If the service answered without a body
    """
    response = await call(handle, "get_object", ref.bucket, ref.key, **ref.get_params())
    if response.get("Body") is None:
        raise ResponseShapeError(
            "get_object response has no body",
            details={"bucket": ref.bucket, "key": ref.key},
        )
    return response


def _client_config(addressing_style: str) -> Config:
    return Config(s3={"addressing_style": addressing_style})


def new_s3client_with_credentials(
    region: str,
    access_key: str,
    secret_key: str,
    endpoint_url: Optional[str] = None,
    addressing_style: str = "path",
):
    """Create a client using the given static access/secret keys.

    Args:
        region: Region name (e.g., "eu-west-1")
        access_key: Static access key id
        secret_key: Static secret access key
        endpoint_url: Optional S3-compatible endpoint (e.g., "http://minio:9000")
        addressing_style: "path", "virtual" or "auto"

    Returns:
        aioboto3 S3 client context manager

    Raises:
        ContractViolationError: If region or credentials are empty
    """
    if not region:
        raise ContractViolationError("Region cannot be empty")
    if not access_key or not secret_key:
        raise ContractViolationError("Access key and secret key are both required")

    session = aioboto3.Session(
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
    )

    logger.debug(
        "s3ext_client_created",
        region=region,
        endpoint_url=endpoint_url,
        s3_compatible=bool(endpoint_url),
        credentials="static",
    )

    return session.client(
        "s3",
        region_name=region,
        endpoint_url=endpoint_url,
        config=_client_config(addressing_style),
    )


def new_s3client_from_settings(settings: Optional[Settings] = None):
    """Create a client from Settings.

    Falls back to the default botocore credential chain (environment,
    shared config, instance profile) when no static keys are configured.

    Returns:
        aioboto3 S3 client context manager
    """
    settings = settings or default_settings

    if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
        return new_s3client_with_credentials(
            region=settings.AWS_REGION,
            access_key=settings.AWS_ACCESS_KEY_ID,
            secret_key=settings.AWS_SECRET_ACCESS_KEY,
            endpoint_url=settings.AWS_ENDPOINT_URL,
            addressing_style=settings.S3_ADDRESSING_STYLE,
        )

    logger.debug(
        "s3ext_client_created",
        region=settings.AWS_REGION,
        endpoint_url=settings.AWS_ENDPOINT_URL,
        s3_compatible=bool(settings.AWS_ENDPOINT_URL),
        credentials="default_chain",
    )

    return aioboto3.Session().client(
        "s3",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.AWS_ENDPOINT_URL,
        config=_client_config(settings.S3_ADDRESSING_STYLE),
    )
