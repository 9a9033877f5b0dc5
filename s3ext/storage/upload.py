"""Single-request and multipart uploads from a byte source."""

from typing import Any, List, Optional

from s3ext.core.errors import ContractViolationError, ResponseShapeError
from s3ext.core.logging_config import get_logger
from s3ext.storage.client import call
from s3ext.storage.models import UploadResult
from s3ext.storage.protocol import ByteSource, StorageHandle
from s3ext.storage.streams import read_all, read_exactly


logger = get_logger(__name__)


def _strip_etag(etag: Optional[str]) -> Optional[str]:
    return etag.strip('"') if etag else None


async def upload(
    client: StorageHandle,
    source: ByteSource,
    bucket: str,
    key: str,
    content_length: Optional[int] = None,
    **put_args: Any
) -> UploadResult:
    """Buffer ``source`` completely, then store it with one PutObject.

    PutObject needs the content length up front, so the whole source is
    read into memory first.

    Args:
        client: Storage handle
        source: Sync or async readable
        bucket: Target bucket
        key: Target key
        content_length: Expected size; checked against the buffered size
        **put_args: Passed through to put_object (ContentType, Metadata, ...)

    Raises:
        ContractViolationError: If content_length does not match the source
        LocalIOError: If reading the source fails
        ServiceError: If the service rejects the upload
    """
    content = await read_all(source)

    if content_length is not None and content_length != len(content):
        raise ContractViolationError(
            f"Declared content length {content_length} does not match "
            f"source size {len(content)}",
            details={"bucket": bucket, "key": key},
        )

    return await put_bytes(client, content, bucket, key, **put_args)


async def put_bytes(
    client: StorageHandle,
    content: bytes,
    bucket: str,
    key: str,
    **put_args: Any
) -> UploadResult:
    """Store an in-memory buffer with one PutObject."""
    logger.debug(
        "s3ext_upload_started",
        bucket=bucket,
        key=key,
        size_bytes=len(content),
    )

    response = await call(
        client,
        "put_object",
        bucket,
        key,
        Bucket=bucket,
        Key=key,
        Body=content,
        ContentLength=len(content),
        **put_args,
    )

    logger.debug(
        "s3ext_upload_success",
        bucket=bucket,
        key=key,
        size_bytes=len(content),
    )

    return UploadResult(
        bucket=bucket,
        key=key,
        etag=_strip_etag(response.get("ETag")),
        version_id=response.get("VersionId"),
        size_bytes=len(content),
    )


async def upload_multipart(
    client: StorageHandle,
    source: ByteSource,
    bucket: str,
    key: str,
    part_size: int,
    min_part_size: int,
    **create_args: Any
) -> UploadResult:
    """Upload ``source`` in ``part_size`` pieces using a multipart upload.

    Only one part is held in memory at a time. If anything fails once the
    upload has been created (including cancellation) the upload is
    aborted so no orphaned parts are left behind.

    Raises:
        ContractViolationError: If part_size is below the service minimum
        ResponseShapeError: If the service omits the upload id or a part ETag
        LocalIOError: If reading the source fails
        ServiceError: If the service rejects a request
    """
    if part_size < min_part_size:
        raise ContractViolationError(
            f"part_size must be at least {min_part_size} bytes, got {part_size}",
            details={"bucket": bucket, "key": key},
        )

    created = await call(
        client,
        "create_multipart_upload",
        bucket,
        key,
        Bucket=bucket,
        Key=key,
        **create_args,
    )

    upload_id = created.get("UploadId")
    if not upload_id:
        raise ResponseShapeError(
            "create_multipart_upload response is missing UploadId",
            details={"bucket": bucket, "key": key},
        )

    logger.debug(
        "s3ext_multipart_started",
        bucket=bucket,
        key=key,
        upload_id=upload_id,
        part_size=part_size,
    )

    try:
        return await _upload_parts(client, source, bucket, key, part_size, upload_id)
    except BaseException as exc:
        logger.info(
            "s3ext_multipart_aborting",
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            error_type=type(exc).__name__,
        )
        try:
            await client.abort_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
            )
        except Exception as abort_exc:
            logger.warning(
                "s3ext_multipart_abort_failed",
                bucket=bucket,
                key=key,
                upload_id=upload_id,
                error_type=type(abort_exc).__name__,
                error=str(abort_exc),
            )
        raise


# The upload must be aborted if this function fails
async def _upload_parts(
    client: StorageHandle,
    source: ByteSource,
    bucket: str,
    key: str,
    part_size: int,
    upload_id: str
) -> UploadResult:
    parts: List[dict] = []
    total = 0
    part_number = 1

    while True:
        body = await read_exactly(source, part_size)
        if not body and parts:
            break

        part = await call(
            client,
            "upload_part",
            bucket,
            key,
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
            ContentLength=len(body),
        )
        etag = part.get("ETag")
        if not etag:
            raise ResponseShapeError(
                "upload_part response is missing ETag",
                details={"bucket": bucket, "key": key, "part_number": part_number},
            )

        parts.append({"ETag": etag, "PartNumber": part_number})
        total += len(body)

        logger.debug(
            "s3ext_multipart_part_uploaded",
            upload_id=upload_id,
            part_number=part_number,
            size_bytes=len(body),
        )

        # a short read means the source is exhausted
        if len(body) < part_size:
            break
        part_number += 1

    completed = await call(
        client,
        "complete_multipart_upload",
        bucket,
        key,
        Bucket=bucket,
        Key=key,
        UploadId=upload_id,
        MultipartUpload={"Parts": parts},
    )

    logger.debug(
        "s3ext_multipart_success",
        bucket=bucket,
        key=key,
        upload_id=upload_id,
        parts=len(parts),
        size_bytes=total,
    )

    return UploadResult(
        bucket=bucket,
        key=key,
        etag=_strip_etag(completed.get("ETag")),
        version_id=completed.get("VersionId"),
        size_bytes=total,
        parts=len(parts),
    )
