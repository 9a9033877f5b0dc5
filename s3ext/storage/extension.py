"""High-level operations layered over an S3 client handle."""

from os import PathLike
from pathlib import Path
from typing import Any, Optional, Union

import aiofiles

from s3ext.core.config import Settings, settings as default_settings
from s3ext.core.errors import ErrorCode, local_io_error
from s3ext.core.logging_config import get_logger
from s3ext.storage.client import get_object
from s3ext.storage.listing import GetObjectStream, ObjectStream, list_page
from s3ext.storage.models import ObjectPage, ObjectRef, UploadResult
from s3ext.storage.protocol import ByteSink, ByteSource, StorageHandle
from s3ext.storage.streams import close_after_error, close_file, copy_body, read_all
from s3ext.storage import upload as uploads


logger = get_logger(__name__)

PathType = Union[str, PathLike]


class S3Ext:
    """Extensions for an S3 client.

    Wraps an entered aioboto3/aiobotocore S3 client. The client is
    borrowed, never closed or reconfigured, and may be shared by any
    number of concurrent operations; S3Ext itself holds no mutable state.

    Every method raises a subclass of S3ExtError on failure:
    LocalIOError for caller-side I/O, ServiceError (ObjectNotFoundError,
    AccessDeniedError, ...) for service rejections, TransportError for
    connection problems and ContractViolationError for misuse. Nothing is
    retried here; retry policy belongs to the client configuration.
    """

    def __init__(self, client: StorageHandle, settings: Optional[Settings] = None):
        """Initialize the extension layer.

        Args:
            client: Entered S3 client (e.g. from new_s3client_from_settings)
            settings: Transfer tuning; defaults to the global settings
        """
        self.client = client
        self.settings = settings or default_settings

    async def download_to_file(
        self,
        bucket: str,
        key: str,
        target: PathType,
        *,
        version_id: Optional[str] = None,
        overwrite: bool = True
    ) -> int:
        """Get object and write it to file ``target``.

        The file is only opened once the service has answered, so a
        missing object never creates it. On failure or cancellation a
        partially written file may remain.

        Args:
            bucket: Source bucket
            key: Source key
            target: Local file path
            version_id: Specific object version
            overwrite: Truncate an existing file (True) or refuse it (False)

        Returns:
            int: Bytes written

        Raises:
            ObjectNotFoundError: If the object does not exist
            LocalIOError: If the file cannot be created or written
        """
        ref = ObjectRef(bucket, key, version_id)
        path = Path(target)

        logger.debug(
            "s3ext_download_to_file_started",
            bucket=bucket,
            key=key,
            path=str(path),
            overwrite=overwrite,
        )

        response = await get_object(self.client, ref)

        async with response["Body"] as body:
            try:
                handle = await aiofiles.open(path, "wb" if overwrite else "xb")
            except OSError as exc:
                raise local_io_error(exc, ErrorCode.IO_OPEN_FAILED, path=str(path)) from exc

            try:
                written = await copy_body(
                    body, handle, self.settings.DOWNLOAD_CHUNK_SIZE, bucket, key
                )
            except BaseException:
                await close_after_error(handle, path=str(path))
                raise
            await close_file(handle, path=str(path))

        logger.debug(
            "s3ext_download_to_file_success",
            bucket=bucket,
            key=key,
            path=str(path),
            bytes_written=written,
        )

        return written

    async def download(
        self,
        bucket: str,
        key: str,
        target: ByteSink,
        *,
        version_id: Optional[str] = None
    ) -> int:
        """Get object and write it to ``target``.

        Args:
            bucket: Source bucket
            key: Source key
            target: Any sink with a sync or async write(bytes)
            version_id: Specific object version

        Returns:
            int: Bytes written

        Raises:
            ObjectNotFoundError: If the object does not exist
            LocalIOError: If writing to ``target`` fails
            TransportError: If the body stream breaks
        """
        ref = ObjectRef(bucket, key, version_id)

        logger.debug("s3ext_download_started", bucket=bucket, key=key)

        response = await get_object(self.client, ref)
        async with response["Body"] as body:
            written = await copy_body(
                body, target, self.settings.DOWNLOAD_CHUNK_SIZE, bucket, key
            )

        logger.debug(
            "s3ext_download_success",
            bucket=bucket,
            key=key,
            bytes_written=written,
        )

        return written

    async def _read_file(self, path: Path) -> bytes:
        try:
            handle = await aiofiles.open(path, "rb")
        except OSError as exc:
            raise local_io_error(exc, ErrorCode.IO_OPEN_FAILED, path=str(path)) from exc

        try:
            content = await read_all(handle)
        except BaseException:
            await close_after_error(handle, path=str(path))
            raise
        await close_file(handle, path=str(path))
        return content

    async def upload_from_file(
        self,
        source: PathType,
        bucket: str,
        key: str,
        **put_args: Any
    ) -> UploadResult:
        """Upload content of file to S3.

        The full content of ``source`` is read into memory and the file
        is closed before the request is issued.

        Raises:
            LocalIOError: If the file cannot be opened or read (no request is made)
            ServiceError: If the service rejects the upload
        """
        ref = ObjectRef(bucket, key)
        path = Path(source)

        logger.debug("s3ext_upload_from_file_started", bucket=bucket, key=key, path=str(path))

        content = await self._read_file(path)
        return await uploads.put_bytes(self.client, content, ref.bucket, ref.key, **put_args)

    async def upload(
        self,
        source: ByteSource,
        bucket: str,
        key: str,
        *,
        content_length: Optional[int] = None,
        **put_args: Any
    ) -> UploadResult:
        """Read ``source`` and upload it to S3.

        The full content of ``source`` is buffered in memory to learn its
        length. When ``content_length`` is given it must match.

        Raises:
            ContractViolationError: If the source is unusable or the length mismatches
            LocalIOError: If reading the source fails
            ServiceError: If the service rejects the upload
        """
        ref = ObjectRef(bucket, key)
        return await uploads.upload(
            self.client,
            source,
            ref.bucket,
            ref.key,
            content_length=content_length,
            **put_args,
        )

    async def upload_multipart(
        self,
        source: ByteSource,
        bucket: str,
        key: str,
        part_size: int,
        **create_args: Any
    ) -> UploadResult:
        """Read ``source`` and upload it to S3 using multipart upload.

        Only one part (``part_size`` bytes) is held in memory at a time.
        """
        ref = ObjectRef(bucket, key)
        return await uploads.upload_multipart(
            self.client,
            source,
            ref.bucket,
            ref.key,
            part_size,
            self.settings.MULTIPART_MIN_PART_SIZE,
            **create_args,
        )

    async def upload_from_file_multipart(
        self,
        source: PathType,
        bucket: str,
        key: str,
        part_size: int,
        **create_args: Any
    ) -> UploadResult:
        """Upload content of file to S3 using multipart upload."""
        ref = ObjectRef(bucket, key)
        path = Path(source)

        logger.debug(
            "s3ext_upload_from_file_multipart_started",
            bucket=bucket,
            key=key,
            path=str(path),
            part_size=part_size,
        )

        try:
            handle = await aiofiles.open(path, "rb")
        except OSError as exc:
            raise local_io_error(exc, ErrorCode.IO_OPEN_FAILED, path=str(path)) from exc

        try:
            result = await uploads.upload_multipart(
                self.client,
                handle,
                ref.bucket,
                ref.key,
                part_size,
                self.settings.MULTIPART_MIN_PART_SIZE,
                **create_args,
            )
        except BaseException:
            await close_after_error(handle, path=str(path))
            raise
        await close_file(handle, path=str(path))
        return result

    async def list_page(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None
    ) -> ObjectPage:
        """Fetch a single page of a listing, resuming from ``continuation_token``."""
        return await list_page(
            self.client,
            bucket,
            prefix=prefix,
            continuation_token=continuation_token,
            max_keys=max_keys or self.settings.LIST_PAGE_SIZE,
        )

    def stream_objects(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        *,
        continuation_token: Optional[str] = None
    ) -> ObjectStream:
        """Lazily iterate over all objects, or objects with a given ``prefix``.

        Objects are lexicographically sorted by their key.
        """
        return ObjectStream(
            self.client,
            bucket,
            prefix=prefix,
            continuation_token=continuation_token,
            page_size=self.settings.LIST_PAGE_SIZE,
        )

    def stream_get_objects(self, bucket: str, prefix: Optional[str] = None) -> GetObjectStream:
        """Lazily iterate over objects, fetching each one as it is reached.

        Objects are lexicographically sorted by their key.
        """
        return GetObjectStream(
            self.client,
            bucket,
            prefix=prefix,
            page_size=self.settings.LIST_PAGE_SIZE,
        )
