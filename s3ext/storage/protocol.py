"""Capability protocols for the storage handle and local byte endpoints."""

from typing import Any, Awaitable, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """Anything bytes can be pulled from.

    ``read`` may return bytes directly (io.BytesIO, open files) or an
    awaitable resolving to bytes (aiofiles handles, asyncio.StreamReader).
    Reading returns b"" once the source is exhausted.
    """

    def read(self, size: int = -1) -> Union[bytes, Awaitable[bytes]]:
        ...


@runtime_checkable
class ByteSink(Protocol):
    """Anything accepting sequential byte writes.

    ``write`` may complete synchronously or return an awaitable.
    """

    def write(self, data: bytes) -> Union[Optional[int], Awaitable[Optional[int]]]:
        ...


class StorageHandle(Protocol):
    """The subset of an aiobotocore S3 client this package relies on.

    The handle is owned by the caller and shared read-only between
    concurrent operations.
    """

    async def get_object(self, **kwargs: Any) -> dict:
        ...

    async def put_object(self, **kwargs: Any) -> dict:
        ...

    async def list_objects_v2(self, **kwargs: Any) -> dict:
        ...

    async def create_multipart_upload(self, **kwargs: Any) -> dict:
        ...

    async def upload_part(self, **kwargs: Any) -> dict:
        ...

    async def complete_multipart_upload(self, **kwargs: Any) -> dict:
        ...

    async def abort_multipart_upload(self, **kwargs: Any) -> dict:
        ...
