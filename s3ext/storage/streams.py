"""Byte plumbing between response bodies, local files and caller streams."""

import inspect
from typing import Any, Optional

from s3ext.core.errors import (
    CLIENT_EXCEPTIONS,
    ContractViolationError,
    ErrorCode,
    local_io_error,
    map_client_error,
)
from s3ext.core.logging_config import get_logger
from s3ext.storage.protocol import ByteSink, ByteSource


logger = get_logger(__name__)


async def read_chunk(source: ByteSource, size: int = -1) -> bytes:
    """Read up to ``size`` bytes (everything for -1) from a sync or async source."""
    read = getattr(source, "read", None)
    if read is None or not callable(read):
        raise ContractViolationError(
            "Source must provide a read() method",
            details={"source_type": type(source).__name__},
        )

    try:
        data = read(size)
        if inspect.isawaitable(data):
            data = await data
    except OSError as exc:
        raise local_io_error(exc, ErrorCode.IO_READ_FAILED) from exc

    if data is None:
        # non-blocking raw streams report "no data yet" as None
        raise ContractViolationError(
            "Source returned no data; non-blocking streams are not supported",
            details={"source_type": type(source).__name__},
        )
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ContractViolationError(
            f"Source must yield bytes, got {type(data).__name__}",
            details={"source_type": type(source).__name__},
        )
    return bytes(data)


async def read_all(source: ByteSource) -> bytes:
    """Buffer a source until exhaustion."""
    return await read_chunk(source, -1)


async def read_exactly(source: ByteSource, size: int) -> bytes:
    """Read ``size`` bytes, or fewer only when the source is exhausted.

    Sources such as sockets may return short reads; keep reading until the
    requested amount is collected.
    """
    buffer = bytearray()
    while len(buffer) < size:
        chunk = await read_chunk(source, size - len(buffer))
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


async def write_chunk(sink: ByteSink, data: bytes) -> None:
    """Write all of ``data`` to a sync or async sink."""
    try:
        result = sink.write(data)
        if inspect.isawaitable(result):
            await result
    except OSError as exc:
        raise local_io_error(exc, ErrorCode.IO_WRITE_FAILED) from exc


async def copy_body(
    body: Any,
    sink: ByteSink,
    chunk_size: int,
    bucket: Optional[str] = None,
    key: Optional[str] = None
) -> int:
    """Stream a response body into ``sink`` chunk by chunk.

    Read failures surface as TransportError, write failures as LocalIOError.

    Returns:
        int: Number of bytes written
    """
    written = 0
    while True:
        try:
            chunk = await body.read(chunk_size)
        except CLIENT_EXCEPTIONS as exc:
            raise map_client_error(exc, "read_body", bucket, key) from exc

        if not chunk:
            return written

        await write_chunk(sink, chunk)
        written += len(chunk)


async def close_after_error(handle: Any, **context: Any) -> None:
    """Close ``handle`` while another error is already propagating.

    A failure here is logged and dropped so that it cannot replace the
    error the caller needs to see.
    """
    try:
        await handle.close()
    except Exception as exc:
        logger.warning(
            "s3ext_close_after_error_failed",
            error_type=type(exc).__name__,
            error=str(exc),
            **context,
        )


async def close_file(handle: Any, **context: Any) -> None:
    """Close ``handle`` on the success path; failures are primary errors."""
    try:
        await handle.close()
    except OSError as exc:
        raise local_io_error(exc, ErrorCode.IO_CLOSE_FAILED, **context) from exc
