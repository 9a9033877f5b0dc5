"""
Pytest configuration and shared fixtures for s3-ext tests.

This module provides:
- Settings fixtures with small transfer sizes
- An in-memory S3 client double
- The S3Ext instance under test
- Byte source/sink helpers
"""

import errno
import os
from typing import Optional

import psutil
import pytest

from mock_s3_client import FakeS3Client
from s3ext.core.config import Settings
from s3ext.storage import S3Ext


BUCKET = "test-bucket"

CHUNK_SIZE = 1024
PAGE_SIZE = 10
MIN_PART_SIZE = 1024


# ============================================================================
# Settings fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with small chunk, page and part sizes.

    Small values push every test through several chunks, pages and parts
    without large payloads.
    """
    return Settings(
        DOWNLOAD_CHUNK_SIZE=CHUNK_SIZE,
        LIST_PAGE_SIZE=PAGE_SIZE,
        MULTIPART_MIN_PART_SIZE=MIN_PART_SIZE,
    )


# ============================================================================
# Client fixtures
# ============================================================================

@pytest.fixture
def s3_client() -> FakeS3Client:
    """In-memory S3 client with one empty bucket."""
    return FakeS3Client(buckets=(BUCKET,))


@pytest.fixture
def s3(s3_client: FakeS3Client, test_settings: Settings) -> S3Ext:
    """Extension layer wrapping the fake client."""
    return S3Ext(s3_client, settings=test_settings)


# ============================================================================
# Stream helpers
# ============================================================================

class AsyncSource:
    """Readable whose read() is a coroutine, like aiofiles handles."""

    def __init__(self, data: bytes, max_read: Optional[int] = None):
        self._data = data
        self._pos = 0
        self.max_read = max_read

    async def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._pos
        if self.max_read is not None:
            size = min(size, self.max_read)
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


class AsyncSink:
    """Writable whose write() is a coroutine."""

    def __init__(self):
        self.data = bytearray()
        self.writes = 0

    async def write(self, data: bytes) -> int:
        self.data += data
        self.writes += 1
        return len(data)


class ReaderWithError:
    """Source serving zeros, then failing once ``abort_after`` bytes were read."""

    def __init__(self, abort_after: int):
        self.abort_after = abort_after

    def read(self, size: int = -1) -> bytes:
        if size < 0 or size > self.abort_after:
            raise OSError(errno.EIO, "explicit, unconditional error")
        self.abort_after -= size
        return b"\0" * size


class FullDiskSink:
    """Sink failing like a full disk after accepting ``capacity`` bytes."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.data = bytearray()

    def write(self, data: bytes) -> int:
        if len(self.data) + len(data) > self.capacity:
            raise OSError(errno.ENOSPC, "No space left on device")
        self.data += data
        return len(data)


@pytest.fixture
def async_sink() -> AsyncSink:
    return AsyncSink()


# ============================================================================
# Utility functions
# ============================================================================

async def put_object(client: FakeS3Client, bucket: str, key: str, data: bytes) -> None:
    """Store an object directly through the client, bypassing S3Ext."""
    await client.put_object(Bucket=bucket, Key=key, Body=data)


def get_body(client: FakeS3Client, bucket: str, key: str) -> bytes:
    """Read stored content directly from the fake."""
    return client.buckets[bucket][key].data


def open_paths() -> set:
    """Real paths of every regular file this process holds open."""
    return {os.path.realpath(f.path) for f in psutil.Process().open_files()}
