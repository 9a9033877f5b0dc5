"""Lazy iteration over objects.

Example:
    >>> async with new_s3client_from_settings() as client:
    ...     s3 = S3Ext(client)
    ...     async for obj in s3.stream_objects("reports", prefix="2024/"):
    ...         print(obj.key, obj.size)

Pages are fetched one at a time as the iteration needs them. A stream can
be dropped at any point; the service holds nothing but the cursor.
"""

from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from s3ext.core.errors import ContractViolationError, ResponseShapeError
from s3ext.core.logging_config import get_logger
from s3ext.storage.client import call, get_object
from s3ext.storage.models import ObjectPage, ObjectRef, ObjectSummary
from s3ext.storage.protocol import StorageHandle


logger = get_logger(__name__)


async def list_page(
    client: StorageHandle,
    bucket: str,
    prefix: Optional[str] = None,
    continuation_token: Optional[str] = None,
    max_keys: int = 1000
) -> ObjectPage:
    """Fetch one ListObjectsV2 page.

    Args:
        client: Storage handle
        bucket: Bucket to list
        prefix: Only keys starting with this prefix
        continuation_token: Cursor from a previous page of the same listing
        max_keys: Page size (the service caps it at 1000)

    Returns:
        ObjectPage: Summaries plus the cursor for the next page
    """
    if not bucket:
        raise ContractViolationError("Bucket name cannot be empty")

    params: dict[str, Any] = {"Bucket": bucket, "MaxKeys": max_keys}
    if prefix:
        params["Prefix"] = prefix
    if continuation_token:
        params["ContinuationToken"] = continuation_token

    response = await call(client, "list_objects_v2", bucket, **params)

    objects = tuple(
        ObjectSummary.from_listing(item) for item in response.get("Contents") or []
    )
    next_token = response.get("NextContinuationToken") or None
    if response.get("IsTruncated") and next_token is None:
        raise ResponseShapeError(
            "Truncated listing is missing NextContinuationToken",
            details={"bucket": bucket, "prefix": prefix},
        )

    logger.debug(
        "s3ext_list_page_fetched",
        bucket=bucket,
        prefix=prefix,
        count=len(objects),
        has_more=next_token is not None,
    )

    return ObjectPage(objects=objects, next_token=next_token)


class ObjectStream:
    """Async iterator over all objects, or objects with a given prefix.

    Objects come in the service's order (lexicographic by key for S3).
    Not safe for concurrent consumption.
    """

    def __init__(
        self,
        client: StorageHandle,
        bucket: str,
        prefix: Optional[str] = None,
        continuation_token: Optional[str] = None,
        page_size: int = 1000
    ):
        if not bucket:
            raise ContractViolationError("Bucket name cannot be empty")
        self.client = client
        self.bucket = bucket
        self.prefix = prefix
        self.page_size = page_size
        self._token = continuation_token
        self._objects: Deque[ObjectSummary] = deque()
        self._exhausted = False

    @property
    def continuation_token(self) -> Optional[str]:
        """Cursor of the next page not fetched yet.

        Objects already buffered from the current page are not covered by
        it; resume from it only at a page boundary.
        """
        return self._token

    @property
    def exhausted(self) -> bool:
        return self._exhausted and not self._objects

    async def _next_objects(self) -> None:
        page = await list_page(
            self.client,
            self.bucket,
            prefix=self.prefix,
            continuation_token=self._token,
            max_keys=self.page_size,
        )
        self._objects = deque(page.objects)
        if page.next_token is None:
            self._exhausted = True
        self._token = page.next_token

    def __aiter__(self) -> "ObjectStream":
        return self

    async def __anext__(self) -> ObjectSummary:
        # pages may legitimately be empty while more follow
        while not self._objects:
            if self._exhausted:
                raise StopAsyncIteration
            await self._next_objects()
        return self._objects.popleft()

    async def nth(self, n: int) -> Optional[ObjectSummary]:
        """Skip ``n`` objects and return the next one, or None at the end."""
        if n < 0:
            raise ContractViolationError(f"n must not be negative, got {n}")
        while len(self._objects) <= n and not self._exhausted:
            n -= len(self._objects)
            await self._next_objects()
        if len(self._objects) <= n:
            self._objects.clear()
            return None
        for _ in range(n):
            self._objects.popleft()
        return self._objects.popleft()

    async def count(self) -> int:
        """Count the remaining objects, consuming the stream."""
        count = len(self._objects)
        self._objects.clear()
        while not self._exhausted:
            await self._next_objects()
            count += len(self._objects)
            self._objects.clear()
        return count

    async def last(self) -> Optional[ObjectSummary]:
        """Return the final object, consuming the stream."""
        last = self._objects[-1] if self._objects else None
        self._objects.clear()
        while not self._exhausted:
            await self._next_objects()
            if self._objects:
                last = self._objects[-1]
            self._objects.clear()
        return last

    async def collect(self) -> List[ObjectSummary]:
        """Materialize the remaining objects into a list."""
        return [obj async for obj in self]


class GetObjectStream:
    """Async iterator fetching each listed object as it is reached.

    Yields ``(key, get_object_response)``. The caller owns each response
    body and must read or close it before dropping it.
    """

    def __init__(self, client: StorageHandle, bucket: str, prefix: Optional[str] = None, page_size: int = 1000):
        self.inner = ObjectStream(client, bucket, prefix=prefix, page_size=page_size)

    async def _retrieve(self, obj: Optional[ObjectSummary]) -> Optional[Tuple[str, dict]]:
        if obj is None:
            return None
        response = await get_object(self.inner.client, ObjectRef(self.inner.bucket, obj.key))
        return obj.key, response

    def __aiter__(self) -> "GetObjectStream":
        return self

    async def __anext__(self) -> Tuple[str, dict]:
        obj = await self.inner.__anext__()
        return await self._retrieve(obj)

    async def nth(self, n: int) -> Optional[Tuple[str, dict]]:
        return await self._retrieve(await self.inner.nth(n))

    async def count(self) -> int:
        """Count remaining objects without fetching any of them."""
        return await self.inner.count()

    async def last(self) -> Optional[Tuple[str, dict]]:
        return await self._retrieve(await self.inner.last())

    async def collect(self) -> List[Tuple[str, dict]]:
        """Fetch every remaining object.

        All bodies are open at once; the caller must close each of them.
        """
        return [item async for item in self]
