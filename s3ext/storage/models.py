"""Value types exchanged with callers of the extension layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

from s3ext.core.errors import ContractViolationError, ResponseShapeError


@dataclass(frozen=True, slots=True)
class ObjectRef:
    """Identifies a stored object by bucket, key and optional version."""

    bucket: str
    key: str
    version_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.bucket:
            raise ContractViolationError(
                "Bucket name cannot be empty",
                details={"key": self.key},
            )
        if not self.key:
            raise ContractViolationError(
                "Object key cannot be empty",
                details={"bucket": self.bucket},
            )

    def get_params(self) -> dict[str, Any]:
        """Keyword arguments addressing this object in a GetObject call."""
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": self.key}
        if self.version_id:
            params["VersionId"] = self.version_id
        return params


@dataclass(frozen=True, slots=True)
class ObjectSummary:
    """One entry of a ListObjectsV2 page."""

    key: str
    size: int
    last_modified: Optional[datetime]
    etag: Optional[str]
    storage_class: Optional[str] = None

    @classmethod
    def from_listing(cls, item: Mapping[str, Any]) -> "ObjectSummary":
        key = item.get("Key")
        if not key:
            raise ResponseShapeError(
                "Listing entry is missing its key",
                details={"entry": dict(item)},
            )
        etag = item.get("ETag")
        return cls(
            key=key,
            size=int(item.get("Size") or 0),
            last_modified=item.get("LastModified"),
            etag=etag.strip('"') if etag else None,
            storage_class=item.get("StorageClass"),
        )


@dataclass(frozen=True, slots=True)
class ObjectPage:
    """A single page of a listing plus the cursor for the next one.

    ``next_token`` is None on the last page. It is only valid for the
    bucket and prefix that produced it.
    """

    objects: Tuple[ObjectSummary, ...]
    next_token: Optional[str]

    @property
    def is_last(self) -> bool:
        return self.next_token is None


@dataclass(frozen=True, slots=True)
class UploadResult:
    """Outcome of a successful upload."""

    bucket: str
    key: str
    etag: Optional[str]
    version_id: Optional[str]
    size_bytes: int
    parts: int = 1
