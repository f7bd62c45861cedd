"""Data models for the S3 index generator."""

import posixpath
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class S3Object:
    """One entry from a bucket listing, plus its tags once fetched."""

    key: str
    last_modified: datetime | None = None
    size: int = 0
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def base_name(self) -> str:
        return posixpath.basename(self.key)

    def with_tags(self, tags: dict[str, str]) -> "S3Object":
        """Return a copy of this object carrying ``tags``."""
        return replace(self, tags=dict(tags))

    @classmethod
    def from_listing(cls, item: dict[str, Any]) -> "S3Object":
        """Create an S3Object from a ``ListObjectsV2`` ``Contents`` entry."""
        return cls(
            key=item.get("Key", ""),
            last_modified=item.get("LastModified"),
            size=item.get("Size", 0) or 0,
        )


@dataclass
class Page:
    """Values handed to an HTML template."""

    nonce: str
    object_tree: Any
