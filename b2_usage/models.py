from __future__ import annotations
"""Data models representing B2 sessions, listings and usage totals."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Session:
    """Short-lived credentials returned by the authorization call."""

    authorization_token: str
    api_url: str
    account_id: str = ""


@dataclass(frozen=True)
class BucketRef:
    """A bucket name resolved to its opaque identifier."""

    name: str
    bucket_id: str


@dataclass(frozen=True)
class ListingEntry:
    """A single row of a file listing page."""

    path: str
    size: int = 0
    is_delete_marker: bool = False


@dataclass(frozen=True)
class PageCursor:
    """Continuation markers handed back by a listing call."""

    next_path: Optional[str] = None
    next_id: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_path)


@dataclass
class ListingPage:
    """Represents a single page of a file listing."""

    number: int
    entries: list[ListingEntry] = field(default_factory=list)
    cursor: PageCursor = field(default_factory=PageCursor)


@dataclass
class FolderTotals:
    """Running size and file count for one folder key."""

    folder: str
    size_bytes: int = 0
    file_count: int = 0

    def as_dict(self) -> dict[str, object]:
        return {
            "folder": self.folder,
            "size_bytes": self.size_bytes,
            "file_count": self.file_count,
        }


@dataclass
class ScanResult:
    """Finalized per-folder totals of a completed scan."""

    folders: list[FolderTotals] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(folder.size_bytes for folder in self.folders)

    @property
    def total_files(self) -> int:
        return sum(folder.file_count for folder in self.folders)
