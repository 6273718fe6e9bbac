from __future__ import annotations
"""Paginated file listing scan with per-folder aggregation."""
import logging
from typing import Callable, Iterable, Iterator, Optional

from .models import BucketRef, FolderTotals, ListingEntry, ListingPage, PageCursor, ScanResult, Session
from .services import PAGE_SIZE

LOGGER = logging.getLogger(__name__)

SEPARATOR = "/"

ProgressFn = Callable[[ListingEntry], None]


def folder_key(path: str) -> str:
    """Return ``path`` up to and including its last separator, or ``""``."""
    index = path.rfind(SEPARATOR)
    if index < 0:
        return ""
    return path[: index + 1]


def iter_listing_pages(
    api,
    session: Session,
    bucket: BucketRef,
    *,
    prefix: str = "",
    include_versions: bool = True,
    page_size: int = PAGE_SIZE,
) -> Iterator[ListingPage]:
    """Yield listing pages until the API stops returning a next path marker.

    The id marker is only carried forward for version listings; plain
    listings are ordered by path alone.
    """
    cursor: PageCursor | None = None
    page_number = 1
    while True:
        page = api.list_files(
            session,
            bucket.bucket_id,
            prefix=prefix,
            include_versions=include_versions,
            cursor=cursor,
            max_count=page_size,
            page_number=page_number,
        )
        LOGGER.debug(
            "Page %d of '%s' returned %d entries (more: %s)",
            page_number,
            bucket.name,
            len(page.entries),
            page.cursor.has_more,
        )
        yield page
        if not page.cursor.has_more:
            return
        cursor = PageCursor(
            next_path=page.cursor.next_path,
            next_id=page.cursor.next_id if include_versions else None,
        )
        page_number += 1


def aggregate_entries(
    pages: Iterable[ListingPage],
    progress_callback: Optional[ProgressFn] = None,
) -> ScanResult:
    """Fold listing pages into per-folder totals in discovery order."""
    folders: dict[str, FolderTotals] = {}
    for page in pages:
        for entry in page.entries:
            if entry.path.endswith(SEPARATOR):
                continue
            if entry.is_delete_marker:
                continue
            key = folder_key(entry.path)
            totals = folders.get(key)
            if totals is None:
                totals = folders[key] = FolderTotals(folder=key)
            totals.size_bytes += entry.size
            totals.file_count += 1
            if progress_callback:
                progress_callback(entry)
    return ScanResult(folders=list(folders.values()))


def scan_bucket(
    api,
    session: Session,
    bucket: BucketRef,
    *,
    prefix: str = "",
    include_versions: bool = True,
    progress_callback: Optional[ProgressFn] = None,
) -> ScanResult:
    """Scan every page of ``bucket`` under ``prefix`` and total it by folder.

    Any error raised by the API aborts the scan; nothing accumulated so far
    is returned.
    """
    pages = iter_listing_pages(
        api,
        session,
        bucket,
        prefix=prefix,
        include_versions=include_versions,
    )
    result = aggregate_entries(pages, progress_callback)
    LOGGER.debug(
        "Scanned '%s' (prefix '%s'): %d folder(s), %d file(s), %d byte(s)",
        bucket.name,
        prefix,
        len(result.folders),
        result.total_files,
        result.total_bytes,
    )
    return result
