"""
Async repository over CatalogStore.

Store calls are blocking sqlite work, so they run in worker threads; calls
with no ordering dependency (page + count, the stats aggregates) are gathered.
"""

import asyncio
import logging
from typing import Mapping, Optional

from data.catalog_store import CatalogStore
from data.entries import StoredFile, prepare_entry, prepare_update, to_wire, validate_entry_id
from data.errors import NotFound, ValidationFailure
from data.query import build_filter, build_pagination, parse_list_params

logger = logging.getLogger(__name__)

TOP_BOOKS_LIMIT = 10
RECENT_LIMIT = 5


class CatalogRepository:
    """Listing, lookup, write and aggregate operations for catalog entries."""

    def __init__(self, store: CatalogStore):
        self._store = store

    async def list_entries(self, raw_params: Mapping) -> dict:
        """Filtered, sorted, paginated listing.

        Page and count are independent queries; the count may not reflect the
        exact snapshot the page was read from.
        """
        params = parse_list_params(raw_params)
        where, args = build_filter(params)
        rows, total = await asyncio.gather(
            asyncio.to_thread(self._store.find_entries, where, args,
                              params.order_by, params.limit, params.skip),
            asyncio.to_thread(self._store.count_entries, where, args),
        )
        return {
            "items": [to_wire(row) for row in rows],
            "pagination": build_pagination(params.page, params.limit, total),
            "filters": params.filters(),
        }

    async def get_entry(self, entry_id: str) -> dict:
        """Single entry lookup. Each successful call counts one view."""
        validate_entry_id(entry_id)
        entry = await asyncio.to_thread(self._store.increment_views, entry_id)
        if entry is None:
            raise NotFound()
        return to_wire(entry)

    async def create_entry(self, fields: Mapping, stored_file: Optional[StoredFile] = None) -> dict:
        data = prepare_entry(fields, stored_file)
        entry = await asyncio.to_thread(self._store.insert_entry, data)
        logger.info("Created %s entry %s (%s / %s)", entry["content_type"], entry["id"],
                    entry["book_title"], entry["chapter"])
        return to_wire(entry)

    async def update_entry(self, entry_id: str, changes: Mapping,
                           stored_file: Optional[StoredFile] = None) -> dict:
        validate_entry_id(entry_id)
        existing = await asyncio.to_thread(self._store.get_entry, entry_id)
        if existing is None:
            raise NotFound()
        data = prepare_update(existing, changes, stored_file)
        if not data:
            return to_wire(existing)
        entry = await asyncio.to_thread(self._store.update_entry, entry_id, data)
        if entry is None:
            # deactivated between the read and the write
            raise NotFound()
        logger.info("Updated entry %s (%s)", entry_id, ", ".join(sorted(data)))
        return to_wire(entry)

    async def delete_entry(self, entry_id: str) -> None:
        """Soft delete: the entry stays stored but disappears from every read."""
        validate_entry_id(entry_id)
        deleted = await asyncio.to_thread(self._store.deactivate_entry, entry_id)
        if not deleted:
            raise NotFound()
        logger.info("Deactivated entry %s", entry_id)

    async def unique_books(self) -> list[str]:
        return await asyncio.to_thread(self._store.distinct_values, "book_title")

    async def chapters_for_book(self, book_title: str) -> list[str]:
        book_title = (book_title or "").strip()
        if not 1 <= len(book_title) <= 100:
            raise ValidationFailure("Book title must be between 1 and 100 characters")
        return await asyncio.to_thread(
            self._store.distinct_values, "chapter",
            "is_active = 1 AND icontains(book_title, ?)", [book_title],
        )

    async def stats(self) -> dict:
        """Totals, top books and the most recent entries over active entries."""
        store = self._store
        videos, images, views, top_books, recent = await asyncio.gather(
            asyncio.to_thread(store.count_entries, "is_active = 1 AND content_type = ?", ["video"]),
            asyncio.to_thread(store.count_entries, "is_active = 1 AND content_type = ?", ["image"]),
            asyncio.to_thread(store.sum_column, "view_count"),
            asyncio.to_thread(store.group_counts, "book_title", TOP_BOOKS_LIMIT),
            asyncio.to_thread(store.find_entries, "is_active = 1", [],
                              "created_at DESC, rowid DESC", RECENT_LIMIT, 0),
        )
        return {
            "totals": {
                "videos": videos,
                "images": images,
                "views": views,
                "total": videos + images,
            },
            "topBooks": [{"_id": book, "count": count} for book, count in top_books],
            "recentVideos": [
                {
                    "id": row["id"],
                    "title": row["title"],
                    "bookTitle": row["book_title"],
                    "chapter": row["chapter"],
                    "createdAt": row["created_at"],
                    "views": row["view_count"],
                }
                for row in recent
            ],
        }
