"""Search domain service over the collection and the catalog."""

from typing import Any, Iterator, Optional

from railshed.database.base import Database
from railshed.domain.entities import CollectionItem, Page
from railshed.domain.filters import CollectionFilter, PageRequest


def _filter(flt: "CollectionFilter | dict[str, Any] | None") -> CollectionFilter:
    if flt is None:
        return CollectionFilter()
    if isinstance(flt, CollectionFilter):
        return flt
    return CollectionFilter.create(**flt)


class SearchService:
    """Service for filtered, paginated listings."""

    def __init__(self, db: Database):
        """Initialize search service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_collection(
        self,
        flt: "CollectionFilter | dict[str, Any] | None" = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        """List collection items matching a filter, one page at a time.

        Items are ordered by (description, id). Pass the returned
        ``next_cursor`` in the next PageRequest to continue; it is None on the
        last page.

        Args:
            flt: CollectionFilter, or a mapping of its options
            page: Page size and cursor (defaults to the first page)

        Returns:
            Page of CollectionItem entities

        Raises:
            ValidationError: If a filter option or the cursor is malformed
        """
        return self.db.search_collection_items(_filter(flt), page or PageRequest())

    def search_catalog(
        self,
        flt: "CollectionFilter | dict[str, Any] | None" = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        """List railway models matching a filter, one page at a time."""
        return self.db.search_railway_models(_filter(flt), page or PageRequest())

    def iter_collection(
        self, flt: "CollectionFilter | dict[str, Any] | None" = None, page_size: int = 100
    ) -> Iterator[CollectionItem]:
        """Yield every matching collection item, following the page cursors."""
        flt = _filter(flt)
        cursor = None
        while True:
            page = self.db.search_collection_items(flt, PageRequest(limit=page_size, cursor=cursor))
            yield from page.items
            if page.next_cursor is None:
                return
            cursor = page.next_cursor
