"""Filter, pagination and sort selection for item listings."""

import dataclasses
import logging
from typing import Any

from lexis.application.query_composer import QueryPairs, compose_query
from lexis.domain.constants import DEFAULT_PAGE_SIZE
from lexis.domain.models import FilterSpec, PageSpec, SortSpec

logger = logging.getLogger(__name__)


class FilterState:
    """
    Current listing selection, owned by whichever view displays the list.

    Page-reset rules:
    - any filter change (or reset) moves back to page 1
    - a size change moves back to page 1
    - a bare page change never touches size
    - a sort change leaves the page alone
    """

    def __init__(
        self,
        filters: FilterSpec | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        sort: SortSpec | None = None,
    ):
        self._filters = filters or FilterSpec()
        self._page = PageSpec(size=page_size)
        self._sort = sort or SortSpec()

    @property
    def filters(self) -> FilterSpec:
        return self._filters

    @property
    def page_spec(self) -> PageSpec:
        return self._page

    @property
    def sort(self) -> SortSpec:
        return self._sort

    def set_filters(self, **changes: Any) -> None:
        if "tag_ids" in changes and changes["tag_ids"] is not None:
            changes["tag_ids"] = tuple(changes["tag_ids"])
        self._filters = dataclasses.replace(self._filters, **changes)
        self._page = self._page.first()
        logger.debug(f"[filters] updated {sorted(changes)} -> page 1")

    def reset_filters(self) -> None:
        self._filters = FilterSpec()
        self._page = self._page.first()

    def set_page(self, page: int) -> None:
        self._page = self._page.with_page(page)

    def set_size(self, size: int) -> None:
        self._page = self._page.with_size(size)

    def set_sort(self, sort_by: str, sort_order: str) -> None:
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"sort_order must be 'asc' or 'desc', got {sort_order!r}")
        self._sort = SortSpec(sort_by=sort_by, sort_order=sort_order)

    def query(self, include_sort: bool = False) -> QueryPairs:
        return compose_query(
            self._filters, self._page, self._sort if include_sort else None
        )
