"""
Ports (interfaces) for the remote vocabulary catalog.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import (
    FilterSpec,
    ImportResult,
    ItemPage,
    PageSpec,
    ReviewLogRecord,
    ReviewOutcome,
    ReviewStats,
    SortSpec,
    Tag,
    VocabularyItem,
)


class CatalogClient(ABC):
    """
    Port for the catalog service that owns vocabulary items and schedules reviews.

    Every method raises a lexis.domain.errors.CatalogError subclass on failure:
    TransportError for network/parse problems, NotFoundError for unknown ids,
    ValidationError for rejected payloads.

    Implementations:
        - HttpCatalogClient: REST API over httpx.
    """

    @abstractmethod
    async def fetch_due_items(self) -> list[VocabularyItem]:
        """
        Fetch every item currently due, in the catalog's review order.
        """

    @abstractmethod
    async def fetch_item(self, vocab_id: int) -> VocabularyItem:
        """
        Fetch a single item regardless of its due status.

        Raises:
            NotFoundError: if the id is unknown.
        """

    @abstractmethod
    async def submit_outcome(self, outcome: ReviewOutcome) -> ReviewLogRecord:
        """
        Record a review outcome. The catalog updates familiarity and schedule.

        Raises:
            ValidationError: if the outcome payload is rejected.
        """

    @abstractmethod
    async def list_items(
        self,
        filters: FilterSpec | None = None,
        page: PageSpec | None = None,
        sort: SortSpec | None = None,
    ) -> ItemPage:
        """
        List items matching a filter, one page at a time.
        """

    @abstractmethod
    async def review_stats(self) -> ReviewStats:
        pass

    @abstractmethod
    async def review_logs(
        self, vocabulary_id: int | None = None, limit: int | None = None
    ) -> list[ReviewLogRecord]:
        pass

    @abstractmethod
    async def list_tags(self) -> list[Tag]:
        pass

    @abstractmethod
    async def create_tag(
        self, name: str, color: str | None = None, description: str | None = None
    ) -> Tag:
        pass

    @abstractmethod
    async def create_item(self, fields: dict[str, Any]) -> VocabularyItem:
        """
        Create an item. fields use VocabularyItem names (meaning,
        part_of_speech, phonetic, ...) plus tag_ids with confirmed tag ids only.
        """
        pass

    @abstractmethod
    async def update_item(self, vocab_id: int, fields: dict[str, Any]) -> VocabularyItem:
        pass

    @abstractmethod
    async def delete_item(self, vocab_id: int) -> None:
        pass

    @abstractmethod
    async def import_items(self, data: str, fmt: str) -> ImportResult:
        """
        Hand a CSV or JSON payload to the catalog; the catalog parses it.
        """

    @abstractmethod
    async def export_items(self, fmt: str, filters: FilterSpec | None = None) -> bytes:
        """
        Export matching items as a CSV or JSON document produced by the catalog.
        """

    async def close(self) -> None:
        """Release any underlying connections."""
        return None
