"""
Domain models for vocabulary items, tags, reviews and list queries.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import date, datetime

from lexis.domain.constants import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    REVIEW_TYPE_NORMAL,
)


@dataclass(frozen=True)
class Tag:
    """
    A catalog tag. Treated as opaque display data by the review engine.

    Attributes:
        id: Catalog-assigned identifier.
        name: Display name.
        color: Optional display color (e.g. "#3b82f6").
        description: Optional free text.
        created_at: Creation timestamp reported by the catalog.
    """

    id: int
    name: str
    color: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ConfirmedTag:
    """A tag the catalog has persisted."""

    tag: Tag

    @property
    def name(self) -> str:
        return self.tag.name


@dataclass(frozen=True)
class PendingTag:
    """
    A tag created locally that the catalog has not yet acknowledged.

    local_id is a prefixed ULID string, so it can never be mistaken for a
    catalog id.
    """

    local_id: str
    name: str
    color: str | None = None


TagEntry = ConfirmedTag | PendingTag


@dataclass(frozen=True)
class VocabularyItem:
    """
    A vocabulary entry as served by the catalog.

    Attributes:
        id: Opaque catalog identifier.
        word: Front text.
        meaning: Back text.
        familiarity: 1 (new) .. 5 (mastered), maintained by the catalog.
        is_hard: User-flagged as difficult.
        next_review_at: When the catalog will next consider the item due.
        tags: Ordered tags, unique by id.
    """

    id: int
    word: str
    meaning: str
    part_of_speech: str | None = None
    notes: str | None = None
    examples: str | None = None
    phonetic: str | None = None
    familiarity: int = 1
    is_hard: bool = False
    next_review_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_reviewed_at: datetime | None = None
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class ReviewOutcome:
    """
    The judgment for one item within a session.

    Attributes:
        vocabulary_id: Item being judged.
        is_correct: Whether the user recalled the meaning.
        response_time: Seconds between the item being shown and the answer.
        review_type: Label understood by the catalog ("normal").
    """

    vocabulary_id: int
    is_correct: bool
    response_time: float | None = None
    review_type: str = REVIEW_TYPE_NORMAL


@dataclass(frozen=True)
class ReviewLogRecord:
    """A review outcome as acknowledged and stored by the catalog."""

    id: int
    vocabulary_id: int
    is_correct: bool
    review_type: str
    response_time: float | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ReviewStats:
    """Account-wide review figures computed by the catalog."""

    total_reviews: int
    correct_reviews: int
    accuracy_rate: float
    today_reviews: int
    due_vocabularies: int
    hard_vocabularies: int
    total_vocabularies: int


@dataclass(frozen=True)
class ItemPage:
    """One page of a filtered item listing."""

    items: list[VocabularyItem]
    total: int
    page: int
    size: int
    page_count: int


@dataclass(frozen=True)
class FilterSpec:
    """
    Structured list filter. Every field is independently optional.

    None and "" both mean "no constraint". Date bounds accept date objects
    or ISO strings. Field order here is the wire order of the composed query.
    """

    search: str | None = None
    letter: str | None = None
    tag_ids: tuple[int, ...] = ()
    is_hard: bool | None = None
    familiarity_min: int | None = None
    familiarity_max: int | None = None
    created_after: date | str | None = None
    created_before: date | str | None = None
    last_review_after: date | str | None = None
    last_review_before: date | str | None = None
    due_after: date | str | None = None
    due_before: date | str | None = None


@dataclass(frozen=True)
class PageSpec:
    """1-based page cursor."""

    page: int = DEFAULT_PAGE
    size: int = DEFAULT_PAGE_SIZE

    def with_page(self, page: int) -> "PageSpec":
        return PageSpec(page=page, size=self.size)

    def with_size(self, size: int) -> "PageSpec":
        # A new page size invalidates the current position.
        return PageSpec(page=DEFAULT_PAGE, size=size)

    def first(self) -> "PageSpec":
        return PageSpec(page=DEFAULT_PAGE, size=self.size)


@dataclass(frozen=True)
class SortSpec:
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER


@dataclass(frozen=True)
class ImportResult:
    message: str
    imported_count: int
    skipped_count: int
