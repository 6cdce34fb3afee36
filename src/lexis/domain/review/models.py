"""
Domain models for a review session.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from enum import Enum

from lexis.domain.errors import CatalogError
from lexis.domain.models import VocabularyItem


class SessionPhase(str, Enum):
    LOADING = "loading"
    EMPTY = "empty"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class LoadRequest:
    """What a session was asked to review: one item, or the whole due queue."""

    vocab_id: int | None = None

    @property
    def single_item(self) -> bool:
        return self.vocab_id is not None


@dataclass(frozen=True)
class SessionStats:
    """
    Outcomes acknowledged by the catalog during this session.

    Attributes:
        correct: Acknowledged answers marked correct.
        total: Acknowledged answers.
    """

    correct: int = 0
    total: int = 0

    def record(self, is_correct: bool) -> "SessionStats":
        return SessionStats(
            correct=self.correct + (1 if is_correct else 0),
            total=self.total + 1,
        )


@dataclass
class SessionState:
    """
    Working set for one session. Created on load, replaced wholesale on reload.

    items is a snapshot taken at load time; newly due items are not spliced in.
    in_flight guards answer submission and is separate from answer_revealed.
    """

    request: LoadRequest = field(default_factory=LoadRequest)
    items: tuple[VocabularyItem, ...] = ()
    current_index: int = 0
    answer_revealed: bool = False
    stats: SessionStats = field(default_factory=SessionStats)
    phase: SessionPhase = SessionPhase.LOADING
    in_flight: bool = False
    error: CatalogError | None = None
    shown_at: float | None = None

    @property
    def current_item(self) -> VocabularyItem | None:
        if self.phase != SessionPhase.IN_PROGRESS:
            return None
        return self.items[self.current_index]

    @property
    def is_last(self) -> bool:
        return self.current_index >= len(self.items) - 1


@dataclass(frozen=True)
class CurrentView:
    item: VocabularyItem
    index: int
    total: int
    revealed: bool
    progress_percent: float


@dataclass(frozen=True)
class SessionSummary:
    correct: int
    total: int
    accuracy_percent: int
