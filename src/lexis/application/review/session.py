"""
Review session engine.

Drives one pass over a snapshot of vocabulary items:

    LOADING -> EMPTY | IN_PROGRESS -> COMPLETED
    LOADING -> ERROR

Each IN_PROGRESS item is Hidden until revealed, then answered exactly once.
Stats only ever reflect outcomes the catalog has acknowledged.
"""

import logging
import time
from collections.abc import Callable

from lexis.domain.errors import CatalogError
from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import ReviewOutcome, VocabularyItem
from lexis.domain.review.models import (
    CurrentView,
    LoadRequest,
    SessionPhase,
    SessionState,
    SessionStats,
    SessionSummary,
)

logger = logging.getLogger(__name__)


class ReviewSession:
    """
    Owns the state of a single review session.

    The presentation layer constructs one per active review view and drops it
    when navigating away. The catalog is injected, never imported.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        *,
        clock: Callable[[], float] = time.monotonic,
        track_response_time: bool = False,
    ):
        """
        Args:
            catalog: The catalog port used for fetching items and submitting outcomes.
            clock: Monotonic time source, used for response times.
            track_response_time: Send the elapsed seconds per item with each outcome.
        """
        self._catalog = catalog
        self._clock = clock
        self._track_response_time = track_response_time
        self._state = SessionState()
        self._load_seq = 0

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def stats(self) -> SessionStats:
        return self._state.stats

    @property
    def request(self) -> LoadRequest:
        return self._state.request

    @property
    def error(self) -> CatalogError | None:
        return self._state.error

    @property
    def error_message(self) -> str | None:
        return str(self._state.error) if self._state.error else None

    @property
    def in_flight(self) -> bool:
        return self._state.in_flight

    @property
    def items(self) -> tuple[VocabularyItem, ...]:
        return self._state.items

    def current_view(self) -> CurrentView | None:
        state = self._state
        item = state.current_item
        if item is None:
            return None
        total = len(state.items)
        return CurrentView(
            item=item,
            index=state.current_index,
            total=total,
            revealed=state.answer_revealed,
            progress_percent=(state.current_index + 1) / total * 100,
        )

    def summary(self) -> SessionSummary | None:
        if self._state.phase != SessionPhase.COMPLETED:
            return None
        stats = self._state.stats
        return SessionSummary(
            correct=stats.correct,
            total=stats.total,
            accuracy_percent=accuracy_percent(stats.correct, stats.total),
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def load(self, vocab_id: int | None = None) -> SessionPhase:
        """
        Start a fresh session, discarding the previous state entirely.

        With vocab_id, the session reviews exactly that item whether or not
        it is due. Otherwise it reviews the catalog's due queue in the order
        returned. Failures land in the ERROR phase; nothing is retried.

        Ignored while an answer is in flight: the current phase is returned
        unchanged and nothing is fetched.
        """
        if self._state.in_flight:
            logger.debug("[review] load ignored while an answer is in flight")
            return self.phase

        request = LoadRequest(vocab_id=vocab_id)
        self._load_seq += 1
        seq = self._load_seq
        state = SessionState(request=request)
        self._state = state

        try:
            if request.single_item:
                items = [await self._catalog.fetch_item(request.vocab_id)]
            else:
                items = await self._catalog.fetch_due_items()
        except CatalogError as e:
            if seq == self._load_seq:
                logger.error(f"[review] load failed ({request}): {e}")
                state.error = e
                state.phase = SessionPhase.ERROR
            return self.phase

        if seq != self._load_seq:
            # A newer load replaced this session while we were fetching.
            logger.debug(f"[review] dropping stale load result for {request}")
            return self.phase

        state.items = tuple(items)
        if not state.items:
            state.phase = SessionPhase.EMPTY
            logger.info("[review] nothing due")
        else:
            state.phase = SessionPhase.IN_PROGRESS
            state.shown_at = self._clock()
            logger.info(f"[review] session started with {len(state.items)} item(s)")
        return state.phase

    async def restart(self) -> SessionPhase:
        """
        Reload with the same request the current session was created from.

        Like load, a no-op while an answer is in flight.
        """
        return await self.load(self._state.request.vocab_id)

    def reveal(self) -> bool:
        """
        Show the back of the current item.

        Returns False (and changes nothing) unless the session is in progress
        and the answer is still hidden.
        """
        state = self._state
        if state.phase != SessionPhase.IN_PROGRESS or state.answer_revealed:
            return False
        state.answer_revealed = True
        return True

    async def answer(self, is_correct: bool) -> bool:
        """
        Submit the judgment for the current item, then advance.

        Accepted only while the answer is revealed and no submission is in
        flight; any other call is a no-op returning False. The cursor and
        stats move only after the catalog acknowledges the outcome.

        Raises:
            CatalogError: if the catalog rejects or fails the submission. The
                session stays on the same, still revealed, item with the error
                recorded, so the caller may retry.
        """
        state = self._state
        if (
            state.phase != SessionPhase.IN_PROGRESS
            or not state.answer_revealed
            or state.in_flight
        ):
            return False

        item = state.items[state.current_index]
        outcome = ReviewOutcome(
            vocabulary_id=item.id,
            is_correct=is_correct,
            response_time=self._response_time(state),
        )

        state.in_flight = True
        state.error = None
        try:
            await self._catalog.submit_outcome(outcome)
        except CatalogError as e:
            logger.warning(f"[review] submit failed for vocab={item.id}: {e}")
            state.error = e
            raise
        finally:
            state.in_flight = False

        state.stats = state.stats.record(is_correct)
        if state.is_last:
            state.phase = SessionPhase.COMPLETED
            logger.info(
                f"[review] completed: {state.stats.correct}/{state.stats.total} correct"
            )
        else:
            state.current_index += 1
            state.answer_revealed = False
            state.shown_at = self._clock()
        return True

    def _response_time(self, state: SessionState) -> float | None:
        if not self._track_response_time or state.shown_at is None:
            return None
        return round(self._clock() - state.shown_at, 3)


def accuracy_percent(correct: int, total: int) -> int:
    """Percentage of correct answers rounded half up; 0 when nothing was answered."""
    if total <= 0:
        return 0
    return int(correct * 100 / total + 0.5)
