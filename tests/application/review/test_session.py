"""Tests for the review session engine: lifecycle, guards and failure handling."""

import asyncio

import pytest

from lexis.application.review.session import ReviewSession, accuracy_percent
from lexis.domain.errors import NotFoundError, TransportError, ValidationError
from lexis.domain.models import ReviewOutcome
from lexis.domain.review.models import SessionPhase, SessionStats


def _session(catalog, **kwargs) -> ReviewSession:
    return ReviewSession(catalog, **kwargs)


# --- Lifecycle ---


@pytest.mark.asyncio
async def test_full_pass_two_items(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items[:2]
    session = _session(mock_catalog)

    assert await session.load() == SessionPhase.IN_PROGRESS
    assert session.reveal() is True
    assert await session.answer(True) is True

    view = session.current_view()
    assert view.item.word == "banana"
    assert (view.index, view.total) == (1, 2)
    assert view.revealed is False
    assert session.stats == SessionStats(correct=1, total=1)

    session.reveal()
    await session.answer(False)

    assert session.phase == SessionPhase.COMPLETED
    summary = session.summary()
    assert (summary.correct, summary.total, summary.accuracy_percent) == (1, 2, 50)
    assert session.current_view() is None


@pytest.mark.asyncio
async def test_empty_queue(mock_catalog):
    session = _session(mock_catalog)
    assert await session.load() == SessionPhase.EMPTY
    assert session.summary() is None
    assert session.current_view() is None


@pytest.mark.asyncio
async def test_single_item_review(mock_catalog, make_item):
    mock_catalog.fetch_item.return_value = make_item(42, "obscure")
    session = _session(mock_catalog)

    await session.load(42)

    mock_catalog.fetch_item.assert_awaited_once_with(42)
    mock_catalog.fetch_due_items.assert_not_called()
    assert [i.id for i in session.items] == [42]
    session.reveal()
    await session.answer(True)
    assert session.phase == SessionPhase.COMPLETED
    assert session.summary().accuracy_percent == 100


@pytest.mark.asyncio
async def test_rejected_answer_keeps_item(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    mock_catalog.submit_outcome.side_effect = ValidationError("bad outcome", status_code=422)
    session = _session(mock_catalog)
    await session.load()
    session.reveal()

    with pytest.raises(ValidationError):
        await session.answer(True)

    assert session.phase == SessionPhase.IN_PROGRESS
    view = session.current_view()
    assert view.index == 0
    assert view.revealed is True
    assert session.stats == SessionStats()
    assert session.error_message == "bad outcome"
    assert session.in_flight is False


@pytest.mark.asyncio
async def test_retry_after_failure_clears_error(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    session = _session(mock_catalog)
    await session.load()
    session.reveal()

    mock_catalog.submit_outcome.side_effect = TransportError("timeout")
    with pytest.raises(TransportError):
        await session.answer(True)

    mock_catalog.submit_outcome.side_effect = None
    mock_catalog.submit_outcome.return_value = None
    assert await session.answer(True) is True
    assert session.error is None
    assert session.current_view().index == 1


@pytest.mark.asyncio
async def test_load_failure_enters_error_phase(mock_catalog):
    mock_catalog.fetch_due_items.side_effect = TransportError("connection refused")
    session = _session(mock_catalog)

    assert await session.load() == SessionPhase.ERROR
    assert session.error_message == "connection refused"
    assert session.current_view() is None
    assert session.reveal() is False


@pytest.mark.asyncio
async def test_missing_single_item(mock_catalog):
    mock_catalog.fetch_item.side_effect = NotFoundError("Vocabulary not found", status_code=404)
    session = _session(mock_catalog)
    assert await session.load(99) == SessionPhase.ERROR
    assert isinstance(session.error, NotFoundError)


# --- Guards ---


@pytest.mark.asyncio
async def test_answer_requires_reveal(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    session = _session(mock_catalog)
    await session.load()

    assert await session.answer(True) is False
    mock_catalog.submit_outcome.assert_not_called()
    assert session.stats.total == 0


@pytest.mark.asyncio
async def test_reveal_is_idempotent(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    session = _session(mock_catalog)
    await session.load()

    assert session.reveal() is True
    assert session.reveal() is False
    view = session.current_view()
    assert view.revealed is True
    assert view.index == 0


@pytest.mark.asyncio
async def test_commands_ignored_after_completion(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items[:1]
    session = _session(mock_catalog)
    await session.load()
    session.reveal()
    await session.answer(True)

    assert session.reveal() is False
    assert await session.answer(False) is False
    assert session.stats.total == 1


@pytest.mark.asyncio
async def test_only_one_answer_in_flight(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    gate = asyncio.Event()
    submitted = []

    async def slow_submit(outcome):
        submitted.append(outcome)
        await gate.wait()

    mock_catalog.submit_outcome.side_effect = slow_submit
    session = _session(mock_catalog)
    await session.load()
    session.reveal()

    first = asyncio.create_task(session.answer(True))
    await asyncio.sleep(0)
    assert session.in_flight is True

    assert await session.answer(False) is False
    assert session.reveal() is False

    gate.set()
    assert await first is True
    assert len(submitted) == 1
    assert session.stats == SessionStats(correct=1, total=1)
    assert session.current_view().index == 1


# --- Restart ---


@pytest.mark.asyncio
async def test_restart_reuses_original_request(mock_catalog, make_item):
    mock_catalog.fetch_item.return_value = make_item(5)
    session = _session(mock_catalog)
    await session.load(5)
    session.reveal()
    await session.answer(True)

    assert await session.restart() == SessionPhase.IN_PROGRESS
    assert mock_catalog.fetch_item.await_count == 2
    assert session.stats == SessionStats()
    assert session.current_view().revealed is False


@pytest.mark.asyncio
async def test_restart_refused_while_answer_in_flight(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    gate = asyncio.Event()

    async def slow_submit(outcome):
        await gate.wait()

    mock_catalog.submit_outcome.side_effect = slow_submit
    session = _session(mock_catalog)
    await session.load()
    session.reveal()

    pending = asyncio.create_task(session.answer(True))
    await asyncio.sleep(0)
    assert session.in_flight is True

    assert await session.restart() == SessionPhase.IN_PROGRESS
    assert await session.load(42) == SessionPhase.IN_PROGRESS
    assert mock_catalog.fetch_due_items.await_count == 1
    mock_catalog.fetch_item.assert_not_called()

    gate.set()
    assert await pending is True
    assert session.stats == SessionStats(correct=1, total=1)
    assert session.current_view().index == 1

    # Once resolved, restart goes through again.
    await session.restart()
    assert mock_catalog.fetch_due_items.await_count == 2
    assert session.stats == SessionStats()


@pytest.mark.asyncio
async def test_stale_load_is_dropped(mock_catalog, items, make_item):
    gate = asyncio.Event()

    async def slow_due():
        await gate.wait()
        return items

    mock_catalog.fetch_due_items.side_effect = slow_due
    mock_catalog.fetch_item.return_value = make_item(42)
    session = _session(mock_catalog)

    first = asyncio.create_task(session.load())
    await asyncio.sleep(0)
    await session.load(42)
    gate.set()
    await first

    assert [i.id for i in session.items] == [42]


# --- Outcome payload ---


@pytest.mark.asyncio
async def test_outcome_without_response_time(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    session = _session(mock_catalog)
    await session.load()
    session.reveal()
    await session.answer(False)

    mock_catalog.submit_outcome.assert_awaited_once_with(
        ReviewOutcome(vocabulary_id=1, is_correct=False, response_time=None, review_type="normal")
    )


@pytest.mark.asyncio
async def test_response_time_tracking(mock_catalog, items):
    mock_catalog.fetch_due_items.return_value = items
    ticks = iter([10.0, 12.5, 13.0])
    session = _session(mock_catalog, clock=lambda: next(ticks), track_response_time=True)
    await session.load()
    session.reveal()
    await session.answer(True)

    outcome = mock_catalog.submit_outcome.await_args.args[0]
    assert outcome.response_time == 2.5


# --- Accuracy ---


@pytest.mark.parametrize(
    "correct,total,expected",
    [(0, 0, 0), (1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 5, 100)],
)
def test_accuracy_percent(correct, total, expected):
    assert accuracy_percent(correct, total) == expected
