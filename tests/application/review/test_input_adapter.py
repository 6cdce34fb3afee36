import asyncio

import pytest

from lexis.application.review.input_adapter import KeyEvent, ReviewCommand, ReviewInputAdapter
from lexis.application.review.session import ReviewSession

SPACE = KeyEvent(key=" ", code="Space")
LEFT = KeyEvent(key="ArrowLeft", code="ArrowLeft")
RIGHT = KeyEvent(key="ArrowRight", code="ArrowRight")


class FakeKeySource:
    """Collects listeners the way a window/document would."""

    def __init__(self):
        self.listeners = []

    def subscribe(self, listener):
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def press(self, event):
        for listener in list(self.listeners):
            listener(event)


async def _loaded_session(mock_catalog, items) -> ReviewSession:
    mock_catalog.fetch_due_items.return_value = items
    session = ReviewSession(mock_catalog)
    await session.load()
    return session


# --- Translation ---


def test_translate_default_bindings(mock_catalog):
    adapter = ReviewInputAdapter(ReviewSession(mock_catalog))
    assert adapter.translate(SPACE) is ReviewCommand.REVEAL
    assert adapter.translate(LEFT) is ReviewCommand.INCORRECT
    assert adapter.translate(RIGHT) is ReviewCommand.CORRECT
    assert adapter.translate(KeyEvent(key="x", code="KeyX")) is None


def test_translate_drops_repeats_and_text_fields(mock_catalog):
    adapter = ReviewInputAdapter(ReviewSession(mock_catalog))
    assert adapter.translate(KeyEvent(key=" ", code="Space", repeat=True)) is None
    assert adapter.translate(KeyEvent(key=" ", code="Space", target="INPUT")) is None
    assert adapter.translate(KeyEvent(key="ArrowLeft", code="ArrowLeft", target="textarea")) is None
    assert adapter.translate(KeyEvent(key=" ", code="Space", target="div")) is ReviewCommand.REVEAL


def test_debounce_window(mock_catalog):
    now = [0.0]
    adapter = ReviewInputAdapter(ReviewSession(mock_catalog), debounce=0.2, clock=lambda: now[0])

    assert adapter.translate(RIGHT) is ReviewCommand.CORRECT
    now[0] = 0.1
    assert adapter.translate(RIGHT) is None
    assert adapter.translate(LEFT) is ReviewCommand.INCORRECT
    now[0] = 0.5
    assert adapter.translate(RIGHT) is ReviewCommand.CORRECT


# --- Dispatch ---


@pytest.mark.asyncio
async def test_feed_reveal_then_answer(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items)
    adapter = ReviewInputAdapter(session)

    assert await adapter.feed(RIGHT) is None  # not revealed yet
    assert await adapter.feed(SPACE) is ReviewCommand.REVEAL
    assert await adapter.feed(RIGHT) is ReviewCommand.CORRECT
    assert session.stats.correct == 1
    assert session.current_view().index == 1


@pytest.mark.asyncio
async def test_held_space_reveals_once(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items)
    adapter = ReviewInputAdapter(session)

    await adapter.feed(SPACE)
    assert await adapter.feed(KeyEvent(key=" ", code="Space", repeat=True)) is None
    assert session.current_view().revealed is True


@pytest.mark.asyncio
async def test_click_shares_keyboard_guard(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items)
    gate = asyncio.Event()

    async def slow_submit(outcome):
        await gate.wait()

    mock_catalog.submit_outcome.side_effect = slow_submit
    adapter = ReviewInputAdapter(session)
    await adapter.click(ReviewCommand.REVEAL)

    key_task = asyncio.create_task(adapter.feed(RIGHT))
    await asyncio.sleep(0)
    assert await adapter.click(ReviewCommand.INCORRECT) is False

    gate.set()
    assert await key_task is ReviewCommand.CORRECT
    assert mock_catalog.submit_outcome.await_count == 1


@pytest.mark.asyncio
async def test_restart_command(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items[:1])
    adapter = ReviewInputAdapter(session)
    await adapter.click(ReviewCommand.REVEAL)
    await adapter.click(ReviewCommand.CORRECT)

    assert await adapter.feed(KeyEvent(key="r", code="KeyR")) is ReviewCommand.RESTART
    assert mock_catalog.fetch_due_items.await_count == 2


@pytest.mark.asyncio
async def test_restart_refused_while_answer_in_flight(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items)
    gate = asyncio.Event()

    async def slow_submit(outcome):
        await gate.wait()

    mock_catalog.submit_outcome.side_effect = slow_submit
    adapter = ReviewInputAdapter(session)
    await adapter.click(ReviewCommand.REVEAL)

    answer_task = asyncio.create_task(adapter.click(ReviewCommand.CORRECT))
    await asyncio.sleep(0)
    assert await adapter.feed(KeyEvent(key="r", code="KeyR")) is None

    gate.set()
    assert await answer_task is True
    assert mock_catalog.fetch_due_items.await_count == 1


# --- Registration ---


@pytest.mark.asyncio
async def test_attached_source_drives_session(mock_catalog, items):
    session = await _loaded_session(mock_catalog, items)
    source = FakeKeySource()

    with ReviewInputAdapter(session) as adapter:
        adapter.attach(source)
        assert adapter.attached
        source.press(SPACE)
        await adapter.drain()
        source.press(LEFT)
        await adapter.drain()

    assert source.listeners == []
    assert adapter.attached is False
    assert session.stats.total == 1
    assert session.stats.correct == 0

    # Detached: further presses reach nobody.
    source.press(SPACE)
    assert session.current_view().revealed is False


def test_attach_twice_rejected(mock_catalog):
    adapter = ReviewInputAdapter(ReviewSession(mock_catalog))
    adapter.attach(FakeKeySource())
    with pytest.raises(RuntimeError):
        adapter.attach(FakeKeySource())
    adapter.detach()
    adapter.detach()
    assert adapter.attached is False
