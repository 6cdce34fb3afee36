"""Terminal presentation shell for review sessions."""

import asyncio
import logging
from collections.abc import Callable

import typer

from lexis.application.review.input_adapter import KeyEvent, ReviewCommand, ReviewInputAdapter
from lexis.application.review.session import ReviewSession, accuracy_percent
from lexis.domain.constants import (
    FAMILIARITY_MAX,
    KEY_CORRECT,
    KEY_INCORRECT,
    KEY_RESTART,
    KEY_REVEAL,
)
from lexis.domain.errors import CatalogError
from lexis.domain.review.models import SessionPhase

logger = logging.getLogger(__name__)

# Raw sequences returned by click.getchar (POSIX escape codes and Windows scan codes).
TERMINAL_KEYS: dict[str, tuple[str, str]] = {
    " ": (" ", KEY_REVEAL),
    "\r": (" ", KEY_REVEAL),
    "\n": (" ", KEY_REVEAL),
    "\x1b[D": ("ArrowLeft", KEY_INCORRECT),
    "\x1b[C": ("ArrowRight", KEY_CORRECT),
    "\xe0K": ("ArrowLeft", KEY_INCORRECT),
    "\xe0M": ("ArrowRight", KEY_CORRECT),
    "h": ("h", KEY_INCORRECT),
    "l": ("l", KEY_CORRECT),
    "r": ("r", KEY_RESTART),
}
QUIT_KEYS = {"q", "\x1b"}


def key_event_from_terminal(raw: str) -> KeyEvent | None:
    """Translate a raw terminal read into a KeyEvent, None for unmapped input."""
    mapped = TERMINAL_KEYS.get(raw) or TERMINAL_KEYS.get(raw.lower())
    if mapped is None:
        return None
    key, code = mapped
    return KeyEvent(key=key, code=code)


def render(session: ReviewSession) -> None:
    """Print the current session state."""
    phase = session.phase
    if phase == SessionPhase.ERROR:
        typer.secho(f"Could not load review: {session.error_message}", fg="red")
        typer.echo("[r] retry  [q] quit")
        return
    if phase == SessionPhase.EMPTY:
        typer.secho("Nothing to review right now. Well done!", fg="green")
        return
    if phase == SessionPhase.COMPLETED:
        summary = session.summary()
        typer.secho("Review complete!", fg="green", bold=True)
        typer.echo(f"  Total:    {summary.total}")
        typer.echo(f"  Correct:  {summary.correct}")
        typer.echo(f"  Accuracy: {summary.accuracy_percent}%")
        typer.echo("[r] review again  [q] quit")
        return

    view = session.current_view()
    if view is None:
        return
    item = view.item
    typer.echo("")
    typer.echo(f"Progress {view.index + 1} / {view.total} ({view.progress_percent:.0f}%)")
    header = typer.style(item.word, bold=True)
    if item.phonetic:
        header += f"  /{item.phonetic}/"
    if item.part_of_speech:
        header += f"  [{item.part_of_speech}]"
    typer.echo(header)

    if view.revealed:
        typer.echo(f"  {item.meaning}")
        if item.examples:
            typer.echo(f'  "{item.examples}"')
        if item.notes:
            typer.echo(f"  {item.notes}")
        flags = f"familiarity {item.familiarity}/{FAMILIARITY_MAX}"
        if item.is_hard:
            flags += ", marked hard"
        typer.echo(f"  ({flags})")
        typer.echo("[<-/h] wrong  [->/l] right  [q] quit")
    else:
        typer.echo("[space] show answer  [q] quit")

    stats = session.stats
    typer.echo(
        f"Correct: {stats.correct}  Total: {stats.total}  "
        f"Accuracy: {accuracy_percent(stats.correct, stats.total)}%"
    )
    if session.error is not None:
        typer.secho(f"Submit failed: {session.error_message} (try again)", fg="red")


async def run_review(
    session: ReviewSession,
    vocab_id: int | None = None,
    read_key: Callable[[], str] = typer.getchar,
    debounce: float = 0.0,
) -> SessionPhase:
    """
    Drive a review session from the terminal until the user quits.

    Returns the phase the session ended in.
    """
    typer.echo("Loading review items...")
    await session.load(vocab_id)
    adapter = ReviewInputAdapter(session, debounce=debounce)

    while True:
        render(session)
        if session.phase == SessionPhase.EMPTY:
            break

        raw = await asyncio.to_thread(read_key)
        if raw in QUIT_KEYS:
            break
        event = key_event_from_terminal(raw)
        if event is None:
            continue
        command = adapter.translate(event)
        if command is None:
            continue
        if command is ReviewCommand.RESTART and session.phase == SessionPhase.IN_PROGRESS:
            # Restart is only offered on the terminal screens.
            continue
        try:
            await adapter.dispatch(command)
        except CatalogError as e:
            logger.debug(f"answer failed, staying on item: {e}")

    return session.phase
