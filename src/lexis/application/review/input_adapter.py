"""
Input adapter: raw keyboard and pointer events -> review session commands.

Keyboard and pointer input share one dispatch path, so the session's
in-flight guard applies to both. Auto-repeat (a held key) and keys typed
into text fields never reach the session.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from lexis.domain.constants import (
    KEY_CORRECT,
    KEY_INCORRECT,
    KEY_RESTART,
    KEY_REVEAL,
    TEXT_INPUT_TARGETS,
)
from lexis.domain.errors import CatalogError

from .session import ReviewSession

logger = logging.getLogger(__name__)


class ReviewCommand(str, Enum):
    REVEAL = "reveal"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    RESTART = "restart"


@dataclass(frozen=True)
class KeyEvent:
    """
    A key press as reported by the presentation shell.

    Attributes:
        key: Logical key value (e.g. "ArrowLeft", "r").
        code: Physical key code (e.g. "Space", "KeyR").
        repeat: True when generated by the OS auto-repeat of a held key.
        target: Tag name of the focused element, if any ("input", "textarea").
    """

    key: str
    code: str = ""
    repeat: bool = False
    target: str | None = None


KeyListener = Callable[[KeyEvent], None]


class KeySource(Protocol):
    """Anything that can deliver key events to a listener until unsubscribed."""

    def subscribe(self, listener: KeyListener) -> Callable[[], None]: ...


DEFAULT_BINDINGS: Mapping[str, ReviewCommand] = {
    KEY_REVEAL: ReviewCommand.REVEAL,
    KEY_INCORRECT: ReviewCommand.INCORRECT,
    KEY_CORRECT: ReviewCommand.CORRECT,
    KEY_RESTART: ReviewCommand.RESTART,
}


class ReviewInputAdapter:
    """
    Translates input events for one active review view.

    Listener registration lives exactly as long as the adapter is attached;
    use it as a context manager around the view's lifetime.
    """

    def __init__(
        self,
        session: ReviewSession,
        bindings: Mapping[str, ReviewCommand] | None = None,
        debounce: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            session: The session commands are dispatched to.
            bindings: Key code (or key value) to command map.
            debounce: Seconds during which a second press of the same key is
                treated as auto-repeat. For sources that cannot flag repeats.
            clock: Monotonic time source.
        """
        self.session = session
        self.bindings = dict(bindings or DEFAULT_BINDINGS)
        self.debounce = debounce
        self._clock = clock
        self._last_press: dict[str, float] = {}
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self, source: KeySource) -> None:
        if self._unsubscribe is not None:
            raise RuntimeError("Input adapter is already attached")
        self._unsubscribe = source.subscribe(self._on_key)
        logger.debug("[input] listener attached")

    def detach(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        self._last_press.clear()
        logger.debug("[input] listener detached")

    def __enter__(self) -> "ReviewInputAdapter":
        return self

    def __exit__(self, *exc) -> None:
        self.detach()

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def translate(self, event: KeyEvent) -> ReviewCommand | None:
        """Map a key event to a command, or None if it must be ignored."""
        if event.repeat:
            return None
        if event.target and event.target.lower() in TEXT_INPUT_TARGETS:
            return None

        command = self.bindings.get(event.code) or self.bindings.get(event.key)
        if command is None:
            return None

        if self.debounce > 0:
            ident = event.code or event.key
            now = self._clock()
            last = self._last_press.get(ident)
            self._last_press[ident] = now
            if last is not None and now - last < self.debounce:
                return None

        return command

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def feed(self, event: KeyEvent) -> ReviewCommand | None:
        """Translate and dispatch a key event. Returns the accepted command."""
        command = self.translate(event)
        if command is None:
            return None
        return command if await self.dispatch(command) else None

    async def click(self, command: ReviewCommand) -> bool:
        """Pointer input; same path and guards as the keyboard."""
        return await self.dispatch(command)

    async def dispatch(self, command: ReviewCommand) -> bool:
        """
        Issue a command to the session. Returns whether the session accepted it.

        Raises:
            CatalogError: propagated from an accepted but failed answer.
        """
        if command is ReviewCommand.REVEAL:
            return self.session.reveal()
        if command is ReviewCommand.CORRECT:
            return await self.session.answer(True)
        if command is ReviewCommand.INCORRECT:
            return await self.session.answer(False)
        if command is ReviewCommand.RESTART:
            if self.session.in_flight:
                return False
            await self.session.restart()
            return True
        raise ValueError(f"Unknown review command: {command!r}")

    def _on_key(self, event: KeyEvent) -> None:
        # Sources call listeners synchronously; translation happens now so
        # repeat/debounce decisions follow arrival order.
        command = self.translate(event)
        if command is None:
            return
        task = asyncio.get_running_loop().create_task(self._run(command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, command: ReviewCommand) -> None:
        try:
            await self.dispatch(command)
        except CatalogError as e:
            # Already recorded on session.error for the view to render.
            logger.warning(f"[input] {command.value} failed: {e}")

    async def drain(self) -> None:
        """Wait for every command scheduled from listener callbacks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
