"""Board-widget collaborator contracts and animation settling.

The core never draws anything.  It talks to a board widget through
:class:`BoardWidget` (one call: show this FEN, animated or not) and answers
the widget's drag callbacks with :class:`DropResult`.

Timing
------
Animated transitions are followed by a "hard resync": once the animation has
had time to settle, the same FEN is pushed again without animation so the
widget cannot be left showing a half-finished slide.  :class:`SettlingBoard`
owns that delay.  A newer ``set_position`` always wins: it cancels any resync
still pending for an older position.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol


class BoardWidget(Protocol):
    def set_position(self, fen: str, animate: bool) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with ``call_later``; ``asyncio`` event loops qualify."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class DropResult(str, Enum):
    """Answer to a board widget's drop callback."""

    ACCEPT = "accept"
    SNAPBACK = "snapback"


class SettlingBoard:
    """Board-widget wrapper that resyncs after each animated transition.

    Parameters
    ----------
    widget:
        The real board widget.
    scheduler:
        Timer source for the resync.
    settle_s:
        Delay between an animated ``set_position`` and its resync.
    """

    def __init__(self, widget: BoardWidget, scheduler: Scheduler, settle_s: float = 0.25) -> None:
        self._widget = widget
        self._scheduler = scheduler
        self._settle_s = settle_s
        self._pending: TimerHandle | None = None
        self._generation = 0
        self.fen: str | None = None

    def set_position(self, fen: str, animate: bool) -> None:
        self._cancel_pending()
        self._generation += 1
        self.fen = fen
        self._widget.set_position(fen, animate)
        if animate:
            generation = self._generation
            self._pending = self._scheduler.call_later(
                self._settle_s, lambda: self._resync(generation)
            )

    def _resync(self, generation: int) -> None:
        # The handle may fire after being superseded if the scheduler could
        # not cancel it in time.
        if generation != self._generation or self.fen is None:
            return
        self._pending = None
        self._widget.set_position(self.fen, False)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
