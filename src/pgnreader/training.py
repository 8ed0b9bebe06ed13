"""Training / puzzle sessions: the user plays one side of a stored line.

The session walks the tree's mainline.  Opponent moves are played
automatically after ``reply_delay_s``; a user drop is accepted only when it
reaches the position the line expects.

Scheduled replies belong to a *generation*.  Any navigation (``step``,
``reset``, ``reveal_next``) bumps the generation and cancels the pending
timer, and a reply callback from an older generation returns without touching
the board or the feedback.
"""

from __future__ import annotations

from .board import BoardWidget, DropResult, Scheduler, TimerHandle
from .models import GameNode, GameTree
from .rules import RulesEngine

_COLOURS = {"w": "w", "white": "w", "b": "b", "black": "b"}


def normalize_colour(colour: str) -> str:
    try:
        return _COLOURS[colour.lower()]
    except KeyError:
        raise ValueError(f"Unknown colour {colour!r}; expected 'white' or 'black'") from None


class TrainingSession:
    """Interactive run through *tree* with the user playing *user_color*.

    Parameters
    ----------
    tree:
        Line to train; only the mainline is followed.
    user_color:
        ``"w"``/``"white"`` or ``"b"``/``"black"``.
    board:
        Render target.
    scheduler:
        Timer source for opponent replies.
    reply_delay_s:
        Pause before an opponent move is played.
    """

    def __init__(
        self,
        tree: GameTree,
        user_color: str,
        board: BoardWidget,
        scheduler: Scheduler,
        reply_delay_s: float = 0.4,
    ) -> None:
        self.tree = tree
        self.user_color = normalize_colour(user_color)
        self.board = board
        self.scheduler = scheduler
        self.reply_delay_s = reply_delay_s

        self.node: GameNode = tree.root
        self.feedback: str | None = None
        self._generation = 0
        self._pending: TimerHandle | None = None

        self.board.set_position(tree.root.position, False)
        self._schedule_if_opponent()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def expected(self) -> GameNode | None:
        """The move the line continues with, if any."""
        return self.node.mainline

    @property
    def solved(self) -> bool:
        return self.node.mainline is None

    @property
    def user_to_move(self) -> bool:
        nxt = self.expected
        return nxt is not None and (nxt.is_white == (self.user_color == "w"))

    @property
    def reply_pending(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    def drop(self, source: str, target: str, promotion: str | None = None) -> DropResult:
        expected = self.expected
        if expected is None or not self.user_to_move or self.reply_pending:
            return DropResult.SNAPBACK

        result = RulesEngine(self.node.position).move_squares(source, target, promotion)
        if result is None:
            return DropResult.SNAPBACK
        if result.fen != expected.position:
            self.feedback = "incorrect"
            return DropResult.SNAPBACK

        self.feedback = "correct"
        # The widget already shows the dropped piece.
        self._show(expected, animate=False)
        self._schedule_if_opponent()
        return DropResult.ACCEPT

    def on_drag_start(self, piece: str) -> bool:
        return bool(piece) and piece[0].lower() == self.user_color and self.user_to_move

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def step(self, delta: int) -> bool:
        """Move *delta* plies along the mainline (negative goes back)."""
        node = self.node
        for _ in range(abs(delta)):
            nxt = node.mainline if delta > 0 else node.parent
            if nxt is None:
                break
            node = nxt
        if node is self.node:
            return False
        self._cancel_pending()
        self.feedback = None
        self._show(node, animate=True)
        return True

    def reset(self) -> None:
        self._cancel_pending()
        self.feedback = None
        self._show(self.tree.root, animate=False)
        self._schedule_if_opponent()

    def reveal_next(self) -> GameNode | None:
        """Play the user's next move and the replies up to the following one."""
        self._cancel_pending()
        node = self.node
        if node.mainline is None:
            return None
        node = node.mainline
        while node.mainline is not None and node.mainline.is_white != (self.user_color == "w"):
            node = node.mainline
        self.feedback = None
        self._show(node, animate=True)
        return node

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _show(self, node: GameNode, animate: bool) -> None:
        self.node = node
        self.board.set_position(node.position, animate)

    def _schedule_if_opponent(self) -> None:
        if self.expected is None or self.user_to_move:
            return
        self._cancel_pending()
        generation = self._generation
        self._pending = self.scheduler.call_later(
            self.reply_delay_s, lambda: self._play_reply(generation)
        )

    def _play_reply(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._pending = None
        reply = self.expected
        if reply is None:
            return
        self._show(reply, animate=True)
        self._schedule_if_opponent()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
