"""Cursor navigation over a game tree, bound to a board widget.

Every transition replays the moves from the root to the target node on a
brand-new :class:`~pgnreader.rules.RulesEngine` instead of undoing or
advancing a long-lived one, then issues exactly one
``board.set_position(node.position, animate)``.  Transitions that cannot
happen (stepping past the end, a node no longer in the tree) change nothing
and render nothing.

Keyboard routing lives in :class:`FocusRouter`: the host registers one
navigator per widget and says which widget has focus; there is no
module-level "active navigator".
"""

from __future__ import annotations

from typing import Callable

import chess

from .board import BoardWidget
from .models import GameNode, GameTree
from .rules import RulesEngine

Listener = Callable[[GameNode], None]


class Navigator:
    """Single cursor over *tree*.

    Parameters
    ----------
    tree:
        The game tree to browse.  The editor mutates the same object.
    board:
        Render target; receives one ``set_position`` per transition.
    """

    def __init__(self, tree: GameTree, board: BoardWidget) -> None:
        self.tree = tree
        self.board = board
        self.cursor: GameNode = tree.root
        self._listeners: list[Listener] = []
        self.board.set_position(tree.root.position, False)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, callback: Listener) -> None:
        """Call *callback(cursor)* after every transition."""
        self._listeners.append(callback)

    def notify(self) -> None:
        for callback in list(self._listeners):
            callback(self.cursor)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def to_start(self, animate: bool = True) -> bool:
        return self._go(self.tree.root, animate)

    def to_end(self, animate: bool = True) -> bool:
        start = self.cursor if self.tree.contains(self.cursor) else self.tree.root
        return self._go(start.mainline_end(), animate)

    def step_forward(self, animate: bool = True) -> bool:
        if not self.tree.contains(self.cursor):
            return False
        return self._go(self.cursor.mainline, animate)

    def step_backward(self, animate: bool = True) -> bool:
        if not self.tree.contains(self.cursor):
            return False
        return self._go(self.cursor.parent, animate)

    def goto(self, node: GameNode | None, animate: bool = True) -> bool:
        """Jump straight to *node* (move-list click, variation entry)."""
        return self._go(node, animate)

    def _go(self, node: GameNode | None, animate: bool) -> bool:
        if node is None or node is self.cursor or not self.tree.contains(node):
            return False
        if replay(node) is None:
            return False
        self.cursor = node
        self.board.set_position(node.position, animate)
        self.notify()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def engine(self) -> RulesEngine:
        """Fresh rules engine positioned at the cursor."""
        engine = replay(self.cursor) if self.tree.contains(self.cursor) else None
        return engine if engine is not None else RulesEngine(self.tree.start_fen)

    @property
    def at_start(self) -> bool:
        return self.cursor is self.tree.root

    @property
    def at_end(self) -> bool:
        return self.cursor.mainline is None


def replay(node: GameNode) -> RulesEngine | None:
    """Replay root → *node* on a new engine; None if any step is rejected."""
    path = node.path()
    engine = RulesEngine(path[0].position)
    for step in path[1:]:
        if engine.move(chess.Move.from_uci(step.uci)) is None:
            return None
    return engine


# ---------------------------------------------------------------------------
# Keyboard routing
# ---------------------------------------------------------------------------

KEY_ACTIONS: dict[str, str] = {
    "ArrowLeft": "step_backward",
    "ArrowRight": "step_forward",
    "ArrowUp": "to_start",
    "ArrowDown": "to_end",
}

_TEXT_ENTRY_TAGS = frozenset({"input", "textarea"})


class FocusRouter:
    """Host-owned mapping from widget id to its navigator."""

    def __init__(self) -> None:
        self._navigators: dict[str, Navigator] = {}
        self.focused: str | None = None

    def register(self, widget_id: str, navigator: Navigator) -> None:
        self._navigators[widget_id] = navigator
        if self.focused is None:
            self.focused = widget_id

    def unregister(self, widget_id: str) -> None:
        self._navigators.pop(widget_id, None)
        if self.focused == widget_id:
            self.focused = None

    def focus(self, widget_id: str) -> None:
        if widget_id not in self._navigators:
            raise ValueError(f"Unknown widget id: {widget_id!r}")
        self.focused = widget_id

    def dispatch_key(self, key: str, target_tag: str | None = None) -> bool:
        """Route an arrow key to the focused navigator.

        Returns True when the key was consumed, so the host can suppress its
        default action.  Keys typed into text fields are never consumed.
        """
        if target_tag is not None and target_tag.lower() in _TEXT_ENTRY_TAGS:
            return False
        action = KEY_ACTIONS.get(key)
        navigator = self._navigators.get(self.focused) if self.focused else None
        if action is None or navigator is None:
            return False
        getattr(navigator, action)(animate=True)
        return True
