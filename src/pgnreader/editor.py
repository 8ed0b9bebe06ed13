"""Live editing of a game tree at the navigator's cursor.

Moves come from board drops (or typed SAN) and are checked by a rules engine
replayed to the cursor.  A move that is already a child of the cursor is
navigation, not mutation.  A new move extends the mainline when the cursor
has none and otherwise becomes a variation; an existing mainline is never
overwritten.

Promote and delete act on variation nodes only and keep exactly one inverse
action for :meth:`Editor.undo`.  The next promote or delete replaces it.
"""

from __future__ import annotations

from dataclasses import dataclass

from .board import DropResult
from .models import GameNode, GameTree
from .navigator import Navigator
from .rules import MoveResult


@dataclass
class _UndoAction:
    kind: str                    # "promote" | "delete"
    parent: GameNode
    node: GameNode               # the promoted or deleted node
    index: int                   # its index in parent.variations beforehand
    old_mainline: GameNode | None = None


class Editor:
    """Mutating front-end for a :class:`~pgnreader.navigator.Navigator`.

    ``feedback`` is ``"incorrect"`` after a rejected move and ``None`` after
    an accepted one.
    """

    def __init__(self, navigator: Navigator) -> None:
        self.navigator = navigator
        self.feedback: str | None = None
        self._undo: _UndoAction | None = None

    @property
    def tree(self) -> GameTree:
        return self.navigator.tree

    @property
    def cursor(self) -> GameNode:
        return self.navigator.cursor

    # ------------------------------------------------------------------
    # Board callbacks
    # ------------------------------------------------------------------

    def on_drag_start(self, piece: str) -> bool:
        """Allow dragging only pieces of the side to move (``"wN"``, ``"bp"``)."""
        if not piece or not self.tree.contains(self.cursor):
            return False
        return piece[0].lower() == self.navigator.engine.turn()

    def drop(self, source: str, target: str, promotion: str | None = None) -> DropResult:
        if not self.tree.contains(self.cursor):
            return DropResult.SNAPBACK
        result = self.navigator.engine.move_squares(source, target, promotion)
        if result is None:
            self.feedback = "incorrect"
            return DropResult.SNAPBACK
        self._insert(result)
        return DropResult.ACCEPT

    def insert_move(self, san: str) -> GameNode | None:
        """Play a typed move at the cursor; returns the node now under it."""
        if not self.tree.contains(self.cursor):
            return None
        result = self.navigator.engine.move(san)
        if result is None:
            self.feedback = "incorrect"
            return None
        return self._insert(result)

    def _insert(self, result: MoveResult) -> GameNode:
        cursor = self.cursor
        self.feedback = None

        for child in cursor.children:
            if child.uci == result.uci:
                self.navigator.goto(child)
                return child

        node = GameNode(
            move=result.san,
            position=result.fen,
            ply=cursor.ply + 1,
            san=result.san,
            uci=result.uci,
        )
        if cursor.mainline is None:
            cursor.add_mainline(node)
        else:
            cursor.add_variation(node)
        self.navigator.goto(node)
        return node

    # ------------------------------------------------------------------
    # Variation management
    # ------------------------------------------------------------------

    def _variation_target(
        self, node: GameNode | None
    ) -> tuple[GameNode, GameNode] | None:
        """``(node, parent)`` when *node* (default: the cursor) is a live variation."""
        node = node if node is not None else self.cursor
        parent = node.parent
        if parent is None or not self.tree.contains(node) or not node.is_variation:
            return None
        return node, parent

    @property
    def can_promote(self) -> bool:
        return self._variation_target(None) is not None

    @property
    def can_delete(self) -> bool:
        return self._variation_target(None) is not None

    @property
    def can_undo(self) -> bool:
        return self._undo is not None

    def promote(self, node: GameNode | None = None) -> bool:
        """Make a variation the mainline; the old mainline becomes the first variation."""
        found = self._variation_target(node)
        if found is None:
            return False
        target, parent = found
        index = _index_of(parent.variations, target)
        old_mainline = parent.mainline

        del parent.variations[index]
        if old_mainline is not None:
            parent.variations.insert(0, old_mainline)
        parent.mainline = target

        self._undo = _UndoAction("promote", parent, target, index, old_mainline)
        self.navigator.notify()
        return True

    def delete(self, node: GameNode | None = None) -> bool:
        """Remove a variation and its subtree, moving the cursor out first."""
        found = self._variation_target(node)
        if found is None:
            return False
        target, parent = found

        if any(n is target for n in self.cursor.path()):
            self.navigator.goto(parent)

        index = _index_of(parent.variations, target)
        del parent.variations[index]

        self._undo = _UndoAction("delete", parent, target, index)
        self.navigator.notify()
        return True

    def undo(self) -> bool:
        """Revert the last promote or delete; a second call does nothing."""
        action, self._undo = self._undo, None
        if action is None or not self.tree.contains(action.parent):
            return False
        parent = action.parent

        if action.kind == "delete":
            parent.variations.insert(min(action.index, len(parent.variations)), action.node)
            action.node.parent = parent
        else:
            if parent.mainline is not action.node:
                return False
            if action.old_mainline is not None:
                idx = _index_of(parent.variations, action.old_mainline)
                if idx >= 0:
                    del parent.variations[idx]
            parent.mainline = action.old_mainline
            parent.variations.insert(min(action.index, len(parent.variations)), action.node)

        self.navigator.notify()
        return True

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def set_comment(self, text: str, node: GameNode | None = None) -> bool:
        """Replace a move's comments with *text* (empty text clears them)."""
        node = node if node is not None else self.cursor
        if node.is_root or not self.tree.contains(node):
            return False
        text = " ".join(text.split())
        node.comments = [text] if text else []
        self.navigator.notify()
        return True


def _index_of(nodes: list[GameNode], node: GameNode) -> int:
    for i, candidate in enumerate(nodes):
        if candidate is node:
            return i
    return -1
