"""Shared data-model types: tokens, game nodes and the game tree."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

import chess


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenKind(str, Enum):
    MOVE_NUMBER = "move_number"
    SAN = "san"
    COMMENT_OPEN = "comment_open"
    COMMENT_TEXT = "comment_text"
    VARIATION_OPEN = "variation_open"
    VARIATION_CLOSE = "variation_close"
    NAG = "nag"
    EVAL = "eval"
    RESULT = "result"
    DIAGRAM = "diagram"


@dataclass(frozen=True)
class Token:
    """One classified piece of movetext.

    ``text`` is the source spelling.  ``glyph`` holds the display glyph for
    NAG and evaluation tokens and the normalized result for result tokens.
    """

    kind: TokenKind
    text: str
    glyph: str = ""


# ---------------------------------------------------------------------------
# Game tree
# ---------------------------------------------------------------------------

_ids = itertools.count(1)


def _next_id() -> int:
    return next(_ids)


@dataclass(eq=False)
class GameNode:
    """A move in the game tree (or the synthetic root when ``move`` is None).

    ``mainline`` and ``variations`` own the successors; ``parent`` is a plain
    back-reference.  Equality is identity, so list membership checks never
    confuse two nodes carrying the same move.
    """

    move: str | None          # display text as authored, e.g. "0-0+!"
    position: str             # FEN after the move (start FEN for the root)
    ply: int                  # 0-based half-move index of this move
    parent: GameNode | None = None
    san: str = ""             # engine SAN, decorations stripped
    uci: str = ""
    mainline: GameNode | None = None
    variations: list[GameNode] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    annotations: list[str] = field(default_factory=list)  # NAG / eval glyphs
    inert: list[str] = field(default_factory=list)        # rejected tokens after the move
    leading_comments: list[str] = field(default_factory=list)
    leading_inert: list[str] = field(default_factory=list)
    diagram: bool = False
    id: int = field(default_factory=_next_id)

    # ------------------------------------------------------------------
    # Move numbering
    # ------------------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_white(self) -> bool:
        """True when White made this node's move."""
        return self.ply % 2 == 0

    @property
    def move_number(self) -> int:
        return self.ply // 2 + 1

    @property
    def number_shown(self) -> bool:
        """True when the move list prints this move's number.

        White moves always carry one.  A Black move carries one when it opens
        a line or follows an interruption: text written before it, or a
        comment, a diagram or the alternatives printed after the previous
        move.  The answer is read off the current tree, so it stays right
        after lines are added, promoted or deleted.
        """
        if self.is_white or self.leading_comments or self.leading_inert:
            return True
        prev = self.parent
        if prev is None or prev.parent is None or prev.mainline is not self:
            return True
        if prev.comments or prev.diagram:
            return True
        return prev.parent.mainline is prev and bool(prev.parent.variations)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def children(self) -> list[GameNode]:
        """Mainline child first, then variations in display order."""
        head = [self.mainline] if self.mainline is not None else []
        return head + self.variations

    @property
    def is_variation(self) -> bool:
        """True when this node hangs off its parent's ``variations`` list."""
        return self.parent is not None and any(v is self for v in self.parent.variations)

    def alternatives(self) -> list[GameNode]:
        """Moves that were played instead of this one.

        For a mainline child this is the parent's variation list; for a
        variation node it is every other child of the parent.
        """
        if self.parent is None:
            return []
        return [c for c in self.parent.children if c is not self]

    def add_mainline(self, child: GameNode) -> GameNode:
        child.parent = self
        self.mainline = child
        return child

    def add_variation(self, child: GameNode) -> GameNode:
        child.parent = self
        self.variations.append(child)
        return child

    def walk(self) -> Iterator[GameNode]:
        """Yield this node and every descendant, depth-first, mainline first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def path(self) -> list[GameNode]:
        """Nodes from the root down to (and including) this node."""
        out: list[GameNode] = []
        node: GameNode | None = self
        while node is not None:
            out.append(node)
            node = node.parent
        out.reverse()
        return out

    def mainline_end(self) -> GameNode:
        node = self
        while node.mainline is not None:
            node = node.mainline
        return node

    def __repr__(self) -> str:
        return f"GameNode(id={self.id}, move={self.move!r}, ply={self.ply})"


def first_ply(fen: str) -> int:
    """Ply index of the first move played from *fen*."""
    board = chess.Board(fen)
    return 2 * (board.fullmove_number - 1) + (0 if board.turn == chess.WHITE else 1)


@dataclass(eq=False)
class GameTree:
    """Root node plus tree-level data (headers, result)."""

    root: GameNode
    headers: dict[str, str] = field(default_factory=dict)
    result: str | None = None

    @classmethod
    def empty(cls, start_fen: str = chess.STARTING_FEN) -> GameTree:
        root = GameNode(move=None, position=start_fen, ply=first_ply(start_fen) - 1)
        return cls(root=root)

    @property
    def start_fen(self) -> str:
        return self.root.position

    def contains(self, node: GameNode | None) -> bool:
        """True when *node* is still reachable from the root.

        Deleted subtrees keep their internal links, so membership is checked
        upwards through the owning lists rather than by the parent pointer
        alone.
        """
        if node is None:
            return False
        while node.parent is not None:
            parent = node.parent
            if parent.mainline is not node and not any(v is node for v in parent.variations):
                return False
            node = parent
        return node is self.root

    def mainline(self) -> list[GameNode]:
        """Mainline nodes after the root, in order."""
        out: list[GameNode] = []
        node = self.root.mainline
        while node is not None:
            out.append(node)
            node = node.mainline
        return out

    def nodes(self) -> list[GameNode]:
        """Every move node (root excluded)."""
        return [n for n in self.root.walk() if n is not self.root]

    def __len__(self) -> int:
        return len(self.nodes())
