"""Tree builder: token stream → :class:`~pgnreader.models.GameTree`.

Algorithm
---------
The builder walks the tokens once, left to right, holding an explicit stack
of parse contexts instead of recursing per variation, so nesting depth in the
input never turns into Python call depth.

Each context describes one line of play:

* ``anchor`` – the node the line starts from (the root for the main line,
  the branch point for a variation),
* ``last``   – the most recently created node in this line,
* ``engine`` – a rules engine private to the line.

On ``(`` the builder snapshots the position *before* the enclosing line's
last move and pushes a context with a brand-new engine at that position.  On
``)`` it pops back to the enclosing line.  Move-number display is not decided
here: :attr:`GameNode.number_shown` reads it off the finished tree.

Failure policy
--------------
:func:`parse` never raises for malformed movetext.  A token the engine
rejects is kept verbatim as inert text on the nearest node, unbalanced
parentheses are tolerated, and the first result token ends the parse.

Chunking
--------
:class:`TreeBuilder` keeps all state on the instance.  :meth:`TreeBuilder.run`
can stop after a time budget and pick up exactly where it left off, which
lets a UI spread a large parse over several scheduling turns
(:func:`parse_in_chunks`) with the same result as a synchronous run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator

import chess

from .board import Scheduler
from .models import GameNode, GameTree, Token, TokenKind
from .rules import RulesEngine
from .tokenizer import looks_like_san, tokenize

_DEFAULT_CHUNK_BUDGET_S = 0.008  # one animation frame, roughly


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class LeadingComments(str, Enum):
    """Where a comment written before a variation's first move is stored."""

    FLOAT = "float"    # on the variation's first node, shown before its move
    PARENT = "parent"  # on the node the variation branches from


@dataclass
class ParserConfig:
    leading_comments: LeadingComments = LeadingComments.FLOAT
    verbose: bool = False


# ---------------------------------------------------------------------------
# Parse context
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class _Context:
    anchor: GameNode
    engine: RulesEngine
    is_variation: bool
    last: GameNode | None = None
    pending_comments: list[str] = field(default_factory=list)
    pending_inert: list[str] = field(default_factory=list)

    @property
    def current(self) -> GameNode:
        return self.last if self.last is not None else self.anchor

    def branch_point(self) -> GameNode:
        """Node a new variation opened here would start from."""
        if self.last is not None and self.last.parent is not None:
            return self.last.parent
        return self.anchor


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class TreeBuilder:
    """Incremental, resumable tree builder.

    Parameters
    ----------
    tokens:
        Token stream, typically ``tokenize(movetext)``.
    start_fen:
        Starting position.  An invalid FEN raises ``ValueError``.
    config:
        Leading-comment policy and verbosity.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        start_fen: str = chess.STARTING_FEN,
        config: ParserConfig | None = None,
    ) -> None:
        self.config = config or ParserConfig()
        self.tree = GameTree.empty(start_fen)
        self._tokens: Iterator[Token] = iter(tokens)
        self._stack: list[_Context] = [
            _Context(
                anchor=self.tree.root,
                engine=RulesEngine(start_fen),
                is_variation=False,
            )
        ]
        self.done = False

    @property
    def _ctx(self) -> _Context:
        return self._stack[-1]

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def run(self, budget_s: float | None = None) -> bool:
        """Consume tokens until the stream ends or *budget_s* elapses.

        Returns ``True`` once the parse is complete.
        """
        if self.done:
            return True
        started = time.monotonic()
        for token in self._tokens:
            if self._feed(token):
                break
            if budget_s is not None and time.monotonic() - started >= budget_s:
                return False
        self._finish()
        return True

    def _finish(self) -> None:
        # Unclosed variations are closed implicitly.
        while len(self._stack) > 1:
            self._close_variation()
        ctx = self._ctx
        self.tree.root.comments.extend(ctx.pending_comments)
        self.tree.root.inert.extend(ctx.pending_inert)
        ctx.pending_comments.clear()
        ctx.pending_inert.clear()
        self.done = True

    # ------------------------------------------------------------------
    # Token dispatch
    # ------------------------------------------------------------------

    def _feed(self, token: Token) -> bool:
        """Apply one token; returns True when parsing must stop."""
        kind = token.kind

        if kind == TokenKind.SAN:
            self._on_move(token.text)
        elif kind == TokenKind.VARIATION_OPEN:
            self._open_variation()
        elif kind == TokenKind.VARIATION_CLOSE:
            if len(self._stack) > 1:
                self._close_variation()
        elif kind == TokenKind.COMMENT_TEXT:
            self._on_comment(token.text)
        elif kind in (TokenKind.NAG, TokenKind.EVAL):
            if self._ctx.last is not None:
                self._ctx.last.annotations.append(token.glyph)
        elif kind == TokenKind.DIAGRAM:
            if self._ctx.last is not None:
                self._ctx.last.diagram = True
        elif kind == TokenKind.RESULT:
            if self.tree.result is None:
                self.tree.result = token.glyph
            return True
        # MOVE_NUMBER and COMMENT_OPEN carry nothing the tree needs.
        return False

    def _on_move(self, text: str) -> None:
        ctx = self._ctx
        result = ctx.engine.move(text) if looks_like_san(text) else None
        if result is None:
            self._on_inert(text)
            return

        parent = ctx.current
        node = GameNode(
            move=text,
            position=result.fen,
            ply=parent.ply + 1,
            san=result.san,
            uci=result.uci,
        )
        if ctx.last is None and ctx.is_variation:
            parent.add_variation(node)
            self._flush_leading(ctx, node)
        elif parent.mainline is None:
            parent.add_mainline(node)
        else:
            parent.add_variation(node)

        ctx.last = node

    def _on_inert(self, text: str) -> None:
        ctx = self._ctx
        if self.config.verbose:
            print(f"[parse] kept {text!r} as text (not a legal move here)", flush=True)
        if ctx.last is not None:
            ctx.last.inert.append(text)
        elif ctx.is_variation:
            ctx.pending_inert.append(text)
        else:
            self.tree.root.inert.append(text)

    def _on_comment(self, text: str) -> None:
        ctx = self._ctx
        if ctx.last is not None:
            ctx.last.comments.append(text)
        elif not ctx.is_variation:
            self.tree.root.comments.append(text)
        elif self.config.leading_comments == LeadingComments.PARENT:
            ctx.anchor.comments.append(text)
        else:
            ctx.pending_comments.append(text)

    def _flush_leading(self, ctx: _Context, node: GameNode) -> None:
        node.leading_comments.extend(ctx.pending_comments)
        node.leading_inert.extend(ctx.pending_inert)
        ctx.pending_comments.clear()
        ctx.pending_inert.clear()

    # ------------------------------------------------------------------
    # Variations
    # ------------------------------------------------------------------

    def _open_variation(self) -> None:
        anchor = self._ctx.branch_point()
        self._stack.append(
            _Context(
                anchor=anchor,
                engine=RulesEngine(anchor.position),
                is_variation=True,
            )
        )

    def _close_variation(self) -> None:
        ctx = self._stack.pop()
        # A variation that never produced a move leaves its text on the move
        # it was written after.
        target = self._ctx.current
        target.comments.extend(ctx.pending_comments)
        target.inert.extend(ctx.pending_inert)


# ---------------------------------------------------------------------------
# Public entry-points
# ---------------------------------------------------------------------------


def parse(
    tokens: Iterable[Token],
    start_fen: str = chess.STARTING_FEN,
    config: ParserConfig | None = None,
) -> GameTree:
    """Build a game tree from *tokens* in one go."""
    builder = TreeBuilder(tokens, start_fen, config)
    builder.run()
    return builder.tree


def parse_text(
    movetext: str,
    start_fen: str = chess.STARTING_FEN,
    config: ParserConfig | None = None,
) -> GameTree:
    """Tokenize and parse *movetext*."""
    return parse(tokenize(movetext), start_fen, config)


def parse_in_chunks(
    tokens: Iterable[Token],
    scheduler: Scheduler,
    on_done: Callable[[GameTree], None],
    start_fen: str = chess.STARTING_FEN,
    config: ParserConfig | None = None,
    budget_s: float = _DEFAULT_CHUNK_BUDGET_S,
) -> TreeBuilder:
    """Parse across scheduler turns, calling *on_done* with the finished tree.

    *scheduler* needs ``call_later(delay_s, callback)``; an asyncio event loop
    qualifies.  The returned builder exposes the partial tree while parsing is
    still in progress.
    """
    builder = TreeBuilder(tokens, start_fen, config)

    def step() -> None:
        if builder.run(budget_s):
            on_done(builder.tree)
        else:
            scheduler.call_later(0, step)

    scheduler.call_later(0, step)
    return builder
