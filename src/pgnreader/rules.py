"""Rules-engine adapter built on python-chess ``chess.Board``.

The tree builder, navigator and editor never decide legality themselves; they
ask a :class:`RulesEngine`.  A rejected move is reported as ``None`` and the
callers treat that as final: the only input repair performed anywhere is the
queen default for an unspecified promotion on a live board drop.

Each instance owns its board.  Lines of play (the mainline and every
variation) get their own instance via :meth:`RulesEngine.copy` or a fresh
construction from a FEN, so one line can never advance another line's state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import chess

# Trailing decorations (check, mate, annotation marks) are not part of the
# move for lookup purposes.
_DECORATION_RE = re.compile(r"[^a-hKQRBN0-9=O-]+$")


@dataclass(frozen=True)
class MoveResult:
    """Outcome of an accepted move."""

    san: str
    uci: str
    from_square: str
    to_square: str
    fen: str  # position after the move


def core_san(token: str) -> str:
    """Strip display decorations from *token* for legality lookup.

    ``"Nf3+!?"`` → ``"Nf3"``, ``"0-0-0#"`` → ``"O-O-O"``.
    """
    return _DECORATION_RE.sub("", token).replace("0", "O")


class RulesEngine:
    """One chess position plus its move history.

    Parameters
    ----------
    fen:
        Starting position.  Defaults to the standard initial position.
        An invalid FEN raises ``ValueError`` (python-chess behaviour).
    """

    def __init__(self, fen: str | None = None) -> None:
        self._board = chess.Board(fen) if fen else chess.Board()

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def move(self, san_or_move: str | chess.Move, sloppy: bool = True) -> MoveResult | None:
        """Play a move given as SAN text or a ``chess.Move``.

        With *sloppy* the text is stripped of decorations first and a
        coordinate spelling (``e2e4``) is accepted as a fallback.
        """
        if isinstance(san_or_move, chess.Move):
            if san_or_move not in self._board.legal_moves:
                return None
            return self._push(san_or_move)

        text = core_san(san_or_move) if sloppy else san_or_move
        if not text:
            return None
        try:
            move = self._board.parse_san(text)
        except ValueError:
            if not sloppy:
                return None
            try:
                move = self._board.parse_uci(text.lower())
            except ValueError:
                return None
        if not move:
            # Null moves ("--", "0000") are not moves.
            return None
        return self._push(move)

    def move_squares(
        self,
        from_square: str,
        to_square: str,
        promotion: str | None = None,
    ) -> MoveResult | None:
        """Play a move given as two square names (a board drop).

        A pawn reaching the last rank without an explicit *promotion* piece
        promotes to a queen.
        """
        try:
            src = chess.parse_square(from_square)
            dst = chess.parse_square(to_square)
        except ValueError:
            return None

        piece = self._board.piece_at(src)
        promo: int | None = None
        if promotion:
            if promotion.lower() not in ("n", "b", "r", "q"):
                return None
            promo = chess.PIECE_SYMBOLS.index(promotion.lower())
        elif piece is not None and piece.piece_type == chess.PAWN and chess.square_rank(dst) in (0, 7):
            promo = chess.QUEEN

        move = chess.Move(src, dst, promotion=promo)
        if move not in self._board.legal_moves:
            return None
        return self._push(move)

    def undo(self) -> None:
        if self._board.move_stack:
            self._board.pop()

    def _push(self, move: chess.Move) -> MoveResult:
        san = self._board.san(move)
        self._board.push(move)
        return MoveResult(
            san=san,
            uci=move.uci(),
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            fen=self._board.fen(),
        )

    # ------------------------------------------------------------------
    # Position queries
    # ------------------------------------------------------------------

    def fen(self) -> str:
        return self._board.fen()

    def turn(self) -> str:
        return "w" if self._board.turn == chess.WHITE else "b"

    def history(self) -> list[str]:
        """SAN of every move applied since the last load."""
        replay = self._board.root()
        sans: list[str] = []
        for move in self._board.move_stack:
            sans.append(replay.san(move))
            replay.push(move)
        return sans

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, fen: str) -> None:
        self._board.set_fen(fen)

    def copy(self) -> RulesEngine:
        """Independent engine at the same position (history included)."""
        clone = RulesEngine.__new__(RulesEngine)
        clone._board = self._board.copy()
        return clone
