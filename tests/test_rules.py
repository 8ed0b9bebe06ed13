"""Tests for the python-chess rules-engine adapter."""

from __future__ import annotations

import chess
import pytest

from pgnreader.rules import RulesEngine, core_san

# White to move, pawn on a7 about to promote.
_PROMO_FEN = "8/P7/8/8/8/8/8/k6K w - - 0 1"


@pytest.mark.parametrize(
    "token, expected",
    [
        ("Nf3+!?", "Nf3"),
        ("0-0-0#", "O-O-O"),
        ("e8=Q+", "e8=Q"),
        ("exd5", "exd5"),
    ],
)
def test_core_san_strips_decorations(token: str, expected: str) -> None:
    assert core_san(token) == expected


def test_move_accepts_san_and_reports_result() -> None:
    engine = RulesEngine()
    result = engine.move("e4")
    assert result is not None
    assert result.san == "e4"
    assert result.uci == "e2e4"
    assert (result.from_square, result.to_square) == ("e2", "e4")
    assert result.fen == engine.fen()
    assert engine.turn() == "b"


def test_move_with_decorations_is_accepted() -> None:
    engine = RulesEngine()
    result = engine.move("Nf3+!?")
    assert result is not None
    assert result.san == "Nf3"


def test_move_castling_with_zeros() -> None:
    engine = RulesEngine("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    result = engine.move("0-0")
    assert result is not None
    assert result.san == "O-O"


def test_illegal_move_returns_none_and_keeps_position() -> None:
    engine = RulesEngine()
    before = engine.fen()
    assert engine.move("Ke3") is None
    assert engine.move("Zx9") is None
    assert engine.fen() == before


def test_null_move_is_rejected() -> None:
    engine = RulesEngine()
    assert engine.move("--") is None
    assert engine.history() == []


def test_coordinate_fallback_when_sloppy() -> None:
    engine = RulesEngine()
    result = engine.move("g1f3")
    assert result is not None
    assert result.uci == "g1f3"


def test_move_accepts_chess_move_object() -> None:
    engine = RulesEngine()
    assert engine.move(chess.Move.from_uci("d2d4")) is not None
    assert engine.move(chess.Move.from_uci("d2d4")) is None  # pawn is gone


def test_move_squares_defaults_promotion_to_queen() -> None:
    engine = RulesEngine(_PROMO_FEN)
    result = engine.move_squares("a7", "a8")
    assert result is not None
    assert result.uci == "a7a8q"


def test_move_squares_explicit_underpromotion() -> None:
    engine = RulesEngine(_PROMO_FEN)
    result = engine.move_squares("a7", "a8", promotion="n")
    assert result is not None
    assert result.uci == "a7a8n"


def test_move_squares_rejects_bad_input() -> None:
    engine = RulesEngine(_PROMO_FEN)
    assert engine.move_squares("a7", "a8", promotion="k") is None
    assert engine.move_squares("z9", "a8") is None
    assert engine.move_squares("h1", "h3") is None


def test_history_undo_and_load() -> None:
    engine = RulesEngine()
    engine.move("e4")
    engine.move("e5")
    assert engine.history() == ["e4", "e5"]

    engine.undo()
    assert engine.history() == ["e4"]

    engine.load(chess.STARTING_FEN)
    assert engine.history() == []
    assert engine.fen() == chess.STARTING_FEN


def test_copy_is_independent() -> None:
    engine = RulesEngine()
    engine.move("e4")
    clone = engine.copy()
    clone.move("e5")
    assert engine.history() == ["e4"]
    assert clone.history() == ["e4", "e5"]


def test_invalid_fen_raises() -> None:
    with pytest.raises(ValueError):
        RulesEngine("not a fen")
