"""Tests for the game-tree data model."""

from __future__ import annotations

import chess

from pgnreader.models import GameNode, GameTree, first_ply
from pgnreader.parser import parse_text


def test_first_ply_from_fen() -> None:
    assert first_ply(chess.STARTING_FEN) == 0
    assert first_ply("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1") == 1
    assert first_ply("8/8/8/8/8/8/8/k6K w - - 0 12") == 22


def test_empty_tree() -> None:
    tree = GameTree.empty()
    assert tree.root.is_root
    assert tree.root.move is None
    assert tree.start_fen == chess.STARTING_FEN
    assert tree.mainline() == []
    assert len(tree) == 0


def test_ids_are_unique_and_increasing() -> None:
    tree = parse_text("1. e4 e5 (1... c5) 2. Nf3")
    ids = [n.id for n in tree.root.walk()]
    assert len(set(ids)) == len(ids)
    assert tree.mainline()[0].id < tree.mainline()[1].id


def test_walk_is_depth_first_mainline_first() -> None:
    tree = parse_text("1. e4 e5 (1... c5 2. Nf3) 2. Nf3")
    assert [n.san for n in tree.nodes()] == ["e4", "e5", "Nf3", "c5", "Nf3"]


def test_children_and_alternatives() -> None:
    tree = parse_text("1. e4 e5 (1... c5) (1... e6)")
    e4 = tree.mainline()[0]
    e5, c5, e6 = e4.children
    assert e5.alternatives() == [c5, e6]
    assert c5.alternatives() == [e5, e6]
    assert not e5.is_variation
    assert c5.is_variation
    assert tree.root.alternatives() == []


def test_path_and_mainline_end() -> None:
    tree = parse_text("1. e4 e5 2. Nf3")
    e4, e5, nf3 = tree.mainline()
    assert nf3.path() == [tree.root, e4, e5, nf3]
    assert tree.root.mainline_end() is nf3


def test_contains_detects_detached_subtrees() -> None:
    tree = parse_text("1. e4 e5 (1... c5 2. Nf3) 2. Nf3")
    e4 = tree.mainline()[0]
    c5 = e4.variations[0]
    assert tree.contains(c5.mainline)

    e4.variations.remove(c5)
    assert not tree.contains(c5)
    assert not tree.contains(c5.mainline)
    assert not tree.contains(None)
    assert not tree.contains(GameNode(move="d4", position=chess.STARTING_FEN, ply=0))


def test_equality_is_identity() -> None:
    a = GameNode(move="e4", position=chess.STARTING_FEN, ply=0)
    b = GameNode(move="e4", position=chess.STARTING_FEN, ply=0)
    assert a != b
    assert a == a
