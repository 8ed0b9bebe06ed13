"""Tests for the tree builder."""

from __future__ import annotations

from typing import Callable

import chess
import pytest

from pgnreader.models import GameNode
from pgnreader.notation import mainline_sans, render_movetext
from pgnreader.parser import (
    LeadingComments,
    ParserConfig,
    TreeBuilder,
    parse_in_chunks,
    parse_text,
)
from pgnreader.tokenizer import tokenize

_EXAMPLE = "1. e4 e5 2. Nf3 (2. Bc4 Nc6) 2... Nc6"
# Black to move after 1.e4
_POST_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Handle:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _FakeScheduler:
    """Runs scheduled callbacks on demand, in order."""

    def __init__(self) -> None:
        self.queue: list[_Handle] = []
        self.turns = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(callback)
        self.queue.append(handle)
        return handle

    def run_all(self) -> None:
        while self.queue:
            handle = self.queue.pop(0)
            if not handle.cancelled:
                self.turns += 1
                handle.callback()


def _positions_by_replay(sans: list[str], fen: str = chess.STARTING_FEN) -> list[str]:
    board = chess.Board(fen)
    out = []
    for san in sans:
        board.push_san(san)
        out.append(board.fen())
    return out


# ---------------------------------------------------------------------------
# Tree shape
# ---------------------------------------------------------------------------


def test_variation_example_shape() -> None:
    tree = parse_text(_EXAMPLE)
    main = tree.mainline()
    assert [n.san for n in main] == ["e4", "e5", "Nf3", "Nc6"]

    e5, nf3, nc6 = main[1], main[2], main[3]
    alternatives = nf3.alternatives()
    assert [n.san for n in alternatives] == ["Bc4"]
    bc4 = alternatives[0]
    assert bc4.parent is e5
    assert bc4.is_variation
    assert bc4.mainline is not None and bc4.mainline.san == "Nc6"
    assert bc4.ply == nf3.ply == 2

    # The variation interrupted the line, so Black's reply restates its number.
    assert nc6.number_shown
    assert not e5.number_shown
    assert len(tree) == 6


def test_mainline_and_variation_membership_is_exclusive() -> None:
    tree = parse_text(_EXAMPLE)
    for node in tree.nodes():
        parent = node.parent
        assert parent is not None
        in_main = parent.mainline is node
        in_vars = sum(1 for v in parent.variations if v is node)
        assert in_main + in_vars == 1


def test_ply_and_move_numbers() -> None:
    tree = parse_text("1. d4 Nf6 2. c4 e6")
    assert [n.ply for n in tree.mainline()] == [0, 1, 2, 3]
    assert [n.move_number for n in tree.mainline()] == [1, 1, 2, 2]
    assert tree.root.ply == -1


def test_custom_start_with_black_to_move() -> None:
    tree = parse_text("1... e5 2. Nf3", start_fen=_POST_E4_FEN)
    e5, nf3 = tree.mainline()
    assert tree.root.ply == 0
    assert (e5.ply, e5.move_number, e5.is_white) == (1, 1, False)
    assert e5.number_shown
    assert nf3.move_number == 2


def test_invalid_start_fen_raises() -> None:
    with pytest.raises(ValueError):
        parse_text("1. e4", start_fen="garbage")


def test_display_text_is_kept_as_authored() -> None:
    tree = parse_text("1. Nf3+!? d5")
    nf3 = tree.mainline()[0]
    assert nf3.move == "Nf3+!?"
    assert nf3.san == "Nf3"


# ---------------------------------------------------------------------------
# Round-trip and isolation
# ---------------------------------------------------------------------------


def test_round_trip_positions_match_direct_replay() -> None:
    sans = ["d4", "Nf6", "c4", "e6", "Nc3", "Bb4", "Qc2", "O-O", "a3", "Bxc3+", "Qxc3", "b6"]
    movetext = "1. d4 Nf6 2. c4 e6 3. Nc3 Bb4 4. Qc2 O-O 5. a3 Bxc3+ 6. Qxc3 b6"
    tree = parse_text(movetext)
    assert [n.position for n in tree.mainline()] == _positions_by_replay(sans)


def test_variations_do_not_disturb_mainline_positions() -> None:
    tree = parse_text("1. e4 e5 (1... c5 2. Nf3 (2. c3 d5) d6) 2. Nf3 Nc6")
    assert [n.position for n in tree.mainline()] == _positions_by_replay(
        ["e4", "e5", "Nf3", "Nc6"]
    )
    e4 = tree.mainline()[0]
    c5 = e4.variations[0]
    assert c5.position == _positions_by_replay(["e4", "c5"])[-1]
    c3 = c5.variations[0]
    assert c3.position == _positions_by_replay(["e4", "c5", "c3"])[-1]
    assert c3.mainline is not None
    assert c3.mainline.position == _positions_by_replay(["e4", "c5", "c3", "d5"])[-1]
    assert [n.san for n in _line(c5)] == ["c5", "Nf3", "d6"]


def _line(node: GameNode) -> list[GameNode]:
    out = [node]
    while out[-1].mainline is not None:
        out.append(out[-1].mainline)
    return out


def test_several_variations_on_one_move_keep_source_order() -> None:
    tree = parse_text("1. e4 e5 (1... c5) (1... e6) (1... c6) 2. Nf3")
    e4 = tree.mainline()[0]
    assert [v.san for v in e4.variations] == ["c5", "e6", "c6"]


# ---------------------------------------------------------------------------
# Annotations, comments and inert text
# ---------------------------------------------------------------------------


def test_malformed_nag_code_does_not_stop_the_parse() -> None:
    tree = parse_text("1. e4 $² e5 $" + "1" * 5000 + " 2. Nf3")
    assert mainline_sans(tree) == ["e4", "e5", "Nf3"]
    assert tree.mainline()[0].annotations == []


def test_nag_goes_to_annotations_not_comments() -> None:
    tree = parse_text("1. e4 $1 {best by test} e5 +/=")
    e4, e5 = tree.mainline()
    assert e4.annotations == ["!"]
    assert e4.comments == ["best by test"]
    assert e5.annotations == ["⩲"]
    assert e5.comments == []


def test_comment_interrupts_numbering() -> None:
    tree = parse_text("1. e4 {main idea} e5")
    assert tree.mainline()[1].number_shown


def test_unparseable_token_is_kept_as_inert_text() -> None:
    tree = parse_text("1. e4 Zx9 e5 2. Ke3 Nf3")
    assert mainline_sans(tree) == ["e4", "e5", "Nf3"]
    e4, e5, _ = tree.mainline()
    assert e4.inert == ["Zx9"]
    assert e5.inert == ["Ke3"]  # move numbers are dropped, not kept as text
    assert "Zx9" in render_movetext(tree)


def test_inert_text_before_any_move_stays_on_root() -> None:
    tree = parse_text("Intro 1. e4")
    assert tree.root.inert == ["Intro"]
    assert mainline_sans(tree) == ["e4"]


def test_verbose_reports_inert_tokens(capsys: pytest.CaptureFixture[str]) -> None:
    parse_text("1. e4 Zx9", config=ParserConfig(verbose=True))
    assert "[parse] kept 'Zx9'" in capsys.readouterr().out


def test_leading_comment_floats_by_default() -> None:
    tree = parse_text("1. e4 e5 ({Alternatively} 1... c5) 2. Nf3")
    e4 = tree.mainline()[0]
    c5 = e4.variations[0]
    assert c5.leading_comments == ["Alternatively"]
    assert e4.comments == []


def test_leading_comment_can_attach_to_branch_node() -> None:
    config = ParserConfig(leading_comments=LeadingComments.PARENT)
    tree = parse_text("1. e4 e5 ({Alternatively} 1... c5) 2. Nf3", config=config)
    e4 = tree.mainline()[0]
    assert e4.comments == ["Alternatively"]
    assert e4.variations[0].leading_comments == []
    # The comment now sits after 1. e4, so the reply restates its number.
    assert tree.mainline()[1].number_shown
    assert render_movetext(tree).startswith("1. e4 {Alternatively} 1... e5 (1... c5)")


def test_leading_inert_text_in_variation() -> None:
    tree = parse_text("1. e4 (Zx9 1. d4)")
    d4 = tree.root.variations[0]
    assert d4.leading_inert == ["Zx9"]


def test_empty_variation_leaves_its_comment_on_the_previous_move() -> None:
    tree = parse_text("1. e4 ({nothing here}) e5")
    e4, e5 = tree.mainline()
    assert e4.comments == ["nothing here"]
    assert tree.root.comments == []
    assert e5.number_shown
    assert render_movetext(tree) == "1. e4 {nothing here} 1... e5"


def test_comment_before_first_move_goes_to_root() -> None:
    tree = parse_text("{Intro} 1. e4")
    assert tree.root.comments == ["Intro"]


def test_diagram_marks_node_and_interrupts() -> None:
    tree = parse_text("1. e4 [D] e5")
    e4, e5 = tree.mainline()
    assert e4.diagram
    assert e5.number_shown


# ---------------------------------------------------------------------------
# Robustness
# ---------------------------------------------------------------------------


def test_only_first_result_is_honoured_and_ends_parse() -> None:
    tree = parse_text("1. e4 1-0 e5 0-1")
    assert tree.result == "1-0"
    assert mainline_sans(tree) == ["e4"]


def test_unclosed_variation_is_closed_at_end() -> None:
    tree = parse_text("1. e4 (1. d4 d5")
    d4 = tree.root.variations[0]
    assert d4.mainline is not None and d4.mainline.san == "d5"
    assert mainline_sans(tree) == ["e4"]


def test_stray_close_paren_is_ignored() -> None:
    tree = parse_text("1. e4 ) e5")
    assert mainline_sans(tree) == ["e4", "e5"]


def test_deep_nesting_does_not_recurse() -> None:
    depth = 3000
    movetext = "1. e4 " + "(1. d4 " * depth + ")" * depth
    tree = parse_text(movetext)
    assert len(tree) == depth + 1


def test_empty_input_gives_bare_root() -> None:
    tree = parse_text("")
    assert len(tree) == 0
    assert tree.result is None
    assert tree.root.position == chess.STARTING_FEN


# ---------------------------------------------------------------------------
# Chunked parsing
# ---------------------------------------------------------------------------


def test_builder_run_resumes_after_budget() -> None:
    builder = TreeBuilder(tokenize(_EXAMPLE))
    steps = 0
    while not builder.run(budget_s=0):
        steps += 1
    assert steps > 1
    assert render_movetext(builder.tree) == render_movetext(parse_text(_EXAMPLE))


def test_parse_in_chunks_matches_synchronous_parse() -> None:
    movetext = "{Intro} 1. e4 $1 e5 (1... c5 {Sicilian} 2. Nf3 (2. c3)) 2. Nf3 Zx9 Nc6 [D] 3. Bb5 1-0"
    scheduler = _FakeScheduler()
    done: list = []

    builder = parse_in_chunks(tokenize(movetext), scheduler, done.append, budget_s=0)
    assert not done
    assert builder.tree is not None

    scheduler.run_all()

    assert len(done) == 1
    assert scheduler.turns > 1
    expected = parse_text(movetext)
    assert render_movetext(done[0]) == render_movetext(expected)
    assert [n.position for n in done[0].nodes()] == [n.position for n in expected.nodes()]
    assert done[0].result == "1-0"
