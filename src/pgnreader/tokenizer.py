"""Movetext tokenizer.

Scans raw PGN movetext into a flat stream of :class:`~pgnreader.models.Token`
values.  The scan is lazy: :func:`tokenize` is a generator, so a fresh call
restarts from the beginning of the text and a partially consumed stream cannot
be resumed elsewhere.

What the tokenizer decides
--------------------------
* token boundaries (whitespace, parentheses, braces, brackets, ``;``),
* the kind of each token and, for NAG / evaluation / result tokens, the
  display glyph,
* noise removal: ``[%...]`` directives, tag-pair blocks, NAG codes without a
  glyph, empty comments.

What it does not decide
-----------------------
Whether a move token is legal.  Every word that is not a number marker,
glyph or result comes out as a ``SAN`` token and the tree builder asks the
rules engine about it.
"""

from __future__ import annotations

import re
from typing import Iterator

import chess.pgn

from .models import Token, TokenKind
from .rules import core_san

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

NAG_GLYPHS: dict[int, str] = {
    chess.pgn.NAG_GOOD_MOVE: "!",
    chess.pgn.NAG_MISTAKE: "?",
    chess.pgn.NAG_BRILLIANT_MOVE: "‼",
    chess.pgn.NAG_BLUNDER: "⁇",
    chess.pgn.NAG_SPECULATIVE_MOVE: "⁉",
    chess.pgn.NAG_DUBIOUS_MOVE: "⁈",
    13: "→", 14: "↑", 15: "⇆", 16: "⇄",
    17: "⟂", 18: "∞", 19: "⟳", 20: "⟲",
    36: "⩲", 37: "⩱", 38: "±", 39: "∓",
    40: "+=", 41: "=+", 42: "±", 43: "∓",
    44: "⨀", 45: "⨁",
}

# Move-quality marks written as separate words ("e4 !?") map onto NAG codes.
_SUFFIX_NAGS: dict[str, int] = {
    "!": chess.pgn.NAG_GOOD_MOVE,
    "?": chess.pgn.NAG_MISTAKE,
    "!!": chess.pgn.NAG_BRILLIANT_MOVE,
    "??": chess.pgn.NAG_BLUNDER,
    "!?": chess.pgn.NAG_SPECULATIVE_MOVE,
    "?!": chess.pgn.NAG_DUBIOUS_MOVE,
}

EVAL_GLYPHS: dict[str, str] = {
    "=": "=",
    "+/=": "⩲",
    "=/+": "⩱",
    "+/-": "±",
    "+/−": "±",
    "-/+": "∓",
    "−/+": "∓",
    "+-": "+−",
    "+−": "+−",
    "-+": "−+",
    "−+": "−+",
    "∞": "∞",
    "=/∞": "⯹",
}

RESULTS: dict[str, str] = {
    "1-0": "1-0",
    "0-1": "0-1",
    "1/2-1/2": "1/2-1/2",
    "½-½": "1/2-1/2",
    "*": "*",
}

_FIGURINES = str.maketrans({
    "♔": "K", "♕": "Q", "♖": "R", "♗": "B", "♘": "N",
    "♚": "K", "♛": "Q", "♜": "R", "♝": "B", "♞": "N",
})

SAN_CORE_RE = re.compile(
    r"^([O0]-[O0](-[O0])?[+#]?"
    r"|[KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](=[QRBN])?[+#]?"
    r"|[a-h][1-8](=[QRBN])?[+#]?)$"
)

_MOVE_NUMBER_RE = re.compile(r"^(\d+)(\.+)(.*)$")
_DIRECTIVE_RE = re.compile(r"\[%[^\]]*\]")
_DELIMITERS = frozenset("(){}[];")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_figurines(text: str) -> str:
    """Replace figurine piece glyphs with SAN piece letters."""
    return text.translate(_FIGURINES)


def looks_like_san(word: str) -> bool:
    """True when *word*, stripped of decorations, has the shape of a SAN move."""
    return bool(SAN_CORE_RE.match(core_san(word)))


def tokenize(text: str) -> Iterator[Token]:
    """Yield the tokens of *text* left to right."""
    text = normalize_figurines(text)
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch.isspace():
            i += 1
            continue

        if ch == "(":
            i += 1
            yield Token(TokenKind.VARIATION_OPEN, ch)
            continue

        if ch == ")":
            i += 1
            yield Token(TokenKind.VARIATION_CLOSE, ch)
            continue

        if ch == "{":
            end = text.find("}", i + 1)
            if end < 0:
                # Unterminated: the comment runs to the end of the input.
                yield Token(TokenKind.COMMENT_OPEN, ch)
                body = text[i + 1:]
                i = n
            else:
                body = text[i + 1:end]
                i = end + 1
            comment = clean_comment(body)
            if comment:
                yield Token(TokenKind.COMMENT_TEXT, comment)
            continue

        if ch == ";":
            end = text.find("\n", i + 1)
            if end < 0:
                end = n
            comment = clean_comment(text[i + 1:end])
            i = end
            if comment:
                yield Token(TokenKind.COMMENT_TEXT, comment)
            continue

        if ch == "[":
            end = text.find("]", i + 1)
            if end < 0:
                i += 1
                continue
            block = text[i:end + 1]
            i = end + 1
            if block == "[D]":
                yield Token(TokenKind.DIAGRAM, block)
            # [%...] directives and tag pairs carry nothing we model.
            continue

        if ch in "]}":
            i += 1
            continue

        j = i
        while j < n and not text[j].isspace() and text[j] not in _DELIMITERS:
            j += 1
        word = text[i:j]
        i = j
        yield from _classify(word)


def clean_comment(body: str) -> str:
    """Strip ``[%...]`` directives and collapse whitespace."""
    return " ".join(_DIRECTIVE_RE.sub(" ", body).split())


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _classify(word: str) -> Iterator[Token]:
    if word in RESULTS:
        yield Token(TokenKind.RESULT, word, RESULTS[word])
        return

    m = _MOVE_NUMBER_RE.match(word)
    if m:
        yield Token(TokenKind.MOVE_NUMBER, m.group(1) + m.group(2))
        rest = m.group(3)
        if rest:
            yield from _classify(rest)
        return

    if word.strip(".") == "":
        # Bare "..." between a number and a black move.
        yield Token(TokenKind.MOVE_NUMBER, word)
        return

    if word.startswith("$"):
        code = word[1:]
        if code.isdigit():
            # Superscripts and other Unicode digits pass isdigit() but not int().
            if code.isascii() and len(code) <= 3:
                glyph = NAG_GLYPHS.get(int(code))
                if glyph:
                    yield Token(TokenKind.NAG, word, glyph)
            return
        yield Token(TokenKind.SAN, word)
        return

    if word in _SUFFIX_NAGS:
        yield Token(TokenKind.NAG, word, NAG_GLYPHS[_SUFFIX_NAGS[word]])
        return

    if word in EVAL_GLYPHS:
        yield Token(TokenKind.EVAL, word, EVAL_GLYPHS[word])
        return

    yield Token(TokenKind.SAN, word)
