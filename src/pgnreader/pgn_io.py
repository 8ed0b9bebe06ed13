"""PGN documents: tag-pair headers, multi-game packs, puzzle blocks, loading.

A PGN *document* may hold several games.  Each game is a block of
``[Tag "value"]`` lines followed by movetext.  Game boundaries and tag pairs
are read with :mod:`chess.pgn`; the movetext itself goes to our own
tokenizer.  Only a few tags mean anything here:

* ``FEN`` seeds the start position (an unusable FEN falls back to the
  standard position),
* ``Result`` fills in the tree result when the movetext has none,
* ``White``/``Black``/``*Title``/``*Elo``/``Event``/``Date`` feed
  :func:`headline`.

Sources are local paths or ``http(s)://`` URLs fetched with ``requests``.
"""

from __future__ import annotations

import io
import re
from pathlib import Path

import chess
import chess.pgn
import requests

from .models import GameTree
from .parser import ParserConfig, parse_text
from .tokenizer import RESULTS, normalize_figurines

_PUZZLE_RE = re.compile(r"FEN:\s*(.*?)\s+Moves:\s*(.*)$", re.IGNORECASE | re.DOTALL)
_YEAR_RE = re.compile(r"^\d{4}$")

_HEADERS = {
    "Accept": "application/x-chess-pgn, text/plain",
    "User-Agent": "pgnreader/0.1.0",
}


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def _clean(text: str) -> str:
    return text.replace("\r", "").lstrip("\ufeff")


def split_games(text: str) -> list[str]:
    """Split a multi-game document into one string per game.

    Boundaries come from python-chess's PGN reader: a game runs to the first
    blank line outside a ``{...}`` comment, so comments may span paragraphs.
    """
    text = _clean(text)
    handle = io.StringIO(text)
    games: list[str] = []
    while True:
        start = handle.tell()
        if not chess.pgn.skip_game(handle):
            break
        game = text[start:handle.tell()].strip()
        if game:
            games.append(game)
    return games


def split_headers(text: str) -> tuple[dict[str, str], str]:
    """Separate the leading tag-pair block from the movetext.

    Returns ``(headers, movetext)``.  Tags are read by
    :func:`chess.pgn.read_headers`; malformed tag lines are dropped with the
    rest of the tag block, as python-chess drops them.
    """
    text = _clean(text)
    headers = chess.pgn.read_headers(io.StringIO(text)) or {}
    lines = text.split("\n")
    i = 0
    while i < len(lines) and _in_tag_section(lines[i]):
        i += 1
    tags = {name: _unescape(value) for name, value in headers.items()}
    return tags, "\n".join(lines[i:]).strip()


def _in_tag_section(line: str) -> bool:
    # Same line classes python-chess consumes before the movetext starts.
    return not line.strip() or line.startswith(("[", "%", ";"))


def _unescape(value: str) -> str:
    return value.replace('\\"', '"').replace("\\\\", "\\")


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


def start_fen(headers: dict[str, str], verbose: bool = False) -> str:
    """Start position from the ``FEN`` tag, or the standard one."""
    fen = headers.get("FEN", "").strip()
    if not fen:
        return chess.STARTING_FEN
    try:
        return chess.Board(fen).fen()
    except ValueError:
        if verbose:
            print(f"[load] ignoring invalid FEN tag {fen!r}", flush=True)
        return chess.STARTING_FEN


def read_game(text: str, config: ParserConfig | None = None) -> GameTree:
    """Parse one game (tags + movetext) into a tree."""
    config = config or ParserConfig()
    headers, movetext = split_headers(text)
    tree = parse_text(movetext, start_fen(headers, config.verbose), config)
    tree.headers = headers
    if tree.result is None:
        tree.result = RESULTS.get(headers.get("Result", "").strip())
    return tree


def read_games(text: str, config: ParserConfig | None = None) -> list[GameTree]:
    return [read_game(game, config) for game in split_games(text)]


def parse_puzzle_block(text: str, config: ParserConfig | None = None) -> GameTree:
    """Parse a ``FEN: <fen> Moves: <movetext>`` puzzle block.

    Raises ``ValueError`` when either part is missing or the FEN is invalid.
    """
    m = _PUZZLE_RE.search(normalize_figurines(text).strip())
    if not m:
        raise ValueError("Invalid puzzle block: expected 'FEN: ... Moves: ...'")
    fen = m.group(1).strip()
    try:
        fen = chess.Board(fen).fen()
    except ValueError as exc:
        raise ValueError(f"Invalid puzzle FEN {fen!r}: {exc}") from exc
    tree = parse_text(m.group(2), fen, config)
    tree.headers = {"FEN": fen, "SetUp": "1"}
    return tree


# ---------------------------------------------------------------------------
# Header display
# ---------------------------------------------------------------------------


def flip_name(name: str) -> str:
    """``"Carlsen, Magnus"`` → ``"Magnus Carlsen"``."""
    last, sep, first = name.partition(",")
    if not sep:
        return name.strip()
    return f"{first.strip()} {last.strip()}"


def extract_year(date: str) -> str:
    """Year of a PGN ``Date`` tag (``"2023.??.??"`` → ``"2023"``), or ``""``."""
    year = date.split(".")[0] if date else ""
    return year if _YEAR_RE.match(year) else ""


def _player(headers: dict[str, str], side: str) -> str:
    title = headers.get(f"{side}Title", "")
    elo = headers.get(f"{side}Elo", "")
    out = flip_name(headers.get(side, ""))
    if title:
        out = f"{title} {out}"
    if elo:
        out = f"{out} ({elo})"
    return out


def headline(headers: dict[str, str]) -> str:
    """Two-line game caption: players, then event and year."""
    year = extract_year(headers.get("Date", ""))
    event = headers.get("Event", "")
    second = event + (f", {year}" if year else "")
    return f"{_player(headers, 'White')} – {_player(headers, 'Black')}\n{second}"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_source(source: str, verbose: bool = False) -> str:
    """Return the text of a local PGN file or an ``http(s)`` URL.

    Raises
    ------
    FileNotFoundError
        *source* is a path that does not exist.
    RuntimeError
        The download failed.
    """
    if source.startswith(("http://", "https://")):
        return _download(source, verbose)

    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"PGN file not found: {source}")
    if verbose:
        print(f"[load] reading {path}", flush=True)
    return path.read_text(encoding="utf-8", errors="replace")


def _download(url: str, verbose: bool) -> str:
    session = requests.Session()
    session.headers.update(_HEADERS)
    if verbose:
        print(f"[load] fetching {url}", flush=True)
    try:
        resp = session.get(url, timeout=30)
        resp.raise_for_status()
        return resp.text
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to load PGN from {url}: {exc}") from exc
    finally:
        session.close()
