"""Command-line entry-point for pgnreader.

Usage
-----
  pgnreader games     <file-or-url>              (list the games in a pack)
  pgnreader show      <file-or-url> --game 2     (typeset one game's movetext)
  pgnreader positions <file-or-url> --game 2     (FEN after every mainline move)

Run ``pgnreader <command> --help`` for full option listings.
"""

from __future__ import annotations

import sys

import click

from .models import GameTree
from .notation import mainline_positions, render_movetext
from .parser import LeadingComments, ParserConfig
from .pgn_io import headline, load_source, read_game, split_games

_LEADING_COMMENTS_ENV = "PGNREADER_LEADING_COMMENTS"


@click.group()
def main() -> None:
    """pgnreader – read PGN games with variations, comments and glyphs.

    \b
    Commands:
      games      List the games in a PGN file or URL.
      show       Print one game's movetext, typeset.
      positions  Print the FEN after every mainline move of one game.
    """


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

_source_arg = click.argument("source")

_game_opt = click.option(
    "--game",
    "game_no",
    default=1,
    show_default=True,
    type=int,
    help="1-based index of the game within the source.",
)

_leading_opt = click.option(
    "--leading-comments",
    type=click.Choice([p.value for p in LeadingComments]),
    default=LeadingComments.FLOAT.value,
    envvar=_LEADING_COMMENTS_ENV,
    show_default=True,
    help=(
        "Where a comment before a variation's first move is kept: on that move "
        f"('float') or on the branch move ('parent').  Env: {_LEADING_COMMENTS_ENV}."
    ),
)

_verbose_opt = click.option(
    "--verbose/--quiet",
    default=False,
    show_default=True,
    help="Print loading and parsing diagnostics.",
)


def _load_games(source: str, verbose: bool) -> list[str]:
    try:
        text = load_source(source, verbose=verbose)
    except (FileNotFoundError, RuntimeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    games = split_games(text)
    if not games:
        click.echo(f"Error: no games found in {source}", err=True)
        sys.exit(1)
    return games


def _load_game(
    source: str,
    game_no: int,
    leading_comments: str,
    verbose: bool,
) -> GameTree:
    games = _load_games(source, verbose)
    if not 1 <= game_no <= len(games):
        raise click.BadParameter(
            f"must be between 1 and {len(games)}", param_hint="'--game'"
        )
    config = ParserConfig(
        leading_comments=LeadingComments(leading_comments),
        verbose=verbose,
    )
    return read_game(games[game_no - 1], config)


# ---------------------------------------------------------------------------
# games
# ---------------------------------------------------------------------------


@main.command("games")
@_source_arg
@_verbose_opt
def games_cmd(source: str, verbose: bool) -> None:
    """List the games in SOURCE with their players and event."""
    for i, text in enumerate(_load_games(source, verbose), start=1):
        tree = read_game(text, ParserConfig(verbose=verbose))
        players, event = headline(tree.headers).split("\n", 1)
        result = tree.result or "*"
        line = f"{i:>3}. {players}  {result}"
        if event:
            line += f"  [{event}]"
        click.echo(line)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@_source_arg
@_game_opt
@_leading_opt
@_verbose_opt
def show_cmd(source: str, game_no: int, leading_comments: str, verbose: bool) -> None:
    """Print game GAME of SOURCE as typeset movetext."""
    tree = _load_game(source, game_no, leading_comments, verbose)
    if tree.headers:
        click.echo(headline(tree.headers))
        click.echo("")
    click.echo(render_movetext(tree))


# ---------------------------------------------------------------------------
# positions
# ---------------------------------------------------------------------------


@main.command("positions")
@_source_arg
@_game_opt
@_leading_opt
@_verbose_opt
def positions_cmd(source: str, game_no: int, leading_comments: str, verbose: bool) -> None:
    """Print the FEN before the first move and after every mainline move."""
    tree = _load_game(source, game_no, leading_comments, verbose)
    nodes = [tree.root] + tree.mainline()
    for node, fen in zip(nodes, mainline_positions(tree)):
        label = "start" if node.is_root else f"{node.move_number}{'.' if node.is_white else '...'} {node.san}"
        click.echo(f"{label:<14} {fen}")
