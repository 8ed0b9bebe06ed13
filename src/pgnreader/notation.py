"""Move numbering and move-list text rendering.

Numbering rules
---------------
A node's ``ply`` is the 0-based index of its half-move, so White moves have
even plies and the displayed number is ``ply // 2 + 1``.  White moves always
carry their number (``12.``); Black moves carry one (``12...``) only after an
interruption: the start of a line, a comment, a diagram or a variation.

The decision lives in :attr:`GameNode.number_shown`, which reads the tree's
current shape, so :func:`render_movetext` stays correct after the editor has
added, promoted or deleted lines.
"""

from __future__ import annotations

from .models import GameNode, GameTree


def move_number(ply: int) -> int:
    return ply // 2 + 1


def is_white_ply(ply: int) -> bool:
    return ply % 2 == 0


def number_label(node: GameNode, interrupted: bool) -> str:
    """``"12."``, ``"12..."`` or ``""`` for *node*."""
    if node.is_white:
        return f"{node.move_number}."
    if interrupted:
        return f"{node.move_number}..."
    return ""


def move_text(node: GameNode) -> str:
    """Display text of a move with its annotation glyphs."""
    return " ".join([node.move or "", *node.annotations]).strip()


def render_movetext(tree: GameTree, with_result: bool = True) -> str:
    """Render the whole tree as PGN-style movetext.

    Example: ``1. e4 e5 2. Nf3 (2. Bc4 Nc6) 2... Nc6``
    """
    parts: list[str] = []
    root = tree.root
    parts.extend(_brace(c) for c in root.comments)
    parts.extend(root.inert)
    if root.mainline is not None:
        _render_line(root.mainline, parts)
    else:
        _render_variations(root, parts)
    if with_result and tree.result:
        parts.append(tree.result)
    return " ".join(p for p in parts if p)


def mainline_sans(tree: GameTree) -> list[str]:
    return [node.san for node in tree.mainline()]


def mainline_positions(tree: GameTree) -> list[str]:
    """Start FEN followed by the FEN after every mainline move."""
    return [tree.root.position] + [node.position for node in tree.mainline()]


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _brace(comment: str) -> str:
    # A comment cannot contain its own closing brace.
    return "{" + comment.replace("}", "]") + "}"


def _render_line(first: GameNode, parts: list[str]) -> None:
    node: GameNode | None = first
    while node is not None:
        parts.extend(_brace(c) for c in node.leading_comments)
        parts.extend(node.leading_inert)
        parts.append(number_label(node, node.number_shown))
        parts.append(move_text(node))
        parts.extend(node.inert)
        if node.diagram:
            parts.append("[D]")
        parts.extend(_brace(c) for c in node.comments)

        parent = node.parent
        if parent is not None and parent.mainline is node and parent.variations:
            _render_variations(parent, parts)

        if node.mainline is None and node.variations:
            _render_variations(node, parts)
        node = node.mainline


def _render_variations(parent: GameNode, parts: list[str]) -> None:
    for head in parent.variations:
        inner: list[str] = []
        _render_line(head, inner)
        parts.append("(" + " ".join(p for p in inner if p) + ")")
