"""Text-preserving syntax tree rewriting."""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol, Sequence


class RewriteNode(Protocol):
    """Minimal node shape walked by :func:`process_tree` (tree-sitter nodes fit)."""

    @property
    def start_byte(self) -> int: ...

    @property
    def end_byte(self) -> int: ...

    @property
    def children(self) -> Sequence["RewriteNode"]: ...


Replacer = Callable[[RewriteNode], Optional[str]]


def process_tree(source: bytes, root: RewriteNode, replacer: Replacer) -> str:
    """Reproduce `source`, substituting nodes for which `replacer` returns text.

    Nodes are visited depth-first in pre-order. Text between nodes (whitespace,
    comments, punctuation the tree does not model) is copied verbatim. When the
    replacer returns a string the node's whole span is replaced and its
    children are never visited; ``None`` recurses into the children.
    """
    return _rewrite(source, [root], replacer, 0, len(source))


def process_nodes(source: bytes, nodes: Sequence[RewriteNode], replacer: Replacer) -> str:
    """Rewrite only the span from the first of `nodes` to the end of the last."""
    if not nodes:
        return ""
    return _rewrite(source, nodes, replacer, nodes[0].start_byte, nodes[-1].end_byte)


def _rewrite(source: bytes, nodes: Sequence[RewriteNode], replacer: Replacer, start: int, end: int) -> str:
    parts: List[str] = []
    cursor = start

    def read_through(position: int) -> None:
        nonlocal cursor
        if position > cursor:
            parts.append(source[cursor:position].decode("utf-8"))
            cursor = position

    def visit(node: RewriteNode) -> None:
        nonlocal cursor
        read_through(node.start_byte)

        replacement = replacer(node)
        if replacement is not None:
            parts.append(replacement)
            cursor = max(cursor, node.end_byte)
            return

        for child in node.children:
            visit(child)

    for node in nodes:
        visit(node)
    read_through(end)
    return "".join(parts)


__all__ = ["Replacer", "RewriteNode", "process_nodes", "process_tree"]
