"""Tree-sitter parsing helpers for TypeScript declaration files."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

# Top-level statements that give a file module semantics.
MODULE_STATEMENT_TYPES = frozenset({"import_statement", "export_statement"})


@lru_cache(maxsize=1)
def _language() -> Language:
    return Language(tree_sitter_typescript.language_typescript())


def parse_declaration(source: bytes) -> Tree:
    """Parse declaration source into a tree-sitter tree."""
    parser = Parser(_language())
    return parser.parse(source)


def is_external_module(tree: Tree) -> bool:
    """Return True when the program has a top-level import or export statement."""
    return any(child.type in MODULE_STATEMENT_TYPES for child in tree.root_node.children)


def node_text(node: Node) -> str:
    text = node.text
    return text.decode("utf-8") if text is not None else ""


def string_value(node: Node) -> str:
    """Return the contents of a string literal node without its quotes."""
    text = node_text(node)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {"'", '"'}:
        return text[1:-1]
    return text


def starts_line(source: bytes, node: Node) -> bool:
    """Return True when only whitespace precedes `node` on its line."""
    line_start = source.rfind(b"\n", 0, node.start_byte) + 1
    return not source[line_start:node.start_byte].strip()


def first_child_of_type(node: Node, node_type: str) -> Optional[Node]:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def is_module_source(node: Node) -> bool:
    """Return True for the specifier string of an import or export statement."""
    parent = node.parent
    if node.type != "string" or parent is None or parent.type not in MODULE_STATEMENT_TYPES:
        return False
    source = parent.child_by_field_name("source")
    return source is not None and source.start_byte == node.start_byte and source.end_byte == node.end_byte


def is_import_type_source(node: Node) -> bool:
    """Return True for the string in `import("...")`, as used by import types."""
    if node.type != "string":
        return False
    parent = node.parent
    if parent is not None and parent.type == "arguments":
        callee = parent.prev_sibling
        return callee is not None and callee.type == "import"
    previous = node.prev_sibling
    if previous is None or previous.type != "(":
        return False
    keyword = previous.prev_sibling
    return keyword is not None and keyword.type == "import"


__all__ = [
    "MODULE_STATEMENT_TYPES",
    "first_child_of_type",
    "is_external_module",
    "is_import_type_source",
    "is_module_source",
    "node_text",
    "parse_declaration",
    "starts_line",
    "string_value",
]
