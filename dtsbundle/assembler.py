"""Per-file declaration assembly: module wrapping and specifier rewriting."""

from __future__ import annotations

import re
from typing import AbstractSet, List, Optional

from tree_sitter import Node

from .logging import get_logger
from .models import FormatOptions, SourceFile
from .module_ids import compute_module_id, filename_to_mid, resolve_relative_specifier
from .rewriter import process_nodes, process_tree
from .sink import OutputDocument
from .syntax import (
    first_child_of_type,
    is_external_module,
    is_import_type_source,
    is_module_source,
    node_text,
    parse_declaration,
    starts_line,
    string_value,
)

logger = get_logger("assembler")


class ModuleRewriteRules:
    """Rewrite rules applied to the content of one wrapped module."""

    def __init__(self, module_id: str, source: bytes) -> None:
        self.module_id = module_id
        self.source = source

    def __call__(self, node: Node) -> Optional[str]:
        node_type = node.type
        if node_type == "import_require_clause":
            return self._require_clause(node)
        if node_type == "ambient_declaration":
            return self._ambient_declaration(node)
        if node_type == "declare" and not node.is_named:
            return ""
        if node_type == "import_statement":
            return self._import_statement(node)
        if node_type == "string" and (is_module_source(node) or is_import_type_source(node)):
            value = string_value(node)
            if value.startswith("."):
                return f"'{self.resolve(value)}'"
        return None

    def resolve(self, specifier: str) -> str:
        return resolve_relative_specifier(self.module_id, specifier)

    def _ambient_declaration(self, node: Node) -> Optional[str]:
        # A leading `declare` goes together with the whitespace after it.
        children = node.children
        if len(children) < 2 or children[0].type != "declare" or not starts_line(self.source, node):
            return None
        return process_nodes(self.source, children[1:], self)

    def _require_clause(self, node: Node) -> Optional[str]:
        name = first_child_of_type(node, "identifier")
        source = node.child_by_field_name("source")
        if source is None:
            source = first_child_of_type(node, "string")
        if name is None or source is None:
            return None
        value = string_value(source)
        if not value.startswith("."):
            return None
        return f"{node_text(name)} = require('{self.resolve(value)}')"

    def _import_statement(self, node: Node) -> Optional[str]:
        source = node.child_by_field_name("source")
        clause = first_child_of_type(node, "import_clause")
        if source is None or clause is None:
            return None
        target = self.resolve(string_value(source))

        default_name = first_child_of_type(clause, "identifier")
        if default_name is not None:
            return f"import {node_text(default_name)} from '{target}';"

        named_imports = first_child_of_type(clause, "named_imports")
        if named_imports is not None:
            names = _binding_names(named_imports)
            return f"import {{{', '.join(names)}}} from '{target}';"
        return None


def _binding_names(named_imports: Node) -> List[str]:
    names: List[str] = []
    for specifier in named_imports.named_children:
        if specifier.type != "import_specifier":
            continue
        name = specifier.child_by_field_name("name")
        if name is None:
            # Unresolvable bindings are dropped rather than failing the file.
            logger.debug("Skipping import binding without a name: %s", node_text(specifier))
            continue
        alias = specifier.child_by_field_name("alias")
        if alias is not None:
            names.append(f"{node_text(name)} as {node_text(alias)}")
        else:
            names.append(node_text(name))
    return names


class DeclarationAssembler:
    """Turns declaration files into bundle blocks.

    External modules are wrapped in ``declare module '<id>' { ... }`` with their
    relative specifiers rewritten to bundle module ids; ambient declaration files
    are passed through untouched.
    """

    def __init__(
        self,
        base_dir: str,
        package_name: str,
        format_options: FormatOptions | None = None,
        excludes: AbstractSet[str] = frozenset(),
    ) -> None:
        self.base_dir = base_dir
        self.package_name = package_name
        self.format_options = format_options or FormatOptions()
        self.excludes = excludes
        eol = re.escape(self.format_options.eol)
        self._non_empty_line_start = re.compile(f"{eol}(?!{eol}|\\Z)")

    def is_excluded(self, file_name: str) -> bool:
        return filename_to_mid(file_name) in self.excludes

    def module_id(self, file_name: str) -> str:
        return compute_module_id(self.base_dir, self.package_name, file_name)

    def assemble(self, source_file: SourceFile) -> str:
        """Return the bundle text for one declaration file ("" when excluded)."""
        if self.is_excluded(source_file.file_name):
            return ""

        module_id = self.module_id(source_file.file_name)
        source = source_file.text.encode("utf-8")
        tree = parse_declaration(source)
        if not is_external_module(tree):
            return source_file.text

        eol = self.format_options.eol
        indent = self.format_options.indent
        content = process_tree(source, tree.root_node, ModuleRewriteRules(module_id, source))
        content = self.reindent(content)
        return f"declare module '{module_id}' {{{eol}{indent}{content}{eol}}}{eol}"

    def reindent(self, content: str) -> str:
        """Indent every line after the first, leaving empty lines bare."""
        indent = self.format_options.indent
        return self._non_empty_line_start.sub(lambda match: match.group(0) + indent, content)

    def write(self, source_file: SourceFile, document: OutputDocument) -> None:
        block = self.assemble(source_file)
        if block:
            document.write(block)


__all__ = ["DeclarationAssembler", "ModuleRewriteRules"]
