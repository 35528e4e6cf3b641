"""Core records shared between the compiler adapter and the bundler."""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class SourceFile:
    """Declaration text for one compiled unit."""

    file_name: str
    text: str
    is_pre_declared: bool = False


@dataclass(frozen=True)
class Diagnostic:
    """Compiler diagnostic with a 1-based position."""

    file_name: str
    line: int
    column: int
    code: int
    message: str
    category: str = "semantic"

    def format(self) -> str:
        if not self.file_name:
            return f"error TS{self.code}: {self.message}"
        return f"{self.file_name}({self.line},{self.column}): error TS{self.code}: {self.message}"


@dataclass
class CompiledFile:
    """Result of compiling a single source unit, in compiler traversal order."""

    file_name: str
    declaration: Optional[SourceFile] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    emit_skipped: bool = False


@dataclass
class Compilation:
    """Ordered output of one compiler invocation.

    `diagnostics` holds reports not tied to any file (bad options and the like).
    """

    files: List[CompiledFile] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass(frozen=True)
class FormatOptions:
    """Line terminator and indent used when assembling the bundle."""

    eol: str = os.linesep
    indent: str = "\t"
