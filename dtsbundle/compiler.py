"""Compiler interface and the `tsc` command line adapter."""

from __future__ import annotations

import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from .logging import get_logger
from .models import CompiledFile, Compilation, Diagnostic, SourceFile
from .module_ids import DECLARATION_SUFFIX, is_under

_DIAGNOSTIC_PATTERN = re.compile(
    r"^(?:(?P<file>.+?)\((?P<line>\d+),(?P<column>\d+)\): )?error TS(?P<code>\d+): (?P<message>.*)$"
)
_SOURCE_SUFFIXES = (".tsx", ".ts")


class CompilerError(RuntimeError):
    """Raised when the compiler cannot be started."""


@dataclass
class CompilerOptions:
    """Settings forwarded to the compiler; declarations and CommonJS are implied.

    `out_dir` only decides where declarations are reported as written, and so
    the module ids derived from them; emitted files never land there.
    """

    base_dir: str
    target: str = "esnext"
    out_dir: Optional[str] = None
    module_resolution: Optional[str] = None


class Compiler(Protocol):
    def compile(self, files: Sequence[str], options: CompilerOptions) -> Compilation:
        """Compile `files`, returning per-file declarations in traversal order."""


class TscCompiler:
    """Runs the TypeScript command line compiler and collects its declarations."""

    def __init__(
        self,
        executable: str = "tsc",
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.executable = executable
        self._runner = runner or self._default_runner
        self.logger = get_logger("compiler")

    def compile(self, files: Sequence[str], options: CompilerOptions) -> Compilation:
        base_dir = os.path.normpath(options.base_dir)
        with tempfile.TemporaryDirectory(prefix="dtsbundle-") as emit_dir:
            args = self._build_args(files, options, emit_dir)
            self.logger.debug("Running %s", " ".join(args))
            output = self._runner(args, cwd=Path(base_dir))
            listed, diagnostics = self._parse_output(output, base_dir)

            by_file: Dict[str, List[Diagnostic]] = {}
            global_diagnostics: List[Diagnostic] = []
            for diagnostic in diagnostics:
                if diagnostic.file_name:
                    by_file.setdefault(os.path.normpath(diagnostic.file_name), []).append(diagnostic)
                else:
                    global_diagnostics.append(diagnostic)

            declaration_dir = base_dir
            if options.out_dir:
                declaration_dir = os.path.normpath(os.path.join(base_dir, options.out_dir))
            compiled = [
                self._collect(file_name, base_dir, Path(emit_dir), declaration_dir, by_file.get(file_name, []))
                for file_name in listed
            ]
        return Compilation(files=compiled, diagnostics=global_diagnostics)

    def _build_args(self, files: Sequence[str], options: CompilerOptions, emit_dir: str) -> List[str]:
        args = [
            self.executable,
            "--declaration",
            "--emitDeclarationOnly",
            "--pretty",
            "false",
            "--listFiles",
            "--module",
            "commonjs",
            "--target",
            options.target,
            "--rootDir",
            os.path.normpath(options.base_dir),
            "--outDir",
            emit_dir,
        ]
        if options.module_resolution:
            args.extend(["--moduleResolution", options.module_resolution])
        args.extend(files)
        return args

    def _parse_output(self, output: str, base_dir: str) -> tuple[List[str], List[Diagnostic]]:
        listed: List[str] = []
        diagnostics: List[Diagnostic] = []
        for raw in output.splitlines():
            if not raw.strip():
                continue
            match = _DIAGNOSTIC_PATTERN.match(raw)
            if match:
                file_name = match.group("file") or ""
                if file_name:
                    file_name = os.path.normpath(os.path.join(base_dir, file_name))
                code = int(match.group("code"))
                diagnostics.append(
                    Diagnostic(
                        file_name=file_name,
                        line=int(match.group("line") or 0),
                        column=int(match.group("column") or 0),
                        code=code,
                        message=match.group("message"),
                        category=_category_for_code(code),
                    )
                )
                continue
            if raw[0].isspace() and diagnostics:
                # Chained message text continues on indented lines.
                last = diagnostics[-1]
                diagnostics[-1] = Diagnostic(
                    file_name=last.file_name,
                    line=last.line,
                    column=last.column,
                    code=last.code,
                    message=f"{last.message}\n{raw.strip()}",
                    category=last.category,
                )
                continue
            listed.append(os.path.normpath(raw.strip()))
        return listed, diagnostics

    def _collect(
        self,
        file_name: str,
        base_dir: str,
        emit_dir: Path,
        declaration_dir: str,
        diagnostics: List[Diagnostic],
    ) -> CompiledFile:
        if not is_under(file_name, base_dir):
            return CompiledFile(file_name=file_name, diagnostics=diagnostics)

        if file_name.endswith(DECLARATION_SUFFIX):
            text = Path(file_name).read_text(encoding="utf-8")
            return CompiledFile(
                file_name=file_name,
                declaration=SourceFile(file_name=file_name, text=text, is_pre_declared=True),
                diagnostics=diagnostics,
            )

        stem = _strip_source_suffix(os.path.relpath(file_name, base_dir))
        emitted = emit_dir / (stem + DECLARATION_SUFFIX)
        if not emitted.exists():
            return CompiledFile(file_name=file_name, diagnostics=diagnostics, emit_skipped=True)
        declaration = SourceFile(
            file_name=os.path.join(declaration_dir, stem + DECLARATION_SUFFIX),
            text=emitted.read_text(encoding="utf-8"),
        )
        return CompiledFile(file_name=file_name, declaration=declaration, diagnostics=diagnostics)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd),
                check=False,
                text=True,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise CompilerError(f"TypeScript compiler not found: {exc.filename}") from exc
        # tsc reports diagnostics on stdout and exits non-zero when there are any.
        return completed.stdout


def _strip_source_suffix(path: str) -> str:
    for suffix in _SOURCE_SUFFIXES:
        if path.endswith(suffix):
            return path[: -len(suffix)]
    return path


def _category_for_code(code: int) -> str:
    if 1000 <= code < 2000:
        return "syntactic"
    if 4000 <= code < 5000:
        return "declaration"
    if code >= 5000:
        return "emit"
    return "semantic"


__all__ = ["Compiler", "CompilerError", "CompilerOptions", "TscCompiler"]
