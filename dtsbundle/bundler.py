"""Bundle driver: compile, assemble each declaration and write the bundle."""

from __future__ import annotations

import glob
import os
from pathlib import Path
from typing import FrozenSet, Iterable, List, Sequence

from .assembler import DeclarationAssembler
from .compiler import Compiler, CompilerOptions, TscCompiler
from .config import DEFAULT_EXCLUDES, TSCONFIG_FILENAME, BundleOptions, ConfigError, load_tsconfig
from .logging import get_logger
from .models import CompiledFile, Diagnostic, FormatOptions
from .module_ids import filename_to_mid, is_under
from .sink import OutputDocument

logger = get_logger("bundler")


class EmitterError(RuntimeError):
    """Raised when the compiler reports diagnostics or skips emitting a file."""

    def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics = list(diagnostics)
        super().__init__(format_diagnostics(self.diagnostics))


def format_diagnostics(diagnostics: Iterable[Diagnostic]) -> str:
    message = "Declaration generation failed"
    for diagnostic in diagnostics:
        message += "\n" + diagnostic.format()
    return message


def generate(
    options: BundleOptions,
    *,
    compiler: Compiler | None = None,
    document: OutputDocument | None = None,
) -> None:
    """Bundle the declarations of a TypeScript project into `options.out`.

    Files are written in compiler traversal order. The first file with
    diagnostics aborts the run with :class:`EmitterError`; whatever was already
    written stays in the output. The output document is closed on every path.
    """
    _apply_project_config(options)

    base_dir = os.path.normpath(os.path.abspath(options.project or options.base_dir or os.getcwd()))
    logger.debug('baseDir = "%s"', base_dir)
    eol = options.eol if options.eol is not None else os.linesep
    target = options.target or "esnext"
    logger.debug("target = %s", target)
    out_dir = None
    if options.out_dir:
        out_dir = os.path.normpath(os.path.join(base_dir, options.out_dir))
        logger.debug("outDir = %s", out_dir)
        if not is_under(out_dir, base_dir):
            raise ConfigError(f"outDir {out_dir} must be inside the base directory {base_dir}")
    if options.module_resolution:
        logger.debug("moduleResolution = %s", options.module_resolution)

    filenames = resolve_filenames(base_dir, options.files)
    logger.debug("filenames:")
    for name in filenames:
        logger.debug("  %s", name)

    exclude = options.exclude if options.exclude is not None else list(DEFAULT_EXCLUDES)
    logger.debug("exclude:")
    for pattern in exclude:
        logger.debug("  %s", pattern)
    excludes = expand_excludes(base_dir, exclude)

    assembler = DeclarationAssembler(
        base_dir,
        options.name,
        FormatOptions(eol=eol, indent=options.indent),
        excludes,
    )
    compiler = compiler or TscCompiler()
    compiler_options = CompilerOptions(
        base_dir=base_dir,
        target=target,
        out_dir=out_dir,
        module_resolution=options.module_resolution,
    )

    document = document or OutputDocument.open(Path(options.out))
    with document:
        compilation = compiler.compile(filenames, compiler_options)
        if compilation.diagnostics:
            raise EmitterError(compilation.diagnostics)

        for path in options.externs:
            logger.info("Writing external dependency %s", path)
            document.write(f'/// <reference path="{path}" />{eol}')

        logger.info("processing:")
        for compiled in compilation.files:
            _write_compiled(compiled, base_dir, excludes, assembler, document)

        if options.main:
            write_main_alias(document, options.name, options.main, eol=eol, indent=options.indent)
            logger.info("Aliased main module %s to %s", options.name, options.main)

        logger.info('output to "%s"', options.out)


def _write_compiled(
    compiled: CompiledFile,
    base_dir: str,
    excludes: FrozenSet[str],
    assembler: DeclarationAssembler,
    document: OutputDocument,
) -> None:
    file_name = os.path.normpath(compiled.file_name)
    # Default libraries and files from other projects are not part of the bundle.
    if not is_under(file_name, base_dir):
        return
    if filename_to_mid(file_name) in excludes:
        return

    logger.info("  %s", compiled.file_name)
    if compiled.declaration is not None and compiled.declaration.is_pre_declared:
        assembler.write(compiled.declaration, document)
        return

    if compiled.emit_skipped or compiled.diagnostics or compiled.declaration is None:
        raise EmitterError(compiled.diagnostics)
    assembler.write(compiled.declaration, document)


def write_main_alias(document: OutputDocument, name: str, main: str, *, eol: str, indent: str) -> None:
    document.write(f"declare module '{name}' {{{eol}{indent}")
    document.write(f"import main = require('{main}');{eol}{indent}")
    document.write(f"export = main;{eol}")
    document.write(f"}}{eol}")


def resolve_filenames(base_dir: str, files: Iterable[str]) -> List[str]:
    """Resolve input files, falling back to `base_dir` for names outside it."""
    resolved: List[str] = []
    for filename in files:
        absolute = os.path.abspath(filename)
        if absolute.startswith(base_dir):
            resolved.append(absolute)
        else:
            resolved.append(os.path.normpath(os.path.join(base_dir, filename)))
    return resolved


def expand_excludes(base_dir: str, patterns: Iterable[str]) -> FrozenSet[str]:
    """Expand exclude globs relative to `base_dir` into normalized absolute paths."""
    matches = set()
    for pattern in patterns:
        for match in glob.glob(pattern, root_dir=base_dir, recursive=True):
            matches.add(filename_to_mid(os.path.normpath(os.path.join(base_dir, match))))
    return frozenset(matches)


def _apply_project_config(options: BundleOptions) -> None:
    # Mirrors tsc: an explicit project, or no input files, means read tsconfig.json.
    if not options.project and options.files:
        return
    project_dir = Path(options.project or options.base_dir or os.getcwd())
    logger.debug('project = "%s"', project_dir)
    tsconfig_file = project_dir / TSCONFIG_FILENAME
    if not tsconfig_file.exists():
        logger.info('No "%s" found at "%s"!', TSCONFIG_FILENAME, tsconfig_file)
        raise ConfigError("Unable to resolve configuration.")

    logger.debug('  parsing "%s"', tsconfig_file)
    tsconfig = load_tsconfig(tsconfig_file)
    options.target = tsconfig.target
    if tsconfig.out_dir:
        options.out_dir = tsconfig.out_dir
    if tsconfig.module_resolution:
        options.module_resolution = tsconfig.module_resolution
    options.files = tsconfig.files


__all__ = [
    "EmitterError",
    "expand_excludes",
    "format_diagnostics",
    "generate",
    "resolve_filenames",
    "write_main_alias",
]
