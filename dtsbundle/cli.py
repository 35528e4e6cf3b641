"""CLI entrypoint for dtsbundle."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .bundler import EmitterError, generate
from .compiler import CompilerError
from .config import CONFIG_FILENAME, ConfigError, load_config
from .logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dtsbundle",
        description="Bundle TypeScript declaration files into a single module declaration file.",
    )
    parser.add_argument("--name", help="Package name used as the root of every module id.")
    parser.add_argument("--out", help="Path of the bundled declaration file to write.")
    parser.add_argument("--main", help="Module id to alias as the package's main module.")
    parser.add_argument(
        "--base-dir",
        dest="base_dir",
        help="Directory module ids are computed relative to (defaults to the project).",
    )
    parser.add_argument(
        "--project",
        help="Directory containing tsconfig.json; read when no files are given.",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Glob of files to leave out of the bundle (repeatable).",
    )
    parser.add_argument(
        "--extern",
        dest="externs",
        action="append",
        default=[],
        help="Path emitted as a triple-slash reference at the top (repeatable).",
    )
    parser.add_argument("--eol", help="Line terminator for generated text.")
    parser.add_argument("--indent", help="Indent string for module bodies (defaults to a tab).")
    parser.add_argument(
        "--config",
        default=".",
        help=f"Path to {CONFIG_FILENAME} or its directory (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        help="Also write the full debug log to this file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument("files", nargs="*", help="Source files to compile and bundle.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for dtsbundle."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config))
        options = config.to_options(
            name=args.name,
            out=Path(args.out) if args.out else None,
            main=args.main,
            base_dir=Path(args.base_dir) if args.base_dir else None,
            project=Path(args.project) if args.project else None,
            files=list(args.files),
            exclude=list(args.exclude),
            externs=list(args.externs),
            eol=_unescape(args.eol),
            indent=_unescape(args.indent),
            verbose=bool(args.verbose),
            log_file=Path(args.log_file) if args.log_file else None,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    configure_logging(verbose=options.verbose, log_file=options.log_file)

    try:
        generate(options)
    except (ConfigError, EmitterError, CompilerError) as exc:
        parser.exit(1, f"{exc}\n")
    except OSError as exc:
        parser.exit(1, f"dtsbundle failed: {exc}\n")


def _unescape(value: str | None) -> str | None:
    # Shells make "\n" and "\t" awkward to pass literally.
    if value is None:
        return None
    return value.replace("\\r", "\r").replace("\\n", "\n").replace("\\t", "\t")


if __name__ == "__main__":
    main(sys.argv[1:])
