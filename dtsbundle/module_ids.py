"""Module identifier computation for bundled declaration files."""

from __future__ import annotations

import os
import posixpath

DECLARATION_SUFFIX = ".d.ts"


def filename_to_mid(filename: str) -> str:
    """Return `filename` with every path separator converted to `/`."""
    normalized = filename.replace("\\", "/")
    if os.sep != "/":
        normalized = normalized.replace(os.sep, "/")
    return normalized


def compute_module_id(base_dir: str | os.PathLike[str], package_name: str, file_path: str | os.PathLike[str]) -> str:
    """Map a declaration file under `base_dir` to its bundle module id.

    ``compute_module_id("/proj/src", "lib", "/proj/src/util/io.d.ts")`` gives
    ``"lib/util/io"``. Exactly one trailing ``.d.ts`` is stripped.
    """
    base = filename_to_mid(os.fspath(base_dir)).rstrip("/")
    path = filename_to_mid(os.fspath(file_path))
    if path != base and not path.startswith(base + "/"):
        raise ValueError(f"{file_path} is not under {base_dir}")

    relative = path[len(base):]
    if relative.endswith(DECLARATION_SUFFIX):
        relative = relative[: -len(DECLARATION_SUFFIX)]
    return package_name + relative


def is_under(path: str, base_dir: str) -> bool:
    """Return True when normalized `path` is `base_dir` or lies beneath it."""
    return path == base_dir or path.startswith(base_dir.rstrip(os.sep) + os.sep)


def resolve_relative_specifier(containing_module_id: str, specifier: str) -> str:
    """Resolve `specifier` against the module that contains it.

    Only specifiers starting with ``.`` name modules inside the bundle; anything
    else is a package reference and passes through untouched.
    """
    if not specifier.startswith("."):
        return specifier
    joined = posixpath.join(posixpath.dirname(containing_module_id), specifier)
    return posixpath.normpath(joined)


__all__ = [
    "DECLARATION_SUFFIX",
    "compute_module_id",
    "filename_to_mid",
    "is_under",
    "resolve_relative_specifier",
]
