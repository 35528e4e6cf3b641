"""Configuration loading for dtsbundle (.dtsbundle.yml and tsconfig.json)."""

from __future__ import annotations

import glob
import json
import os
from dataclasses import dataclass, field, replace
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".dtsbundle.yml"
TSCONFIG_FILENAME = "tsconfig.json"
DEFAULT_EXCLUDES = ("node_modules/**/*.d.ts",)
_TSCONFIG_DEFAULT_EXCLUDES = ("node_modules", "bower_components", "jspm_packages")
_TYPESCRIPT_SUFFIXES = (".ts", ".tsx")
_TSCONFIG_INPUT_KEYS = ("files", "include", "exclude")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be located or parsed."""


@dataclass
class BundleOptions:
    """Effective settings for a single bundling run."""

    name: str
    out: Path
    base_dir: Optional[Path] = None
    project: Optional[Path] = None
    files: List[str] = field(default_factory=list)
    exclude: Optional[List[str]] = None
    externs: List[str] = field(default_factory=list)
    main: Optional[str] = None
    eol: Optional[str] = None
    indent: str = "\t"
    target: Optional[str] = None
    out_dir: Optional[str] = None
    module_resolution: Optional[str] = None
    verbose: bool = False
    log_file: Optional[Path] = None


@dataclass
class BundleConfig:
    """Represents the settings defined in .dtsbundle.yml."""

    root: Path
    name: Optional[str] = None
    out: Optional[Path] = None
    main: Optional[str] = None
    base_dir: Optional[Path] = None
    project: Optional[Path] = None
    exclude: List[str] = field(default_factory=list)
    externs: List[str] = field(default_factory=list)
    eol: Optional[str] = None
    indent: Optional[str] = None
    verbose: bool = False
    log_file: Optional[Path] = None

    def to_options(self, **overrides: Any) -> BundleOptions:
        """Build run options, letting non-empty `overrides` win over file values."""
        name = overrides.pop("name", None) or self.name
        out = overrides.pop("out", None) or self.out
        if not name:
            raise ConfigError("A package name is required")
        if not out:
            raise ConfigError("An output file is required")
        options = BundleOptions(
            name=name,
            out=Path(out),
            base_dir=self.base_dir,
            project=self.project,
            exclude=list(self.exclude) or None,
            externs=list(self.externs),
            main=self.main,
            eol=self.eol,
            indent=self.indent if self.indent is not None else "\t",
            verbose=self.verbose,
            log_file=self.log_file,
        )
        values = {key: value for key, value in overrides.items() if value not in (None, [], False)}
        return replace(options, **values)


@dataclass
class TsConfig:
    """Compiler settings and input files resolved from tsconfig.json."""

    path: Path
    files: List[str] = field(default_factory=list)
    target: Optional[str] = None
    out_dir: Optional[str] = None
    module_resolution: Optional[str] = None


def load_config(config_path: Path) -> BundleConfig:
    """Load .dtsbundle.yml from a directory or file path; defaults when missing."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return BundleConfig(root=root)

    text = config_file.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {config_file.name}: {exc}") from exc
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    out = _as_str(data.get("out"))
    base_dir = _as_str(data.get("base_dir"))
    project = _as_str(data.get("project"))
    log_file = _as_str(data.get("log_file"))
    return BundleConfig(
        root=root,
        name=_as_str(data.get("name")),
        out=root / out if out else None,
        main=_as_str(data.get("main")),
        base_dir=root / base_dir if base_dir else None,
        project=root / project if project else None,
        exclude=_as_str_list(data.get("exclude")),
        externs=_as_str_list(data.get("externs")),
        eol=_as_str(data.get("eol")),
        indent=_as_str(data.get("indent")),
        verbose=bool(data.get("verbose", False)),
        log_file=root / log_file if log_file else None,
    )


def load_tsconfig(config_file: Path) -> TsConfig:
    """Read tsconfig.json, following `extends`, and expand its input files."""
    config_file = Path(config_file).resolve()
    merged = _read_tsconfig(config_file, ())
    compiler_options = merged["compilerOptions"]
    out_dir = _as_str(compiler_options.get("outDir"))

    return TsConfig(
        path=config_file,
        files=_expand_tsconfig_files(config_file.parent, merged, out_dir),
        target=_as_str(compiler_options.get("target")),
        out_dir=out_dir,
        module_resolution=_as_str(compiler_options.get("moduleResolution")),
    )


def _read_tsconfig(config_file: Path, chain: Sequence[Path]) -> Dict[str, Any]:
    """Return the merged settings of `config_file` and the configs it extends.

    Paths are made absolute against the directory of the file declaring them,
    so inherited globs keep pointing where their author meant.
    """
    if config_file in chain:
        cycle = " -> ".join(str(path) for path in (*chain, config_file))
        raise ConfigError(f"Circular extends in tsconfig: {cycle}")
    data = _parse_tsconfig(config_file)
    root = config_file.parent

    merged: Dict[str, Any] = {"compilerOptions": {}}
    for base in _as_str_list(data.get("extends")):
        inherited = _read_tsconfig(_resolve_extends(root, base), (*chain, config_file))
        merged["compilerOptions"].update(inherited["compilerOptions"])
        for key in _TSCONFIG_INPUT_KEYS:
            if key in inherited:
                merged[key] = inherited[key]

    own_options = dict(_as_dict(data.get("compilerOptions")))
    out_dir = _as_str(own_options.get("outDir"))
    if out_dir:
        own_options["outDir"] = os.path.normpath(os.path.join(root, out_dir))
    merged["compilerOptions"].update(own_options)
    for key in _TSCONFIG_INPUT_KEYS:
        if key in data:
            merged[key] = [os.path.normpath(os.path.join(root, entry)) for entry in _as_str_list(data[key])]
    return merged


def _parse_tsconfig(config_file: Path) -> Dict[str, Any]:
    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {config_file}: {exc}") from exc
    try:
        data = json.loads(_strip_json_comments(text) or "{}")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {config_file}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain an object at the root")
    return data


def _resolve_extends(root: Path, name: str) -> Path:
    if name.startswith(".") or os.path.isabs(name):
        candidates = [root / name]
    else:
        # Package configs such as "@tsconfig/node16/tsconfig.json".
        candidates = [directory / "node_modules" / name for directory in (root, *root.parents)]

    for candidate in candidates:
        for path in (candidate, candidate.with_name(candidate.name + ".json"), candidate / TSCONFIG_FILENAME):
            if path.is_file():
                return path.resolve()
    raise ConfigError(f"Unable to resolve extended configuration '{name}' from {root}")


def _expand_tsconfig_files(root: Path, merged: Dict[str, Any], out_dir: Optional[str]) -> List[str]:
    explicit = merged.get("files", [])
    if "include" in merged:
        includes = merged["include"]
    else:
        includes = [] if explicit else [os.path.join(root, "**", "*")]
    if "exclude" in merged:
        excludes = list(merged["exclude"])
    else:
        excludes = [os.path.join(root, name) for name in _TSCONFIG_DEFAULT_EXCLUDES]
        if out_dir:
            excludes.append(out_dir)
    excludes = [exclude.replace(os.sep, "/") for exclude in excludes]

    seen: set[str] = set()
    result: List[str] = []

    def add(path: Path) -> None:
        resolved = str(path.resolve())
        if resolved not in seen:
            seen.add(resolved)
            result.append(resolved)

    for name in explicit:
        add(Path(name))

    for pattern in includes:
        if not any(ch in pattern for ch in "*?[") and os.path.isdir(pattern):
            pattern = os.path.join(pattern, "**", "*")
        for match in sorted(glob.glob(pattern, recursive=True)):
            normalized = match.replace(os.sep, "/")
            if not normalized.endswith(_TYPESCRIPT_SUFFIXES):
                continue
            if any(_excluded(normalized, exclude) for exclude in excludes):
                continue
            add(Path(match))
    return result


def _excluded(path: str, pattern: str) -> bool:
    pattern = pattern.rstrip("/")
    if path == pattern or path.startswith(pattern + "/"):
        return True
    return fnmatch(path, pattern) or fnmatch(path, pattern + "/*")


def _strip_json_comments(text: str) -> str:
    """Drop // and /* */ comments and trailing commas outside string literals."""
    out: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        nxt = text[index + 1] if index + 1 < length else ""

        if char == '"':
            start = index
            index += 1
            while index < length and text[index] != '"':
                index += 2 if text[index] == "\\" else 1
            index += 1
            out.append(text[start:index])
            continue

        if char == "/" and nxt == "/":
            end = text.find("\n", index + 2)
            index = length if end == -1 else end
            continue

        if char == "/" and nxt == "*":
            end = text.find("*/", index + 2)
            index = length if end == -1 else end + 2
            continue

        if char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead].isspace():
                lookahead += 1
            if lookahead < length and text[lookahead] in "]}":
                index += 1
                continue

        out.append(char)
        index += 1
    return "".join(out).strip()


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "BundleConfig",
    "BundleOptions",
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_EXCLUDES",
    "TSCONFIG_FILENAME",
    "TsConfig",
    "load_config",
    "load_tsconfig",
]
