"""Tests for dtsbundle.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from dtsbundle.config import BundleConfig, ConfigError, load_config, load_tsconfig


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, BundleConfig)
    assert config.root == tmp_path.resolve()
    assert config.name is None
    assert config.out is None
    assert config.exclude == []
    assert config.externs == []
    assert config.indent is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".dtsbundle.yml"
    config_file.write_text(
        """
name: my-lib
out: dist/my-lib.d.ts
main: my-lib/index
base_dir: src
exclude:
  - "node_modules/**/*.d.ts"
  - "tests/**"
externs: ../typings/node.d.ts
eol: "\\n"
indent: "  "
verbose: true
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.name == "my-lib"
    assert config.out == tmp_path.resolve() / "dist" / "my-lib.d.ts"
    assert config.main == "my-lib/index"
    assert config.base_dir == tmp_path.resolve() / "src"
    assert config.exclude == ["node_modules/**/*.d.ts", "tests/**"]
    assert config.externs == ["../typings/node.d.ts"]
    assert config.eol == "\n"
    assert config.indent == "  "
    assert config.verbose is True


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / ".dtsbundle.yml").write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_to_options_prefers_overrides(tmp_path: Path) -> None:
    config = BundleConfig(root=tmp_path, name="from-file", out=tmp_path / "a.d.ts", exclude=["x/**"], indent="  ")

    options = config.to_options(name="from-cli", files=["index.ts"], exclude=[], main=None)

    assert options.name == "from-cli"
    assert options.out == tmp_path / "a.d.ts"
    assert options.files == ["index.ts"]
    assert options.exclude == ["x/**"]
    assert options.indent == "  "
    assert options.main is None


def test_to_options_requires_name_and_out(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="package name"):
        BundleConfig(root=tmp_path).to_options(out=tmp_path / "a.d.ts")
    with pytest.raises(ConfigError, match="output file"):
        BundleConfig(root=tmp_path).to_options(name="lib")


def test_load_tsconfig_tolerates_comments_and_trailing_commas(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write(
        {
            "src/index.ts": "export const a = 1;\n",
            "src/types.d.ts": "declare var T: number;\n",
            "src/readme.md": "ignored\n",
            "node_modules/dep/index.d.ts": "export {};\n",
            "tsconfig.json": """
            {
              // compiler settings
              "compilerOptions": {
                "target": "es2017", /* modern */
                "outDir": "dist",
                "moduleResolution": "node",
              },
              "include": ["src/**/*", "node_modules/**/*"],
              "exclude": ["node_modules"],
            }
            """,
        }
    )
    root = project_builder.path().resolve()

    tsconfig = load_tsconfig(root / "tsconfig.json")

    assert tsconfig.target == "es2017"
    assert tsconfig.out_dir == str(root / "dist")
    assert tsconfig.module_resolution == "node"
    assert tsconfig.files == [str(root / "src" / "index.ts"), str(root / "src" / "types.d.ts")]


def test_load_tsconfig_keeps_explicit_files_first(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write({"main.ts": "export {};\n", "lib/util.ts": "export {};\n"})
    root = project_builder.path().resolve()
    project_builder.write_tsconfig({"files": ["main.ts"], "include": ["lib"]})

    tsconfig = load_tsconfig(root / "tsconfig.json")

    assert tsconfig.files == [str(root / "main.ts"), str(root / "lib" / "util.ts")]
    assert tsconfig.target is None


def test_load_tsconfig_default_include_skips_out_dir(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write({"index.ts": "export {};\n", "build/index.d.ts": "export {};\n"})
    root = project_builder.path().resolve()
    project_builder.write_tsconfig({"compilerOptions": {"outDir": "build"}})

    tsconfig = load_tsconfig(root / "tsconfig.json")

    assert tsconfig.files == [str(root / "index.ts")]


def test_load_tsconfig_reports_invalid_json(tmp_path: Path) -> None:
    config_file = tmp_path / "tsconfig.json"
    config_file.write_text("{ not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load_tsconfig(config_file)


def test_load_tsconfig_follows_extends(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write(
        {
            "src/index.ts": "export {};\n",
            "configs/base.json": '{"compilerOptions": {"target": "es5", "outDir": "../dist", "moduleResolution": "node"}}',
            "tsconfig.json": '{"extends": "./configs/base", "compilerOptions": {"target": "es2019"}, "include": ["src"]}',
        }
    )
    root = project_builder.path().resolve()

    tsconfig = load_tsconfig(root / "tsconfig.json")

    assert tsconfig.target == "es2019"
    assert tsconfig.out_dir == str(root / "dist")
    assert tsconfig.module_resolution == "node"
    assert tsconfig.files == [str(root / "src" / "index.ts")]


def test_load_tsconfig_inherits_include_relative_to_base(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write(
        {
            "shared/lib/util.ts": "export {};\n",
            "shared/tsconfig.base.json": '{"include": ["lib"]}',
            "app/tsconfig.json": '{"extends": "../shared/tsconfig.base.json"}',
        }
    )
    root = project_builder.path().resolve()

    tsconfig = load_tsconfig(root / "app" / "tsconfig.json")

    assert tsconfig.files == [str(root / "shared" / "lib" / "util.ts")]


def test_load_tsconfig_resolves_package_extends(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write(
        {
            "node_modules/@tsconfig/strict/tsconfig.json": '{"compilerOptions": {"target": "es2022"}}',
            "index.ts": "export {};\n",
        }
    )
    root = project_builder.path().resolve()
    project_builder.write_tsconfig({"extends": "@tsconfig/strict/tsconfig.json", "files": ["index.ts"]})

    tsconfig = load_tsconfig(root / "tsconfig.json")

    assert tsconfig.target == "es2022"
    assert tsconfig.files == [str(root / "index.ts")]


def test_load_tsconfig_rejects_circular_extends(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write({"a.json": '{"extends": "./tsconfig.json"}'})
    project_builder.write_tsconfig({"extends": "./a.json"})

    with pytest.raises(ConfigError, match="Circular extends"):
        load_tsconfig(project_builder.path() / "tsconfig.json")


def test_load_tsconfig_reports_missing_base(project_builder) -> None:  # type: ignore[no-untyped-def]
    project_builder.write_tsconfig({"extends": "./missing.json"})

    with pytest.raises(ConfigError, match="missing.json"):
        load_tsconfig(project_builder.path() / "tsconfig.json")


def test_load_config_reads_log_file(tmp_path: Path) -> None:
    (tmp_path / ".dtsbundle.yml").write_text("name: lib\nout: lib.d.ts\nlog_file: logs/run.log\n", encoding="utf-8")

    options = load_config(tmp_path).to_options()

    assert options.log_file == tmp_path.resolve() / "logs" / "run.log"
