"""Tests for the output document sink."""

from __future__ import annotations

import io
import stat
from pathlib import Path

import pytest

from dtsbundle.sink import OutputDocument


def test_open_creates_parent_directories_and_keeps_eol(tmp_path: Path) -> None:
    target = tmp_path / "dist" / "types" / "lib.d.ts"

    with OutputDocument.open(target) as document:
        document.write("a\r\n")
        document.write("b\n")

    assert target.read_bytes() == b"a\r\nb\n"
    assert stat.S_IMODE(target.stat().st_mode) & ~0o644 == 0


def test_close_is_idempotent_and_blocks_writes() -> None:
    stream = io.StringIO()
    document = OutputDocument(stream)
    document.close()
    document.close()

    assert document.closed is True
    assert stream.closed is True
    with pytest.raises(ValueError):
        document.write("late")


def test_context_manager_closes_on_error() -> None:
    stream = io.StringIO()
    with pytest.raises(RuntimeError):
        with OutputDocument(stream) as document:
            document.write("partial")
            raise RuntimeError("boom")
    assert document.closed is True
    assert stream.closed is True
