"""Append-only output document for the bundled declarations."""

from __future__ import annotations

import os
from pathlib import Path
from types import TracebackType
from typing import Optional, TextIO, Type

OUTPUT_MODE = 0o644


class OutputDocument:
    """Single-writer text sink that is ended exactly once.

    Writes go straight to the wrapped stream; nothing already written is ever
    revisited. Use as a context manager so the stream is closed on every exit
    path, including when a run aborts.
    """

    def __init__(self, stream: TextIO, *, name: str = "<stream>") -> None:
        self._stream = stream
        self.name = name
        self.closed = False

    @classmethod
    def open(cls, path: Path) -> "OutputDocument":
        """Create (or truncate) `path` with mode 644, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OUTPUT_MODE)
        # newline="" keeps the configured eol byte-exact.
        stream = open(fd, "w", encoding="utf-8", newline="")
        return cls(stream, name=str(path))

    def write(self, text: str) -> None:
        if self.closed:
            raise ValueError(f"write to closed output document {self.name}")
        self._stream.write(text)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._stream.flush()
        finally:
            self._stream.close()

    def __enter__(self) -> "OutputDocument":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()


__all__ = ["OUTPUT_MODE", "OutputDocument"]
