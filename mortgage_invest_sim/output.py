"""Diagnostic sinks: a verbose month-by-month trace and succinct summary lines."""

import sys
from pathlib import Path
from typing import TextIO


class Output:
    """Discards everything. Subclasses decide where lines go."""

    def verbose(self, text: str = "") -> None:
        pass

    def write(self, text: str = "") -> None:
        pass

    def flush(self) -> None:
        pass


NullOutput = Output


class ConsoleOutput(Output):
    """Summary lines to stdout; trace lines too when verbose."""

    def __init__(self, verbose: bool = False, stream: TextIO | None = None):
        self.is_verbose = verbose
        self.stream = stream

    def verbose(self, text: str = "") -> None:
        if self.is_verbose:
            print(text, file=self.stream or sys.stdout)

    def write(self, text: str = "") -> None:
        print(text, file=self.stream or sys.stdout)


class BufferedOutput(Output):
    """Collects lines in memory."""

    def __init__(self):
        self.lines: list[str] = []
        self.verbose_lines: list[str] = []

    def verbose(self, text: str = "") -> None:
        self.verbose_lines.append(text)

    def write(self, text: str = "") -> None:
        self.lines.append(text)
        self.verbose_lines.append(text)

    def text(self) -> str:
        return "\n".join(self.lines)


class FileOutput(Output):
    """Full trace streamed to a file; summary lines echoed to stdout."""

    def __init__(self, path: Path):
        self.path = path
        self._file: TextIO | None = None
        self._opened = False

    def _stream(self) -> TextIO:
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Line buffered; reopening after flush appends
            self._file = open(self.path, "a" if self._opened else "w", buffering=1)
            self._opened = True
        return self._file

    def verbose(self, text: str = "") -> None:
        self._stream().write(text + "\n")

    def write(self, text: str = "") -> None:
        self.verbose(text)
        print(text)

    def flush(self) -> None:
        if self._file is None and self._opened:
            return
        self._stream().close()
        self._file = None
        print(f"Trace written to {self.path}", file=sys.stderr)
