"""Spans: composable pieces of terminal output that know their visual width.

A span can be written to any text stream and reports the width it takes on
the terminal, ignoring zero-width colouring sequences. Tables built from
spans line up their columns correctly even when cells are coloured.
"""

from __future__ import annotations

import io
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from ctrltools.pretty.table import TableCalculator

BOLD = 1
FAINT = 2
ITALIC = 3
UNDERLINE = 4
CROSSED_OUT = 9
FG_GREEN = 32

_RESET = "\x1b[0m"


def colors_enabled() -> bool:
    """Report whether terminal colouring should be emitted."""
    if "NO_COLOR" in os.environ:
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


class Span(ABC):
    """A chunk of terminal output with a known visual width."""

    @abstractmethod
    def visual_length(self) -> int:
        """Width as seen on the terminal (widest line, without escape codes)."""

    @abstractmethod
    def write_to(self, out: TextIO) -> None:
        """Write the full contents of the span to ``out``."""

    def __str__(self) -> str:
        buf = io.StringIO()
        self.write_to(buf)
        return buf.getvalue()


@dataclass(frozen=True)
class Text(Span):
    """Raw text."""

    text: str

    def visual_length(self) -> int:
        return len(self.text)

    def write_to(self, out: TextIO) -> None:
        out.write(self.text)


class Table(Span):
    """A span laid out as a table, sized by a :class:`TableCalculator`.

    Rows are built with :meth:`start_row`, some calls to :meth:`column`,
    and :meth:`end_row`.
    """

    def __init__(self, sizing: Optional[TableCalculator] = None) -> None:
        self.sizing = sizing if sizing is not None else TableCalculator()
        self._rows: list[list[Span]] = []
        self._col_sizes: Optional[list[int]] = None

    def start_row(self) -> None:
        """Begin a new row."""
        self._rows.append([])

    def _current_row(self) -> list[Span]:
        if not self._rows:
            raise RuntimeError("no row has been started")
        return self._rows[-1]

    def end_row(self) -> None:
        """Finish the current row, registering its cell widths."""
        self.sizing.add_row_sizes(*(cell.visual_length() for cell in self._current_row()))

    def column(self, contents: Span) -> None:
        """Add a cell to the current row."""
        self._current_row().append(contents)

    def skip_row(self, contents: Span) -> None:
        """Add a row that does not take part in column sizing."""
        self._rows.append([contents])

    def _sizes(self) -> list[int]:
        if self._col_sizes is None:
            self._col_sizes = self.sizing.column_widths()
        return self._col_sizes

    def visual_length(self) -> int:
        return sum(self._sizes())

    def write_to(self, out: TextIO) -> None:
        sizes = self._sizes()
        for cells in self._rows:
            for index, cell in enumerate(cells):
                diff = sizes[index] - cell.visual_length()
                cell.write_to(out)
                if diff > 0:
                    out.write(" " * diff)
            out.write("\n")


class _Indented(Span):
    def __init__(self, amount: int, content: Span) -> None:
        self.amount = amount
        self.content = content

    def visual_length(self) -> int:
        return self.content.visual_length()

    def write_to(self, out: TextIO) -> None:
        rendered = str(self.content)
        for index, text_line in enumerate(rendered.split("\n")):
            if index:
                out.write("\n")
            if not text_line:
                continue
            out.write("\t" * self.amount)
            out.write(text_line)


def indented(amount: int, content: Span) -> Span:
    """Indent every non-empty line of ``content`` by ``amount`` tabs."""
    return _Indented(amount, content)


class _FromWriter(Span):
    def __init__(self, run: Callable[[TextIO], None]) -> None:
        self._run = run
        self._cache: Optional[str] = None
        self._error: Optional[Exception] = None

    def visual_length(self) -> int:
        if self._cache is None:
            buf = io.StringIO()
            try:
                self._run(buf)
            except Exception as exc:  # remembered and raised again on write
                self._error = exc
            self._cache = buf.getvalue()
        return len(self._cache)

    def write_to(self, out: TextIO) -> None:
        if self._cache is not None:
            if self._error is not None:
                raise self._error
            out.write(self._cache)
            return
        self._run(out)


def from_writer(run: Callable[[TextIO], None]) -> Span:
    """Make a span whose content is produced by ``run(stream)``."""
    return _FromWriter(run)


class Decoration:
    """A set of terminal text attributes (SGR codes) to apply to spans.

    ``enabled`` forces colouring on or off; when ``None`` it follows
    :func:`colors_enabled` at write time.
    """

    def __init__(self, *attributes: int, enabled: Optional[bool] = None) -> None:
        self.attributes = tuple(attributes)
        self.enabled = enabled

    def _active(self) -> bool:
        return colors_enabled() if self.enabled is None else self.enabled

    def _sequence(self) -> str:
        return "\x1b[" + ";".join(str(a) for a in self.attributes) + "m"

    def containing(self, contents: Span) -> Span:
        """Return a span showing ``contents`` with this decoration."""
        return _Decorated(contents, self)


class _Decorated(Span):
    def __init__(self, contents: Span, decoration: Decoration) -> None:
        self.contents = contents
        self.decoration = decoration

    def visual_length(self) -> int:
        return self.contents.visual_length()

    def write_to(self, out: TextIO) -> None:
        if not self.decoration._active():
            self.contents.write_to(out)
            return
        out.write(self.decoration._sequence())
        try:
            self.contents.write_to(out)
        finally:
            out.write(_RESET)


class SpanWriter(Span):
    """A sequence of spans written one after another."""

    def __init__(self) -> None:
        self._contents: list[Span] = []

    def print(self, span: Span) -> None:
        """Append a span."""
        self._contents.append(span)

    def visual_length(self) -> int:
        return sum(span.visual_length() for span in self._contents)

    def write_to(self, out: TextIO) -> None:
        for span in self._contents:
            span.write_to(out)


class _Lines(Span):
    def __init__(self, amount_before: int, content: Optional[Span] = None) -> None:
        self.amount_before = amount_before
        self.content = content

    def visual_length(self) -> int:
        return 0 if self.content is None else self.content.visual_length()

    def write_to(self, out: TextIO) -> None:
        out.write("\n" * self.amount_before)
        if self.content is not None:
            self.content.write_to(out)


def newlines(amount: int) -> Span:
    """A span holding just ``amount`` newlines."""
    return _Lines(amount)


def line(content: Span) -> Span:
    """A newline followed by ``content``."""
    return _Lines(1, content)