"""Helpers for rendering decompiled script source.

Each declaration renders through a :class:`SourceWriter` so that indentation
stays consistent no matter which statement produced a line.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List


class SourceWriter:
    """Incremental pretty printer.

    The writer keeps track of indentation; statements only call
    :meth:`write_line` and open nested bodies with :meth:`indented`.
    """

    def __init__(self, indent: str = "    ") -> None:
        self._indent = 0
        self._indent_unit = indent
        self._lines: List[str] = []

    def write_line(self, text: str) -> None:
        """Append ``text`` at the current indentation level."""

        self._lines.append(f"{self._indent_unit * self._indent}{text}")

    # ------------------------------------------------------------------
    # indentation helpers
    # ------------------------------------------------------------------
    @contextmanager
    def indented(self) -> Iterator[None]:
        """Context manager that increases indentation within the ``with`` body."""

        self.indent()
        try:
            yield
        finally:
            self.dedent()

    def indent(self) -> None:
        self._indent += 1

    def dedent(self) -> None:
        if self._indent == 0:
            raise ValueError("indentation underflow")
        self._indent -= 1

    def render(self) -> str:
        """Return the accumulated source code."""

        return "\n".join(self._lines).rstrip() + "\n"
