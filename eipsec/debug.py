"""Categorised log output in the fixed column layout used by the stack."""

from __future__ import annotations

import sys
from enum import Flag, auto


class Category(Flag):
    """Kinds of log output that can be switched on or off."""

    ERROR = auto()
    DEBUG = auto()
    MESSAGE = auto()
    TRACE = auto()
    AUDIT = auto()
    TEST = auto()
    DUMP_BUFFERS = auto()
    TABLES = auto()


DEFAULT_CATEGORIES = (
    Category.ERROR | Category.MESSAGE | Category.AUDIT | Category.TEST | Category.TABLES
)


class IpsecLog:
    """Writes log lines for the enabled categories to a text stream.

    With no stream given, output goes to whatever ``sys.stdout`` is at the
    time of writing.
    """

    def __init__(self, stream=None, categories=DEFAULT_CATEGORIES):
        self.stream = stream
        self.categories = categories
        self.trace_depth = 0

    def _write(self, text: str) -> None:
        (self.stream if self.stream is not None else sys.stdout).write(text)

    def _coded(self, tag: str, category: Category, function, code, message) -> None:
        if category in self.categories:
            self._write(f"{tag} {function:<28}: {int(code):9d} : {message}\n")

    def error(self, function, code, message):
        """Log a severe error."""
        self._coded("ERR", Category.ERROR, function, code, message)

    def debug(self, function, code, message):
        """Log a less critical error."""
        self._coded("DBG", Category.DEBUG, function, code, message)

    def message(self, function, message):
        """Log an informative message."""
        if Category.MESSAGE in self.categories:
            self._write(f"MSG {function:<28}: {message}\n")

    def audit(self, function, code, message):
        """Log an auditable event."""
        self._coded("AUD", Category.AUDIT, function, code, message)

    def test(self, function, code, message):
        """Log a test result; ``code`` is a short text such as ``SUCCESS``."""
        if Category.TEST in self.categories:
            self._write(f"TST {function:<28}: {code:>9} : {message}\n")

    def enter(self, function, message):
        """Trace entry into a function, indenting one level deeper."""
        if Category.TRACE in self.categories:
            self.trace_depth += 1
            self._write(f"{'  ' * self.trace_depth}ENTER  {function}({message})\n")

    def leave(self, function, message):
        """Trace return from a function, going back one level."""
        if Category.TRACE in self.categories:
            indent = "  " * self.trace_depth
            self.trace_depth -= 1
            self._write(f"{indent}RETURN {function}({message})\n")