"""
Line and column lookup over a Fusion source buffer.
"""

from bisect import bisect_right
from typing import List, Tuple


class SourceText:
    """Wraps a source string and answers offset -> (line, column) queries."""

    def __init__(self, text: str, filename: str = "<string>"):
        self.text = text
        self.filename = filename
        self._line_starts: List[int] = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(index + 1)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_index(self, offset: int) -> int:
        """Zero-based line containing the offset."""
        return bisect_right(self._line_starts, offset) - 1

    def location(self, offset: int) -> Tuple[int, int]:
        """One-based (line, column) of the offset."""
        line = self.line_index(offset)
        return line + 1, offset - self._line_starts[line] + 1

    def line_text(self, line_index: int) -> str:
        start = self._line_starts[line_index]
        if line_index + 1 < len(self._line_starts):
            end = self._line_starts[line_index + 1] - 1
        else:
            end = len(self.text)
        return self.text[start:end].rstrip("\r")

    def __len__(self) -> int:
        return len(self.text)
