"""
Source spans for Fusion tokens and syntax nodes.

Author: xwest
"""

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class TextSpan:
    """A half-open range of character offsets plus the text it covers."""
    start: int
    end: int
    literal: str

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span bounds: {self.start}..{self.end}")

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"

    @staticmethod
    def combine(spans: Iterable['TextSpan']) -> 'TextSpan':
        """
        Build the minimal span enclosing every span given.

        The literal is stitched from the pieces in source order; pieces that
        fall entirely inside an earlier piece are skipped so shared tokens
        are not repeated.
        """
        ordered = sorted(spans, key=lambda span: (span.start, -span.end))
        if not ordered:
            raise ValueError("Cannot combine an empty collection of spans")

        literal = ""
        covered_to = ordered[0].start
        for span in ordered:
            if span.end <= covered_to and span.length > 0:
                continue
            if span.start >= covered_to:
                literal += span.literal
            else:
                # Overlap: keep only the uncovered tail.
                literal += span.literal[covered_to - span.start:]
            covered_to = max(covered_to, span.end)

        return TextSpan(ordered[0].start, max(span.end for span in ordered), literal)
