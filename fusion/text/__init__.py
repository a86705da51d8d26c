"""
Fusion text utilities.

Source spans and line/column lookup shared by every compiler phase.

Author: xwest
"""

from .span import TextSpan
from .source import SourceText

__all__ = [
    "TextSpan",
    "SourceText",
]
