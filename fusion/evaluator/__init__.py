"""
Fusion Evaluator Package

Executes a resolved, type-annotated AST directly.

Author: xwest
"""

from .evaluator import Evaluator, EvaluationError, Frame

__all__ = [
    "Evaluator",
    "EvaluationError",
    "Frame",
]
