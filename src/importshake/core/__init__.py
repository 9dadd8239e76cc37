"""Core functionality for importshake."""
from __future__ import annotations

from importshake.core.results import BatchResult, ErrorResult, Result
from importshake.core.shake import Shake, ShakeReport

__all__ = [
    "BatchResult",
    "ErrorResult",
    "Result",
    "Shake",
    "ShakeReport",
]
