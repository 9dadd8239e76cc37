"""Result types for operations that touch files.

- Result - outcome of patching one file or writing the configuration
- ErrorResult - a file that could not be processed
- BatchResult - outcomes of patching many files
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator


@dataclass
class Result:
    """Outcome of a file operation.

    Per-file problems are reported through results rather than raised, so one
    bad file never stops a batch.

    Attributes:
        success: Whether the operation succeeded
        message: Human-readable description of what happened
        files_changed: Files that were (or in a dry run would be) modified
        diff: Unified diff of the change, if any
        diffs: Per-file diffs mapping path to diff string
    """

    success: bool
    message: str
    files_changed: list[Path] = field(default_factory=list)
    diff: str | None = None
    diffs: dict[Path, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class ErrorResult(Result):
    """Result for a file that could not be processed.

    Attributes:
        exception: The original exception, if any
        operation: Name of the attempted operation
        target_repr: The module or file the operation was for
    """

    success: bool = field(default=False, init=False)
    exception: Exception | None = None
    operation: str = ""
    target_repr: str = ""


@dataclass
class BatchResult:
    """Aggregate of per-file results."""

    results: list[Result] = field(default_factory=list)

    def append(self, result: Result) -> None:
        self.results.append(result)

    @property
    def success(self) -> bool:
        """True if every operation succeeded."""
        return all(r.success for r in self.results)

    @property
    def failed(self) -> list[Result]:
        return [r for r in self.results if not r.success]

    @property
    def files_changed(self) -> list[Path]:
        """Every changed file, in path order."""
        files: set[Path] = set()
        for r in self.results:
            files.update(r.files_changed)
        return sorted(files)

    @property
    def diffs(self) -> dict[Path, str]:
        merged: dict[Path, str] = {}
        for r in self.results:
            merged.update(r.diffs)
        return merged

    @property
    def diff(self) -> str | None:
        """Combined diff of every result, or None if nothing changed."""
        from importshake.core.diff import combine_diffs

        combined = combine_diffs(self.diffs)
        return combined or None

    def __bool__(self) -> bool:
        return self.success

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[Result]:
        return iter(self.results)
