"""
Tests for importshake.core.results and importshake.core.diff modules.

Patching and config updates never raise for a single bad file - they return
Result objects instead, and BatchResult aggregates them.

Coverage targets:
- Result: success/failure states, boolean evaluation
- ErrorResult: error details
- BatchResult: aggregation, filtering, diff merging
- generate_diff / combine_diffs
"""
from __future__ import annotations

from pathlib import Path

from importshake.core.diff import combine_diffs, generate_diff
from importshake.core.results import BatchResult, ErrorResult, Result


# =============================================================================
# Result Tests
# =============================================================================

class TestResult:
    """Tests for the base Result class."""

    def test_successful_result(self):
        """
        A successful Result should have success=True and be truthy.
        """
        result = Result(success=True, message="Updated imports in a.py")

        assert result.success is True
        assert bool(result) is True
        assert result.files_changed == []
        assert result.diff is None

    def test_failed_result(self):
        result = Result(success=False, message="Nothing to do")
        assert bool(result) is False


# =============================================================================
# ErrorResult Tests
# =============================================================================

class TestErrorResult:
    """Tests for ErrorResult."""

    def test_always_unsuccessful(self):
        result = ErrorResult(message="Failed to parse a.py", operation="patch imports", target_repr="pkg.a")
        assert result.success is False
        assert not result
        assert isinstance(result, Result)


# =============================================================================
# BatchResult Tests
# =============================================================================

class TestBatchResult:
    """Tests for BatchResult aggregation."""

    def test_empty_batch(self):
        batch = BatchResult()
        assert batch.success is True
        assert len(batch) == 0
        assert batch.diff is None
        assert batch.files_changed == []

    def test_partial_success(self):
        ok = Result(success=True, message="ok", files_changed=[Path("b.py")], diffs={Path("b.py"): "diff b"})
        bad = ErrorResult(message="bad")
        batch = BatchResult()
        batch.append(ok)
        batch.append(bad)

        assert not batch
        assert batch.failed == [bad]
        assert list(batch) == [ok, bad]
        assert batch.diffs == {Path("b.py"): "diff b"}

    def test_files_changed_sorted_and_unique(self):
        batch = BatchResult([
            Result(success=True, message="", files_changed=[Path("z.py"), Path("a.py")]),
            Result(success=True, message="", files_changed=[Path("a.py")]),
        ])
        assert batch.files_changed == [Path("a.py"), Path("z.py")]

    def test_combined_diff_ordered_by_path(self):
        batch = BatchResult([
            Result(success=True, message="", diffs={Path("z.py"): "diff z"}),
            Result(success=True, message="", diffs={Path("a.py"): "diff a", Path("e.py"): ""}),
        ])
        assert batch.diff == "diff a\ndiff z"


# =============================================================================
# Diff Tests
# =============================================================================

class TestDiff:
    """Tests for diff generation."""

    def test_identical(self):
        assert generate_diff("import a\n", "import a\n", Path("m.py")) == ""

    def test_unified_diff(self):
        diff = generate_diff("import a\nx = 1\n", "import b\nx = 1\n", Path("pkg/m.py"))
        assert diff.startswith("--- a/pkg/m.py\n+++ b/pkg/m.py\n")
        assert "-import a\n" in diff
        assert "+import b\n" in diff

    def test_missing_final_newline(self):
        diff = generate_diff("import a", "import b", Path("m.py"))
        assert diff.endswith("+import b\n")

    def test_combine_skips_empty(self):
        assert combine_diffs({Path("b.py"): "b", Path("a.py"): "", Path("c.py"): "c"}) == "b\nc"
