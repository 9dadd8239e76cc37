"""Unified diffs for import edits."""
from __future__ import annotations

import difflib
from pathlib import Path


def generate_diff(original: str, modified: str, path: Path, context_lines: int = 3) -> str:
    """Unified diff between two versions of a file, or "" if they are equal.

    Examples
    --------
    >>> print(generate_diff("import a\\n", "import b\\n", Path("m.py")))
    --- a/m.py
    +++ b/m.py
    @@ -1 +1 @@
    -import a
    +import b
    """
    if original == modified:
        return ""

    original_lines = original.splitlines(keepends=True)
    modified_lines = modified.splitlines(keepends=True)

    # difflib needs terminated lines to keep hunks readable
    if original_lines and not original_lines[-1].endswith("\n"):
        original_lines[-1] += "\n"
    if modified_lines and not modified_lines[-1].endswith("\n"):
        modified_lines[-1] += "\n"

    return "".join(
        difflib.unified_diff(
            original_lines,
            modified_lines,
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
            n=context_lines,
        )
    )


def combine_diffs(diffs: dict[Path, str]) -> str:
    """Join per-file diffs, ordered by path, skipping empty ones."""
    non_empty = sorted(((p, d) for p, d in diffs.items() if d), key=lambda item: str(item[0]))
    return "\n".join(d for _, d in non_empty)
