"""Rewrite the import header of a module according to an edit.

Removed modules lose every top-level import statement that loads them; added
modules get a plain ``import <module>`` line right before the first statement
that is neither the module docstring nor an import. Everything else in the
file is left untouched.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

import libcst as cst

from importshake.core.diff import generate_diff
from importshake.core.results import BatchResult, ErrorResult, Result
from importshake.imports.analyzer import get_imports, parse_import

if TYPE_CHECKING:
    from importshake.graph.edits import EditSet
    from importshake.graph.registry import ModuleRegistry
    from importshake.imports.loader import ModuleRecord, SourceLoader

logger = logging.getLogger(__name__)


class HeaderPatcher:
    """Apply import edits to module sources.

    Parameters
    ----------
    loader : SourceLoader
        Used to resolve which module each import statement loads.
    dry_run : bool
        If True, compute changes and diffs without writing files.
    """

    def __init__(self, loader: SourceLoader, dry_run: bool = True) -> None:
        self._loader = loader
        self.dry_run = dry_run

    def patch_source(
        self,
        record: ModuleRecord,
        source: str,
        remove: Iterable[str],
        add: Iterable[str],
    ) -> tuple[str, list[str]]:
        """Return the edited source and the nested imports left in place.

        Raises
        ------
        libcst.ParserSyntaxError
            If the source cannot be parsed.
        """
        remove = set(remove)
        tree = cst.parse_module(source)

        left_in_place = [
            info.import_statement
            for info in get_imports(tree)
            if not info.is_header
            and any(r.target in remove for r in self._loader.resolve_import(info, record.package))
        ]

        new_imports = [cst.parse_statement(f"import {name}\n") for name in sorted(set(add))]
        body: list[cst.BaseStatement] = []
        pending_lines: list[cst.EmptyLine] = []
        inserted = not new_imports

        for index, statement in enumerate(tree.body):
            if _has_import(statement):
                stripped = self._strip_line(statement, record, remove)
                if stripped is None:
                    # Comments above a removed import stay with what follows.
                    pending_lines.extend(statement.leading_lines)
                    continue
                statement = stripped

            if (
                not inserted
                and not _is_import_line(statement)
                and not (index == 0 and _is_docstring(statement))
            ):
                new_imports[0] = new_imports[0].with_changes(leading_lines=pending_lines)
                pending_lines = []
                body.extend(new_imports)
                inserted = True

            if pending_lines:
                statement = statement.with_changes(
                    leading_lines=[*pending_lines, *statement.leading_lines]
                )
                pending_lines = []
            body.append(statement)

        if not inserted:
            new_imports[0] = new_imports[0].with_changes(leading_lines=pending_lines)
            body.extend(new_imports)
            pending_lines = []

        new_tree = tree.with_changes(body=body, footer=[*pending_lines, *tree.footer])
        return new_tree.code, left_in_place

    def _strip_line(
        self,
        statement: cst.SimpleStatementLine,
        record: ModuleRecord,
        remove: set[str],
    ) -> cst.SimpleStatementLine | None:
        kept: list[cst.BaseSmallStatement] = []
        for small in statement.body:
            if isinstance(small, (cst.Import, cst.ImportFrom)):
                small = self._strip_import(small, record, remove)
                if small is None:
                    continue
            kept.append(small)

        if not kept:
            return None
        if len(kept) == len(statement.body) and all(a is b for a, b in zip(kept, statement.body)):
            return statement
        kept[-1] = kept[-1].with_changes(semicolon=cst.MaybeSentinel.DEFAULT)
        return statement.with_changes(body=kept)

    def _strip_import(
        self,
        node: cst.Import | cst.ImportFrom,
        record: ModuleRecord,
        remove: set[str],
    ) -> cst.Import | cst.ImportFrom | None:
        """Drop the names of ``node`` that load a removed module."""
        resolved = self._loader.resolve_import(parse_import(node), record.package)
        if not resolved:
            return node

        if isinstance(node, cst.ImportFrom) and isinstance(node.names, cst.ImportStar):
            return None if resolved[0].target in remove else node

        aliases: Sequence[cst.ImportAlias] = node.names  # type: ignore[assignment]
        kept = [alias for alias, r in zip(aliases, resolved) if r.target not in remove]
        if len(kept) == len(aliases):
            return node
        if not kept:
            return None
        kept[-1] = kept[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
        return node.with_changes(names=kept)

    def apply(self, record: ModuleRecord, remove: Iterable[str], add: Iterable[str]) -> Result:
        """Patch one module's source file."""
        path = record.path
        if path is None or not path.exists():
            return ErrorResult(
                message=f"File not found for {record.name}",
                operation="patch imports",
                target_repr=record.name,
            )

        content = path.read_text()
        try:
            new_content, left_in_place = self.patch_source(record, content, remove, add)
        except cst.ParserSyntaxError as e:
            logger.warning("Skipping %s: cannot parse import header: %s", path, e.message)
            return ErrorResult(
                message=f"Failed to parse {path}: {e.message}",
                exception=e,
                operation="patch imports",
                target_repr=record.name,
            )

        note = f" (left in place: {'; '.join(left_in_place)})" if left_in_place else ""
        if new_content == content:
            return Result(success=True, message=f"No changes to {path}{note}")

        diff = generate_diff(content, new_content, path)
        if self.dry_run:
            return Result(
                success=True,
                message=f"[DRY RUN] Would update imports in {path}{note}",
                files_changed=[path],
                diff=diff,
                diffs={path: diff},
            )

        path.write_text(new_content)
        logger.info("Updated imports in %s", path)
        return Result(
            success=True,
            message=f"Updated imports in {path}{note}",
            files_changed=[path],
            diff=diff,
            diffs={path: diff},
        )

    def apply_edits(self, registry: ModuleRegistry, edits: EditSet) -> BatchResult:
        """Patch every module with an edit."""
        batch = BatchResult()
        for module, edit in edits:
            batch.append(
                self.apply(
                    registry.records[module],
                    registry.names(edit.remove),
                    registry.names(edit.add),
                )
            )
        return batch


def _has_import(statement: cst.BaseStatement) -> bool:
    return isinstance(statement, cst.SimpleStatementLine) and any(
        isinstance(small, (cst.Import, cst.ImportFrom)) for small in statement.body
    )


def _is_import_line(statement: cst.BaseStatement) -> bool:
    return isinstance(statement, cst.SimpleStatementLine) and all(
        isinstance(small, (cst.Import, cst.ImportFrom)) for small in statement.body
    )


def _is_docstring(statement: cst.BaseStatement) -> bool:
    return (
        isinstance(statement, cst.SimpleStatementLine)
        and len(statement.body) == 1
        and isinstance(statement.body[0], cst.Expr)
        and isinstance(statement.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
    )
