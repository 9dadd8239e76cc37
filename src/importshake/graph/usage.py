"""Compute which modules each module actually uses.

The needs of a module are the modules owning a symbol referenced anywhere in
its declarations. References are collected with a LibCST visitor and resolved
through the module's own bindings and the global ``SymbolIndex``.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import libcst as cst

from importshake.bitset import Bitset

if TYPE_CHECKING:
    from importshake.graph.registry import ModuleRegistry
    from importshake.graph.symbols import SymbolIndex
    from importshake.imports.loader import ModuleRecord

logger = logging.getLogger(__name__)


class ReferenceCollector(cst.CSTVisitor):
    """Collect referenced names and dotted attribute chains.

    ``pkg.models.User.objects`` is recorded as one dotted reference rather than
    as its root name, so it can be resolved against qualified symbols.
    Import statements are skipped; they are edges, not uses.
    """

    def __init__(self) -> None:
        self.references: set[str] = set()

    def visit_Import(self, node: cst.Import) -> bool:
        return False

    def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
        return False

    def visit_Name(self, node: cst.Name) -> bool:
        self.references.add(node.value)
        return False

    def visit_Attribute(self, node: cst.Attribute) -> bool:
        dotted = _dotted_name(node)
        if dotted is None:
            # factory().attr: only the inner expression can hold references
            node.value.visit(self)
            return False
        self.references.add(dotted)
        return False


def _dotted_name(node: cst.BaseExpression) -> str | None:
    """Full dotted name of a pure Name/Attribute chain, else None."""
    if isinstance(node, cst.Name):
        return node.value
    if isinstance(node, cst.Attribute):
        base = _dotted_name(node.value)
        if base is None:
            return None
        return f"{base}.{node.attr.value}"
    return None


class UsageAnalyzer:
    """Compute the needs bitset of each module.

    ``calc_needs`` and ``reexport_uses`` are pure functions of a module
    record and the symbol index, so modules can be analyzed concurrently.

    Parameters
    ----------
    index : SymbolIndex
        The index of declared symbols for the loaded graph.
    """

    def __init__(self, index: SymbolIndex) -> None:
        self._index = index

    def references(self, record: ModuleRecord) -> set[str]:
        """All dotted references in the declarations of a module.

        Names listed in ``__all__`` count as references: they are the
        module's public interface even when nothing in the module uses them.
        """
        collector = ReferenceCollector()
        for declaration in record.declarations:
            for node in declaration.signature:
                node.visit(collector)
            if declaration.body is not None:
                declaration.body.visit(collector)
        return collector.references | set(record.exports)

    def qualify(self, record: ModuleRecord, reference: str) -> str | None:
        """Qualified name of a reference made inside ``record``, if bound."""
        head, _, rest = reference.partition(".")
        target = record.aliases.get(head)
        if target is not None:
            return f"{target}.{rest}" if rest else target
        for source in record.star_imports:
            if self._index.knows(f"{source}.{head}"):
                return f"{source}.{reference}"
        return None

    def resolve(self, record: ModuleRecord, reference: str) -> int | None:
        """Owning module of a reference made inside ``record``, if any."""
        qualified = self.qualify(record, reference)
        if qualified is None:
            return None
        return self._index.resolve(qualified)

    def calc_needs(self, record: ModuleRecord) -> Bitset:
        """Modules owning a symbol referenced by ``record``, excluding itself."""
        needs = Bitset()
        for reference in self.references(record):
            owner = self.resolve(record, reference)
            if owner is not None:
                needs.add(owner)
        own = self._index.owner_of(record.name)
        if own is not None:
            needs.discard(own)
        return needs

    def reexport_uses(self, record: ModuleRecord) -> set[tuple[int, int]]:
        """(exporter, owner) pairs for re-exported names ``record`` references.

        Referencing ``pkg.User`` where ``pkg`` imported ``User`` from
        ``pkg.models`` means ``pkg`` needs ``pkg.models``. Chains of
        re-exports are followed to the declaring module.
        """
        uses: set[tuple[int, int]] = set()
        for reference in self.references(record):
            qualified = self.qualify(record, reference)
            seen: set[str] = set()
            while qualified is not None and qualified not in seen:
                seen.add(qualified)
                hit = self._index.reexport_of(qualified)
                if hit is None:
                    break
                binding, qualified = hit
                exporter = self._index.resolve(binding)
                owner = self._index.resolve(qualified)
                if exporter is not None and owner is not None and exporter != owner:
                    uses.add((exporter, owner))
        return uses

    def calc_all(self, registry: ModuleRegistry, jobs: int | None = None) -> list[Bitset]:
        """Needs of every registered module, indexed by module id.

        Re-export uses found in one module are added to the exporter's needs
        after the parallel pass, on the calling thread.
        """
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            needs = list(pool.map(self.calc_needs, registry.records))
            uses = list(pool.map(self.reexport_uses, registry.records))
        for found in uses:
            for exporter, owner in found:
                needs[exporter].add(owner)
        logger.info("Computed needs for %d modules", len(needs))
        return needs
