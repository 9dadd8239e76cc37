"""Import advice: minimal removals, re-covering additions and downstream repair.

For each module the advisor

A. reduces the module's needs to a minimal set of modules whose transitive
   closures generate all of them, and computes the full closure of the needs;
B. marks every current import outside that closure as unused;
C. when anything is removed, adds the fewest direct imports needed to cover
   the needs again;
D. finds modules elsewhere in the graph that reached a removed module only
   through the edited module, and adds the removed module to the most
   fundamental of them.

Module ids are assigned in dependency order, so iterating a bitset in
ascending order always visits a module after everything it depends on.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from importshake.bitset import Bitset
from importshake.config import OverrideRules
from importshake.graph.edits import EditSet

if TYPE_CHECKING:
    from importshake.graph.registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class ModuleAdvice:
    """Advice produced by visiting one module.

    Attributes
    ----------
    module : int
        The visited module.
    remove : Bitset
        Direct imports that nothing in the module uses.
    add : Bitset
        Imports to add so the module's needs stay covered.
    fixes : dict[int, Bitset]
        Downstream repairs: removed module id to the modules that must now
        import it directly.
    """

    module: int
    remove: Bitset
    add: Bitset = field(default_factory=Bitset)
    fixes: dict[int, Bitset] = field(default_factory=dict)


class ImportAdvisor:
    """Compute import edits over a loaded module graph.

    Parameters
    ----------
    registry : ModuleRegistry
        The loaded graph.
    needs : list[Bitset]
        Needs of every module, indexed by module id.
    rules : OverrideRules | None
        Usage exceptions. None means no exceptions.
    downstream : bool
        Whether to repair modules whose indirect coverage a removal breaks.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        needs: list[Bitset],
        rules: OverrideRules | None = None,
        downstream: bool = True,
    ) -> None:
        self._registry = registry
        self._needs = needs
        self._rules = rules or OverrideRules()
        self._downstream = downstream

    # -------------------------------------------------------------------------
    # Step A
    # -------------------------------------------------------------------------

    def reduce_needs(self, needs: Bitset, ignored: Bitset) -> tuple[Bitset, Bitset]:
        """Transitively reduce ``needs`` and compute its closure.

        Returns
        -------
        tuple[Bitset, Bitset]
            The minimal antichain of needed modules, and the closure of the
            needs together with the ignored modules.
        """
        trans_deps = self._registry.trans_deps
        deps = needs.copy()
        closure = needs | ignored
        for k in needs:
            # trans_deps[k] only holds ids <= k, so k itself is never dropped
            # by a later iteration and its closure is already final here.
            deps -= trans_deps[k] - Bitset.of(k)
            closure |= trans_deps[k]
        return deps, closure

    def reduce(self, modules: Bitset) -> Bitset:
        """Drop every module already implied by another module in the set."""
        deps, _ = self.reduce_needs(modules, Bitset())
        return deps

    # -------------------------------------------------------------------------
    # Steps B-D
    # -------------------------------------------------------------------------

    def visit_module(self, module: int) -> ModuleAdvice | None:
        """Advise on one module, or return None if its imports are all used."""
        if module in self._rules.ignore_all:
            return None

        trans_deps = self._registry.trans_deps
        deps, closure = self.reduce_needs(self._needs[module], self._rules.ignored_for(module))

        remove = Bitset()
        covered = Bitset()
        for imp in self._registry.imports[module]:
            if imp in closure:
                covered |= trans_deps[imp]
            else:
                remove.add(imp)

        if not remove:
            return None

        add = Bitset()
        for k in deps:
            if k not in covered:
                add.add(k)
                covered |= trans_deps[k]

        advice = ModuleAdvice(module, remove, add)
        if self._downstream:
            advice.fixes = self.downstream_fixes(module, remove)
        logger.debug(
            "%s: remove %s, add %s",
            self._registry.name_of(module),
            self._registry.names(remove),
            self._registry.names(add),
        )
        return advice

    def downstream_fixes(self, module: int, removed: Bitset) -> dict[int, Bitset]:
        """Modules that lose their path to a removed import through ``module``.

        For every removed ``r``, a module ``j`` is broken when it needs ``r``
        and depends on ``module``. Only the minimal broken modules are kept:
        fixing those restores coverage for everything that depends on them.
        A minimal module that already imports ``r`` directly needs no fix, and
        it still shields its own dependents.
        This scans every module once per removed edge.
        """
        trans_deps = self._registry.trans_deps
        deps = self._registry.deps
        fixes: dict[int, Bitset] = {}
        for r in removed:
            to_fix = Bitset()
            # Dependents of `module` always have larger ids.
            for j in range(module + 1, len(self._needs)):
                if r in self._needs[j] and module in trans_deps[j]:
                    to_fix.add(j)

            minimal = Bitset.from_iterable(
                j for j in to_fix if to_fix & trans_deps[j] == Bitset.of(j)
            )
            minimal = Bitset.from_iterable(j for j in minimal if r not in deps[j])
            if minimal:
                fixes[r] = minimal
        return fixes

    # -------------------------------------------------------------------------
    # Whole-graph passes
    # -------------------------------------------------------------------------

    def advise(self, modules: Iterable[int] | None = None, jobs: int | None = None) -> list[ModuleAdvice]:
        """Visit modules (all of them by default), returning advice in id order."""
        targets = sorted(modules) if modules is not None else list(range(len(self._registry)))
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            visits = list(pool.map(self.visit_module, targets))
        return [advice for advice in visits if advice is not None]

    def collect(self, advice: Iterable[ModuleAdvice], scope: Bitset | None = None) -> EditSet:
        """Merge advice into an EditSet and reduce every add set.

        Downstream fixes aimed at modules outside ``scope`` are dropped.
        """
        edits = EditSet()
        for item in advice:
            edits.remove(item.module, item.remove)
            edits.add(item.module, item.add)
            for removed, targets in item.fixes.items():
                for target in targets:
                    if scope is not None and target not in scope:
                        logger.warning(
                            "Not fixing %s in %s: outside the analyzed package",
                            self._registry.name_of(removed),
                            self._registry.name_of(target),
                        )
                        continue
                    edits.add(target, Bitset.of(removed))
        edits.finalize(self.reduce)
        logger.info("Found edits for %d modules", len(edits))
        return edits
