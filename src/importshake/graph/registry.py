"""Module registry: dense load-order ids and dependency bitsets."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable

from importshake.bitset import Bitset
from importshake.exceptions import ImportCycleError, LoadError

if TYPE_CHECKING:
    from importshake.imports.loader import ModuleRecord

logger = logging.getLogger(__name__)

Loader = Callable[[str], "ModuleRecord"]


class ModuleRegistry:
    """Assign every reachable module a dense id in dependency order.

    A module only receives its id after all of its imports have been
    registered, so for every module ``i`` and every ``j`` in
    ``trans_deps[i]`` we have ``j <= i``. The import graph must be acyclic;
    a cycle raises ``ImportCycleError`` instead of looping.

    Parameters
    ----------
    loader : Callable[[str], ModuleRecord]
        Returns the record for a module name, raising ``ModuleNotFoundError``
        when the module does not exist.

    Attributes
    ----------
    records : list[ModuleRecord]
        Loaded records, indexed by module id.
    imports : list[list[int]]
        Direct import ids of each module, in source order, without duplicates.
    deps : list[Bitset]
        Direct import ids of each module as a bitset.
    trans_deps : list[Bitset]
        Reflexive transitive closure of ``deps``.
    """

    def __init__(self, loader: Loader) -> None:
        self._loader = loader
        self._ids: dict[str, int] = {}
        self.records: list[ModuleRecord] = []
        self.imports: list[list[int]] = []
        self.deps: list[Bitset] = []
        self.trans_deps: list[Bitset] = []

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def id_of(self, name: str) -> int | None:
        return self._ids.get(name)

    def name_of(self, module: int) -> str:
        return self.records[module].name

    def names(self, modules: Iterable[int]) -> list[str]:
        """Module names for the given ids, in id order."""
        return [self.records[i].name for i in sorted(modules)]

    def load(self, names: Iterable[str]) -> tuple[Bitset, Bitset]:
        """Load the given root modules and everything they import.

        Returns
        -------
        tuple[Bitset, Bitset]
            The ids of the roots, and the union of their transitive closures.

        Raises
        ------
        LoadError
            If any reachable module cannot be loaded.
        """
        direct = Bitset()
        transitive = Bitset()
        for name in names:
            module = self._load(name)
            direct.add(module)
            transitive |= self.trans_deps[module]
        logger.info("Loaded %d modules", len(self.records))
        return direct, transitive

    def _load(self, root: str) -> int:
        if root in self._ids:
            return self._ids[root]

        # Each frame is (record, index of the next import to visit).
        stack: list[tuple[ModuleRecord, int]] = [(self._fetch(root, None), 0)]
        active = {root}
        while stack:
            record, position = stack[-1]
            if position < len(record.imports):
                stack[-1] = (record, position + 1)
                dep = record.imports[position]
                if dep in self._ids:
                    continue
                if dep in active:
                    path = [frame[0].name for frame in stack]
                    raise ImportCycleError(path[path.index(dep):] + [dep])
                active.add(dep)
                stack.append((self._fetch(dep, record.name), 0))
                continue

            stack.pop()
            active.discard(record.name)
            self._register(record)

        return self._ids[root]

    def _fetch(self, name: str, importer: str | None) -> ModuleRecord:
        try:
            return self._loader(name)
        except ModuleNotFoundError as e:
            raise LoadError(name, "module not found", importer=importer) from e

    def _register(self, record: ModuleRecord) -> None:
        module = len(self.records)
        direct = [self._ids[name] for name in dict.fromkeys(record.imports)]

        deps = Bitset.from_iterable(direct)
        trans = Bitset.of(module)
        for dep in direct:
            trans |= self.trans_deps[dep]

        self._ids[record.name] = module
        self.records.append(record)
        self.imports.append(direct)
        self.deps.append(deps)
        self.trans_deps.append(trans)
        logger.debug("Registered %s as %d (%d direct imports)", record.name, module, len(direct))
