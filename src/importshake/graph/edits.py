"""Per-module import edits."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator

from importshake.bitset import Bitset


@dataclass
class Edit:
    """Imports to drop from and add to one module.

    Attributes
    ----------
    remove : Bitset
        Ids of modules whose imports should be removed.
    add : Bitset
        Ids of modules to import directly.
    """

    remove: Bitset = field(default_factory=Bitset)
    add: Bitset = field(default_factory=Bitset)

    def __bool__(self) -> bool:
        return bool(self.remove) or bool(self.add)


class EditSet:
    """Accumulates edits keyed by module id.

    Only one thread may write to an EditSet; the advisor merges per-module
    results into it after any parallel work has finished.
    """

    def __init__(self) -> None:
        self._edits: dict[int, Edit] = {}

    def _entry(self, module: int) -> Edit:
        return self._edits.setdefault(module, Edit())

    def remove(self, module: int, imports: Bitset) -> None:
        self._entry(module).remove |= imports

    def add(self, module: int, imports: Bitset) -> None:
        self._entry(module).add |= imports

    def get(self, module: int) -> Edit | None:
        return self._edits.get(module)

    def finalize(self, reducer: Callable[[Bitset], Bitset]) -> None:
        """Replace every add set with its reduction and drop empty edits."""
        for module in list(self._edits):
            edit = self._edits[module]
            edit.add = reducer(edit.add)
            if not edit:
                del self._edits[module]

    def __iter__(self) -> Iterator[tuple[int, Edit]]:
        for module in sorted(self._edits):
            yield module, self._edits[module]

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, module: object) -> bool:
        return module in self._edits

    def __bool__(self) -> bool:
        return bool(self._edits)
