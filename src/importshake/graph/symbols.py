"""Map qualified symbol names to the module that declares them."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from importshake.graph.registry import ModuleRegistry

logger = logging.getLogger(__name__)


class SymbolIndex:
    """Index of every declared global symbol by owning module id.

    Symbols are fully qualified dotted names such as ``pkg.models.User``.
    Each module also declares its own name, so a reference to the module
    object itself resolves to that module.

    Names a module binds by importing them are re-exports: ``pkg.User``
    after ``from pkg.models import User`` in ``pkg/__init__.py`` is owned by
    ``pkg`` but stands for ``pkg.models.User``.
    """

    def __init__(self) -> None:
        self._owners: dict[str, int] = {}
        self._reexports: dict[str, str] = {}

    @classmethod
    def build(cls, registry: ModuleRegistry) -> SymbolIndex:
        """Fold the declared symbols of every registered module into one index."""
        index = cls()
        for module, record in enumerate(registry.records):
            index.add(record.name, module)
            for symbol in sorted(record.symbols):
                index.add(symbol, module)
        for record in registry.records:
            for bound, qualified in record.aliases.items():
                symbol = f"{record.name}.{bound}"
                if qualified != symbol and symbol not in index:
                    index.add_reexport(symbol, qualified)
        return index

    def add(self, symbol: str, owner: int) -> None:
        existing = self._owners.setdefault(symbol, owner)
        if existing != owner:
            logger.debug("Symbol %s already owned by module %d; ignoring %d", symbol, existing, owner)

    def add_reexport(self, symbol: str, target: str) -> None:
        self._reexports.setdefault(symbol, target)

    def owner_of(self, symbol: str) -> int | None:
        return self._owners.get(symbol)

    def knows(self, symbol: str) -> bool:
        """Whether ``symbol`` is declared or re-exported by some module."""
        return symbol in self._owners or symbol in self._reexports

    def reexport_of(self, dotted: str) -> tuple[str, str] | None:
        """The re-exported binding a dotted reference goes through, if any.

        Returns the binding symbol and the reference rewritten to the
        binding's target: ``pkg.User.objects`` gives
        ``("pkg.User", "pkg.models.User.objects")``.
        """
        parts = dotted.split(".")
        for end in range(len(parts), 1, -1):
            prefix = ".".join(parts[:end])
            if prefix in self._owners:
                return None
            target = self._reexports.get(prefix)
            if target is not None:
                return prefix, ".".join([target, *parts[end:]])
        return None

    def resolve(self, dotted: str) -> int | None:
        """Owner of the longest registered prefix of a dotted reference.

        ``pkg.models.User.objects`` resolves through ``pkg.models.User``;
        ``pkg.models`` resolves to the module itself.
        """
        parts = dotted.split(".")
        for end in range(len(parts), 0, -1):
            owner = self._owners.get(".".join(parts[:end]))
            if owner is not None:
                return owner
        return None

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._owners
