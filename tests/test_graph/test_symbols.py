"""
Tests for importshake.graph.symbols module.
"""
from __future__ import annotations

import pytest

from importshake.graph.registry import ModuleRegistry
from importshake.graph.symbols import SymbolIndex
from importshake.imports.loader import ModuleRecord


def _registry(records: list[ModuleRecord]) -> ModuleRegistry:
    by_name = {record.name: record for record in records}
    registry = ModuleRegistry(by_name.__getitem__)
    registry.load(by_name)
    return registry


class TestSymbolIndex:
    """Tests for building and querying the index."""

    def test_build_folds_every_module(self):
        registry = _registry([
            ModuleRecord(name="pkg.models", symbols={"pkg.models.User", "pkg.models.Post"}),
            ModuleRecord(name="pkg.views", imports=["pkg.models"], symbols={"pkg.views.index"}),
        ])

        index = SymbolIndex.build(registry)

        assert index.owner_of("pkg.models.User") == registry.id_of("pkg.models")
        assert index.owner_of("pkg.views.index") == registry.id_of("pkg.views")
        assert index.owner_of("pkg.views.missing") is None

    def test_module_names_are_symbols(self):
        """A module owns its own name even if it declares nothing."""
        registry = _registry([ModuleRecord(name="pkg.empty")])
        index = SymbolIndex.build(registry)
        assert index.owner_of("pkg.empty") == 0
        assert "pkg.empty" in index
        assert len(index) == 1

    def test_first_owner_wins(self):
        index = SymbolIndex()
        index.add("pkg.thing", 0)
        index.add("pkg.thing", 3)
        assert index.owner_of("pkg.thing") == 0


class TestResolve:
    """Tests for longest-prefix resolution of dotted references."""

    def test_exact_symbol(self):
        index = SymbolIndex()
        index.add("pkg.models.User", 2)
        assert index.resolve("pkg.models.User") == 2

    def test_attribute_of_symbol(self):
        """Attributes of a declared symbol belong to the symbol's module."""
        index = SymbolIndex()
        index.add("pkg.models", 1)
        index.add("pkg.models.User", 1)
        assert index.resolve("pkg.models.User.objects.all") == 1

    def test_longest_prefix_wins(self):
        """A submodule beats its parent package."""
        index = SymbolIndex()
        index.add("pkg", 0)
        index.add("pkg.models", 1)
        assert index.resolve("pkg.models.User") == 1
        assert index.resolve("pkg.other") == 0

    def test_unknown_reference(self):
        index = SymbolIndex()
        index.add("pkg.models", 1)
        assert index.resolve("os.path.join") is None


class TestReexports:
    """Tests for names a module binds by importing them."""

    @pytest.fixture
    def index(self) -> SymbolIndex:
        registry = _registry([
            ModuleRecord(name="pkg.models", symbols={"pkg.models", "pkg.models.User"},
                         aliases={"User": "pkg.models.User"}),
            ModuleRecord(name="pkg", imports=["pkg.models"], symbols={"pkg", "pkg.VERSION"},
                         aliases={"User": "pkg.models.User", "VERSION": "pkg.VERSION"}),
        ])
        return SymbolIndex.build(registry)

    def test_imported_binding_is_reexport(self, index):
        assert index.knows("pkg.User")
        assert "pkg.User" not in index
        assert index.reexport_of("pkg.User.objects") == ("pkg.User", "pkg.models.User.objects")

    def test_own_definitions_are_not_reexports(self, index):
        assert index.reexport_of("pkg.VERSION") is None
        assert index.reexport_of("pkg.models.User") is None

    def test_reexport_resolves_to_exporter(self, index):
        """The binding itself belongs to the module that re-exports it."""
        assert index.resolve("pkg.User") == index.owner_of("pkg")
