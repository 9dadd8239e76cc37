"""
Shared pytest fixtures for the importshake test suite.

This module provides:
- A project factory writing Python packages into a temporary directory
- A graph factory building module registries from plain import lists
- A helper turning named needs into needs bitsets

Fixture Naming Convention:
- make_* : Fixtures that return factories
- sample_* : Fixtures that provide ready-made projects
"""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from importshake.bitset import Bitset
from importshake.graph.registry import ModuleRegistry
from importshake.imports.loader import ModuleRecord


# =============================================================================
# Project Fixtures
# =============================================================================

@pytest.fixture
def make_project(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """
    Factory writing files (relative path -> source) under tmp_path.

    Sources are dedented, so tests can indent them inline.
    """

    def write(files: dict[str, str]) -> Path:
        for rel_path, content in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content))
        return tmp_path

    return write


@pytest.fixture
def sample_project(make_project) -> Path:
    """
    A package where pkg.c only uses pkg.a but imports pkg.b and pkg.z.

    pkg.b imports and uses pkg.a, so pkg.c currently reaches pkg.a through
    pkg.b. pkg.z is unrelated.
    """
    return make_project({
        "pkg/__init__.py": "",
        "pkg/a.py": '''\
            def helper():
                return 1
        ''',
        "pkg/b.py": '''\
            import pkg.a


            def wrap():
                return pkg.a.helper()
        ''',
        "pkg/z.py": '''\
            VALUE = 2
        ''',
        "pkg/c.py": '''\
            import pkg.b
            import pkg.z


            def run():
                return pkg.a.helper()
        ''',
    })


# =============================================================================
# Graph Fixtures
# =============================================================================

@pytest.fixture
def make_graph() -> Callable[[dict[str, list[str]]], ModuleRegistry]:
    """
    Factory building a loaded ModuleRegistry from {module: [imports]}.

    Every module listed is loaded as a root, in dictionary order.
    """

    def build(modules: dict[str, list[str]]) -> ModuleRegistry:
        records = {
            name: ModuleRecord(name=name, imports=list(imports), symbols={name})
            for name, imports in modules.items()
        }

        def loader(name: str) -> ModuleRecord:
            try:
                return records[name]
            except KeyError:
                raise ModuleNotFoundError(name) from None

        registry = ModuleRegistry(loader)
        registry.load(modules)
        return registry

    return build


@pytest.fixture
def make_needs() -> Callable[[ModuleRegistry, dict[str, list[str]]], list[Bitset]]:
    """Factory turning {module: [needed modules]} into a needs list by id."""

    def build(registry: ModuleRegistry, needs: dict[str, list[str]]) -> list[Bitset]:
        result = [Bitset() for _ in range(len(registry))]
        for name, needed in needs.items():
            result[registry.id_of(name)] = Bitset.from_iterable(registry.id_of(n) for n in needed)
        return result

    return build
