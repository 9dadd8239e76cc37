"""The module graph and the import analysis that runs over it."""
from __future__ import annotations

from importshake.graph.advisor import ImportAdvisor, ModuleAdvice
from importshake.graph.edits import Edit, EditSet
from importshake.graph.registry import ModuleRegistry
from importshake.graph.symbols import SymbolIndex
from importshake.graph.usage import UsageAnalyzer

__all__ = [
    "Edit",
    "EditSet",
    "ImportAdvisor",
    "ModuleAdvice",
    "ModuleRegistry",
    "SymbolIndex",
    "UsageAnalyzer",
]
