"""
importshake - find unused and missing imports across a Python import graph.

importshake loads the module-level import graph of a package, works out which
modules each module actually uses, and proposes the smallest set of import
edits that keeps every use covered: imports to remove, imports to add in their
place, and repairs for modules that relied on a removed import indirectly.

Example
-------
>>> from importshake import Shake
>>>
>>> shake = Shake("path/to/project")
>>> report = shake.analyze(["mypackage"])
>>> print(report.format())
>>>
>>> # Rewrite the import headers
>>> Shake("path/to/project", dry_run=False).apply(report)
"""
from __future__ import annotations

__version__ = "0.1.0"

from importshake.bitset import Bitset
from importshake.config import OverrideRules, ShakeConfig
from importshake.core.results import BatchResult, ErrorResult, Result
from importshake.core.shake import Shake, ShakeReport
from importshake.exceptions import ImportCycleError, LoadError, ShakeError
from importshake.graph import (
    Edit,
    EditSet,
    ImportAdvisor,
    ModuleAdvice,
    ModuleRegistry,
    SymbolIndex,
    UsageAnalyzer,
)
from importshake.imports import HeaderPatcher, ModuleRecord, SourceLoader

__all__ = [
    "__version__",
    "Bitset",
    "BatchResult",
    "Edit",
    "EditSet",
    "ErrorResult",
    "HeaderPatcher",
    "ImportAdvisor",
    "ImportCycleError",
    "LoadError",
    "ModuleAdvice",
    "ModuleRecord",
    "ModuleRegistry",
    "OverrideRules",
    "Result",
    "Shake",
    "ShakeConfig",
    "ShakeError",
    "ShakeReport",
    "SourceLoader",
    "SymbolIndex",
    "UsageAnalyzer",
]
