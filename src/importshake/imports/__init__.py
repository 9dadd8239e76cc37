"""Reading and rewriting Python import statements.

Provides:
- Import and definition extraction (LibCST)
- Module loading from source files
- Import header patching
"""
from __future__ import annotations

from importshake.imports.analyzer import ImportInfo
from importshake.imports.loader import Declaration, ModuleRecord, SourceLoader
from importshake.imports.patcher import HeaderPatcher

__all__ = [
    "Declaration",
    "HeaderPatcher",
    "ImportInfo",
    "ModuleRecord",
    "SourceLoader",
]
