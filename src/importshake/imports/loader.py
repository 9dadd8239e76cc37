"""Locate and load Python modules into ``ModuleRecord`` objects.

The loader is the only part of importshake that reads source files during the
analysis. It resolves dotted module names against a list of search paths,
parses sources with LibCST and reduces each module to what the graph needs:
its local imports, its declared symbols, its declarations and the names its
imports bind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import libcst as cst

from importshake.exceptions import LoadError
from importshake.imports.analyzer import (
    ImportInfo,
    get_defined_names,
    get_exported_names,
    get_imports,
)

logger = logging.getLogger(__name__)


@dataclass
class Declaration:
    """One top-level declaration of a module.

    Attributes
    ----------
    name : str
        The declared name, or "" for anonymous statements.
    signature : tuple[cst.CSTNode, ...]
        The declaration's type information: decorators, parameters, return
        and variable annotations, base classes.
    body : cst.CSTNode | None
        The defining body or assigned value, if any.
    """

    name: str
    signature: tuple[cst.CSTNode, ...] = ()
    body: cst.CSTNode | None = None


@dataclass
class ModuleRecord:
    """A loaded module.

    Attributes
    ----------
    name : str
        Dotted module name.
    imports : list[str]
        Local modules imported at module level, in source order.
    symbols : set[str]
        Qualified names the module declares, including its own name.
    declarations : list[Declaration]
        Top-level declarations.
    aliases : dict[str, str]
        Local name to qualified name for every name bound by an import or a
        top-level definition.
    star_imports : list[str]
        Modules imported with 'from x import *'.
    exports : list[str]
        Names listed in the module's ``__all__``.
    path : Path | None
        Source file, if loaded from disk.
    """

    name: str
    imports: list[str] = field(default_factory=list)
    symbols: set[str] = field(default_factory=set)
    declarations: list[Declaration] = field(default_factory=list)
    aliases: dict[str, str] = field(default_factory=dict)
    star_imports: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    path: Path | None = None

    @property
    def is_package(self) -> bool:
        return self.path is not None and self.path.name == "__init__.py"

    @property
    def package(self) -> str:
        """The package that relative imports in this module are resolved against."""
        if self.is_package:
            return self.name
        return self.name.rpartition(".")[0]


@dataclass
class ResolvedImport:
    """One name imported by an import statement.

    Attributes
    ----------
    name : str
        The imported name as written ('a.b' in 'import a.b', 'b' in
        'from a import b').
    bound : str
        The local name the import binds.
    qualified : str
        The qualified name the binding refers to.
    target : str
        The module the import loads.
    """

    name: str
    bound: str
    qualified: str
    target: str


class SourceLoader:
    """Load modules from Python source files.

    Parameters
    ----------
    search_paths : Iterable[Path]
        Directories that module names are resolved against, in order.

    Examples
    --------
    >>> loader = SourceLoader([Path("src")])
    >>> loader.expand("mypackage")
    ['mypackage', 'mypackage.core', 'mypackage.utils']
    >>> record = loader.load("mypackage.core")
    >>> record.imports
    ['mypackage.utils']
    """

    def __init__(self, search_paths: Iterable[Path]) -> None:
        self.search_paths = [Path(p) for p in search_paths]
        self._located: dict[str, Path | None] = {}

    def __call__(self, name: str) -> ModuleRecord:
        return self.load(name)

    # -------------------------------------------------------------------------
    # Locating modules
    # -------------------------------------------------------------------------

    def locate(self, name: str) -> Path | None:
        """Source file of a module: 'a/b.py' or 'a/b/__init__.py'."""
        if name not in self._located:
            self._located[name] = self._find(name)
        return self._located[name]

    def _find(self, name: str) -> Path | None:
        parts = name.split(".")
        if not all(part.isidentifier() for part in parts):
            return None
        for base in self.search_paths:
            module_file = base.joinpath(*parts[:-1], parts[-1] + ".py")
            if module_file.is_file():
                return module_file
            init_file = base.joinpath(*parts, "__init__.py")
            if init_file.is_file():
                return init_file
        return None

    def _package_dirs(self, name: str) -> list[Path]:
        parts = name.split(".")
        return [base.joinpath(*parts) for base in self.search_paths if base.joinpath(*parts).is_dir()]

    def is_module(self, name: str) -> bool:
        return self.locate(name) is not None

    def is_local(self, name: str) -> bool:
        """Whether the module's top-level package lives on the search paths."""
        top = name.split(".")[0]
        return self.is_module(top) or bool(self._package_dirs(top))

    def expand(self, name: str) -> list[str]:
        """A module name, or every module beneath a package, sorted.

        Raises
        ------
        ModuleNotFoundError
            If nothing on the search paths matches ``name``.
        """
        path = self.locate(name)
        if path is not None and path.name != "__init__.py":
            return [name]

        package_dirs = [path.parent] if path is not None else self._package_dirs(name)
        if not package_dirs:
            raise ModuleNotFoundError(f"No module named '{name}'", name=name)

        modules = {name} if path is not None else set()
        for package_dir in package_dirs:
            for file in package_dir.rglob("*.py"):
                parts = list(file.relative_to(package_dir).with_suffix("").parts)
                if parts[-1] == "__init__":
                    parts = parts[:-1]
                if parts and all(part.isidentifier() for part in parts):
                    modules.add(".".join([name, *parts]))
        return sorted(modules)

    # -------------------------------------------------------------------------
    # Resolving imports
    # -------------------------------------------------------------------------

    def absolute_module(self, info: ImportInfo, package: str) -> str | None:
        """Absolute name of the module a from-import imports from."""
        if not info.is_relative:
            return info.module

        parts = package.split(".") if package else []
        up = info.relative_level - 1
        if up > len(parts):
            return None
        base = parts[: len(parts) - up]
        if info.module:
            base.extend(info.module.split("."))
        return ".".join(base) or None

    def resolve_import(self, info: ImportInfo, package: str) -> list[ResolvedImport]:
        """Resolve every name of an import statement.

        'from pkg import name' targets the module 'pkg.name' when one exists,
        else 'pkg'. Star imports resolve to a single entry bound to '*'.
        """
        resolved: list[ResolvedImport] = []
        if not info.is_from_import:
            for name in info.names:
                bound = info.bound_name(name)
                qualified = name if name in info.aliases.values() else bound
                resolved.append(ResolvedImport(name, bound, qualified, name))
            return resolved

        base = self.absolute_module(info, package)
        if base is None:
            return resolved
        for name in info.names:
            if name == "*":
                resolved.append(ResolvedImport(name, "*", base, base))
                continue
            qualified = f"{base}.{name}"
            target = qualified if self.is_module(qualified) else base
            resolved.append(ResolvedImport(name, info.bound_name(name), qualified, target))
        return resolved

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def parse(self, name: str) -> tuple[Path, cst.Module]:
        """Locate and parse a module.

        Raises
        ------
        ModuleNotFoundError
            If the module cannot be located.
        LoadError
            If the source cannot be read or parsed.
        """
        path = self.locate(name)
        if path is None:
            raise ModuleNotFoundError(f"No module named '{name}'", name=name)
        try:
            return path, cst.parse_module(path.read_text())
        except cst.ParserSyntaxError as e:
            raise LoadError(name, f"syntax error in {path}: {e.message}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(name, f"cannot read {path}: {e}") from e

    def load(self, name: str) -> ModuleRecord:
        """Load a module into a ``ModuleRecord``."""
        path, tree = self.parse(name)
        record = ModuleRecord(name=name, path=path)

        for info in get_imports(tree):
            for imported in self.resolve_import(info, record.package):
                if self.is_local(imported.target) and imported.target != name:
                    record.imports.append(imported.target)
                if imported.bound == "*":
                    record.star_imports.append(imported.target)
                else:
                    record.aliases[imported.bound] = imported.qualified

        record.symbols.add(name)
        for defined in get_defined_names(tree):
            record.symbols.add(f"{name}.{defined}")
            record.aliases[defined] = f"{name}.{defined}"

        record.exports = get_exported_names(tree)
        record.declarations = _declarations(tree)
        logger.debug("Loaded %s from %s (%d imports)", name, path, len(record.imports))
        return record


def _declarations(tree: cst.Module) -> list[Declaration]:
    """Split a module body into declarations, leaving out import statements."""
    declarations: list[Declaration] = []
    for statement in tree.body:
        if isinstance(statement, cst.FunctionDef):
            signature: list[cst.CSTNode] = [*statement.decorators, statement.params]
            if statement.returns is not None:
                signature.append(statement.returns)
            declarations.append(Declaration(statement.name.value, tuple(signature), statement.body))
        elif isinstance(statement, cst.ClassDef):
            signature = [*statement.decorators, *statement.bases, *statement.keywords]
            declarations.append(Declaration(statement.name.value, tuple(signature), statement.body))
        elif isinstance(statement, cst.SimpleStatementLine):
            for small in statement.body:
                if isinstance(small, (cst.Import, cst.ImportFrom)):
                    continue
                if isinstance(small, cst.AnnAssign):
                    name = small.target.value if isinstance(small.target, cst.Name) else ""
                    declarations.append(Declaration(name, (small.annotation,), small.value))
                else:
                    declarations.append(Declaration("", (), small))
        else:
            # Module-level if/try/for/with blocks
            declarations.append(Declaration("", (), statement))
    return declarations
