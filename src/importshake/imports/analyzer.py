"""Import and definition extraction using LibCST.

Provides functionality to:
- Parse import statements into ``ImportInfo`` records
- Collect the module-level imports of a file (the import graph edges)
- Collect the names a module defines at top level
- Read the names a module exports through ``__all__``
"""
from __future__ import annotations

from dataclasses import dataclass, field

import libcst as cst


@dataclass
class ImportInfo:
    """Information about an import statement.

    Attributes
    ----------
    module : str | None
        The module imported from (None for plain imports like 'import os').
    names : list[str]
        Names being imported. For 'import os.path', this is ['os.path'].
        For 'from os import path, getcwd', this is ['path', 'getcwd'].
    aliases : dict[str, str]
        Map of alias to original name. For 'import os as operating_system',
        this is {'operating_system': 'os'}.
    is_from_import : bool
        True if this is a 'from x import y' statement.
    relative_level : int
        Number of dots for relative imports (e.g., '.' = 1, '..' = 2).
    import_statement : str
        The full import statement as a string.
    is_header : bool
        True if the statement sits directly in the module body, where it can
        be rewritten. False for imports nested in module-level blocks such as
        'if TYPE_CHECKING:' or 'try:'.
    """

    module: str | None
    names: list[str]
    aliases: dict[str, str] = field(default_factory=dict)
    is_from_import: bool = False
    relative_level: int = 0
    import_statement: str = ""
    is_header: bool = True

    @property
    def is_relative(self) -> bool:
        return self.relative_level > 0

    @property
    def is_future(self) -> bool:
        return self.module == "__future__"

    @property
    def is_star(self) -> bool:
        return self.names == ["*"]

    def bound_name(self, name: str) -> str:
        """The local name that importing ``name`` binds.

        'import a.b' binds 'a'; 'import a.b as x' binds 'x';
        'from a import b' binds 'b'.
        """
        for alias, original in self.aliases.items():
            if original == name:
                return alias
        if self.is_from_import:
            return name
        return name.split(".")[0]


def parse_import(node: cst.Import | cst.ImportFrom, is_header: bool = True) -> ImportInfo:
    """Convert an import node into an ``ImportInfo``."""
    names: list[str] = []
    aliases: dict[str, str] = {}

    if isinstance(node, cst.Import):
        for alias in node.names:
            full_name = _get_full_name(alias.name)
            names.append(full_name)
            if alias.asname and isinstance(alias.asname.name, cst.Name):
                aliases[alias.asname.name.value] = full_name
        return ImportInfo(
            module=None,
            names=names,
            aliases=aliases,
            import_statement=_node_to_code(node),
            is_header=is_header,
        )

    if isinstance(node.names, cst.ImportStar):
        names = ["*"]
    else:
        for alias in node.names:
            if isinstance(alias.name, cst.Name):
                names.append(alias.name.value)
                if alias.asname and isinstance(alias.asname.name, cst.Name):
                    aliases[alias.asname.name.value] = alias.name.value

    return ImportInfo(
        module=_get_full_name(node.module) if node.module else None,
        names=names,
        aliases=aliases,
        is_from_import=True,
        relative_level=len(node.relative),
        import_statement=_node_to_code(node),
        is_header=is_header,
    )


class ImportCollector(cst.CSTVisitor):
    """Collect module-level imports.

    Imports inside module-level compound statements are collected too, but
    imports inside functions and classes are not: those are deferred imports
    and do not take part in the module's import graph.
    """

    def __init__(self) -> None:
        self.imports: list[ImportInfo] = []
        self._depth = 0

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        return False

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        return False

    def visit_IndentedBlock(self, node: cst.IndentedBlock) -> bool:
        self._depth += 1
        return True

    def leave_IndentedBlock(self, original_node: cst.IndentedBlock) -> None:
        self._depth -= 1

    def visit_SimpleStatementSuite(self, node: cst.SimpleStatementSuite) -> bool:
        self._depth += 1
        return True

    def leave_SimpleStatementSuite(self, original_node: cst.SimpleStatementSuite) -> None:
        self._depth -= 1

    def visit_Import(self, node: cst.Import) -> bool:
        self.imports.append(parse_import(node, is_header=self._depth == 0))
        return False

    def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
        self.imports.append(parse_import(node, is_header=self._depth == 0))
        return False


def get_imports(tree: cst.Module) -> list[ImportInfo]:
    """Module-level imports of a parsed module, in source order."""
    collector = ImportCollector()
    tree.visit(collector)
    return collector.imports


def get_defined_names(tree: cst.Module) -> list[str]:
    """Names bound by top-level definitions and assignments, in source order."""
    names: list[str] = []
    for statement in tree.body:
        if isinstance(statement, (cst.FunctionDef, cst.ClassDef)):
            names.append(statement.name.value)
        elif isinstance(statement, cst.SimpleStatementLine):
            for small in statement.body:
                if isinstance(small, cst.Assign):
                    for target in small.targets:
                        names.extend(_target_names(target.target))
                elif isinstance(small, cst.AnnAssign):
                    names.extend(_target_names(small.target))
    return list(dict.fromkeys(names))


def get_exported_names(tree: cst.Module) -> list[str]:
    """String entries of a top-level ``__all__`` list or tuple literal.

    Only plain assignments are read; ``__all__ += [...]`` and computed values
    are ignored.
    """
    names: list[str] = []
    for statement in tree.body:
        if not isinstance(statement, cst.SimpleStatementLine):
            continue
        for small in statement.body:
            if not isinstance(small, cst.Assign):
                continue
            if not any(_target_names(t.target) == ["__all__"] for t in small.targets):
                continue
            if isinstance(small.value, (cst.List, cst.Tuple)):
                names = [
                    element.value.evaluated_value
                    for element in small.value.elements
                    if isinstance(element.value, cst.SimpleString)
                ]
    return names


def _target_names(target: cst.BaseExpression) -> list[str]:
    if isinstance(target, cst.Name):
        return [target.value]
    if isinstance(target, (cst.Tuple, cst.List)):
        names: list[str] = []
        for element in target.elements:
            names.extend(_target_names(element.value))
        return names
    return []


def _get_full_name(node: cst.BaseExpression) -> str:
    """Get the full dotted name from an attribute or name node."""
    if isinstance(node, cst.Name):
        return node.value
    elif isinstance(node, cst.Attribute):
        return f"{_get_full_name(node.value)}.{node.attr.value}"
    return ""


def _node_to_code(node: cst.CSTNode) -> str:
    """Convert a CST node back to source code."""
    return cst.Module(body=[cst.SimpleStatementLine(body=[node])]).code.strip()
