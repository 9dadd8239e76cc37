"""Main Shake class - entry point for import analysis."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from importshake.bitset import Bitset
from importshake.config import DEFAULT_CONFIG_NAME, OverrideRules, ShakeConfig
from importshake.core.results import BatchResult, ErrorResult, Result
from importshake.graph.advisor import ImportAdvisor, ModuleAdvice
from importshake.graph.edits import EditSet
from importshake.graph.registry import ModuleRegistry
from importshake.graph.symbols import SymbolIndex
from importshake.graph.usage import UsageAnalyzer
from importshake.imports.loader import SourceLoader
from importshake.imports.patcher import HeaderPatcher

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)


@dataclass
class ShakeReport:
    """Everything one analysis run found.

    Attributes
    ----------
    registry : ModuleRegistry
        The loaded module graph.
    needs : list[Bitset]
        Needs of every module, indexed by id.
    advice : list[ModuleAdvice]
        Per-module advice, in id order.
    edits : EditSet
        The merged, reduced edits.
    package : str | None
        The primary package of the run.
    scope : Bitset | None
        Modules the run may patch, or None for all of them.
    """

    registry: ModuleRegistry
    needs: list[Bitset]
    advice: list[ModuleAdvice] = field(default_factory=list)
    edits: EditSet = field(default_factory=EditSet)
    package: str | None = None
    scope: Bitset | None = None

    @property
    def is_clean(self) -> bool:
        return not self.edits

    def fixes(self) -> list[tuple[str, list[str]]]:
        """Downstream repairs as (removed module, modules to patch) pairs."""
        fixes: list[tuple[str, list[str]]] = []
        for item in self.advice:
            for removed, targets in item.fixes.items():
                if self.scope is not None:
                    targets = targets & self.scope
                if targets:
                    fixes.append((self.registry.name_of(removed), self.registry.names(targets)))
        return fixes

    def format(self) -> str:
        """Human-readable report: edits per module, then downstream fixes."""
        lines: list[str] = []
        for module, edit in self.edits:
            lines.append(f"{self.registry.name_of(module)}:")
            if edit.remove:
                lines.append(f"  remove {', '.join(self.registry.names(edit.remove))}")
            if edit.add:
                lines.append(f"  add {', '.join(self.registry.names(edit.add))}")
        for removed, targets in self.fixes():
            lines.append(f"fix {removed}: {', '.join(targets)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


class Shake:
    """
    Main entry point for import analysis.

    A Shake instance owns all state of one run: the loader, the module graph,
    the needs of every module and the override configuration.

    Parameters
    ----------
    path : str | Path
        Project root. Modules are resolved against it and, if present, its
        ``src/`` directory.
    config_path : str | Path | None
        Override configuration file. Defaults to ``<root>/.importshake.json``.
    downstream : bool
        Repair modules whose indirect coverage a removal breaks.
    jobs : int | None
        Worker threads for the per-module passes. None lets the pool decide.
    dry_run : bool
        If True, ``apply`` reports what it would change without writing.

    Examples
    --------
    >>> shake = Shake("path/to/project")
    >>> report = shake.analyze(["mypackage"])
    >>> print(report.format())
    mypackage.views:
      remove mypackage.legacy
    """

    def __init__(
        self,
        path: str | Path = ".",
        config_path: str | Path | None = None,
        downstream: bool = True,
        jobs: int | None = None,
        dry_run: bool = True,
    ) -> None:
        self.path = Path(path)
        self.config_path = Path(config_path) if config_path is not None else None
        self.downstream = downstream
        self.jobs = jobs
        self.dry_run = dry_run
        self._loader: SourceLoader | None = None
        self._config: ShakeConfig | None = None

    @property
    def root(self) -> Path:
        return self.path.resolve()

    @property
    def search_paths(self) -> list[Path]:
        paths = [self.root]
        src_dir = self.root / "src"
        if src_dir.is_dir():
            paths.append(src_dir)
        return paths

    @property
    def loader(self) -> SourceLoader:
        if self._loader is None:
            self._loader = SourceLoader(self.search_paths)
        return self._loader

    @property
    def config_file(self) -> Path:
        return self.config_path if self.config_path is not None else self.root / DEFAULT_CONFIG_NAME

    @property
    def config(self) -> ShakeConfig:
        """The override configuration, loaded lazily."""
        if self._config is None:
            self._config = ShakeConfig.load(self.config_file)
        return self._config

    def detect_package(self) -> str | None:
        """Find the project's primary package.

        Uses the project name from pyproject.toml when it names a local
        package, otherwise the only package found on the search paths.
        """
        pyproject = self.root / "pyproject.toml"
        if pyproject.exists():
            try:
                with open(pyproject, "rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning("Cannot read %s: %s", pyproject, e)
                data = {}

            names = [
                data.get("project", {}).get("name"),
                data.get("tool", {}).get("poetry", {}).get("name"),
            ]
            for name in names:
                if isinstance(name, str):
                    candidate = name.replace("-", "_").lower()
                    if self.loader.is_module(candidate):
                        return candidate

        packages = sorted(
            {
                p.name
                for base in self.search_paths
                for p in base.iterdir()
                if p.is_dir() and (p / "__init__.py").exists()
            }
        )
        if len(packages) == 1:
            return packages[0]
        return None

    def analyze(self, modules: list[str] | None = None, package_only: bool = False) -> ShakeReport:
        """Load the import graph of ``modules`` and compute import edits.

        Parameters
        ----------
        modules : list[str] | None
            Root modules or packages. Defaults to the detected package.
        package_only : bool
            Only visit and patch modules of the primary package.

        Raises
        ------
        LoadError
            If a module in the graph cannot be loaded.
        ValueError
            If no modules are given and no package can be detected.
        """
        if not modules:
            package = self.detect_package()
            if package is None:
                raise ValueError("No modules given and no package found under " + str(self.root))
            modules = [package]
        else:
            package = modules[0].split(".")[0]

        roots: list[str] = []
        for name in modules:
            try:
                roots.extend(self.loader.expand(name))
            except ModuleNotFoundError:
                # Let the registry report it as a load failure.
                roots.append(name)

        registry = ModuleRegistry(self.loader)
        registry.load(roots)

        index = SymbolIndex.build(registry)
        needs = UsageAnalyzer(index).calc_all(registry, jobs=self.jobs)
        rules = OverrideRules.from_config(self.config, registry, default_ignore_import=[package])

        scope: Bitset | None = None
        if package_only:
            scope = Bitset.from_iterable(
                i for i, record in enumerate(registry.records) if _in_package(record.name, package)
            )

        advisor = ImportAdvisor(registry, needs, rules, downstream=self.downstream)
        advice = advisor.advise(scope, jobs=self.jobs)
        edits = advisor.collect(advice, scope)
        return ShakeReport(registry, needs, advice, edits, package, scope)

    def update_config(self, report: ShakeReport, global_: bool = False) -> Result:
        """Record every proposed removal as a legitimate use and save the config."""
        config = self.config
        registry = report.registry
        for item in report.advice:
            config.add_exceptions(
                registry.name_of(item.module),
                registry.names(item.remove),
                global_=global_,
                default_ignore_import=[report.package] if report.package else [],
            )

        path = self.config_file
        if self.dry_run:
            return Result(success=True, message=f"[DRY RUN] Would update {path}", files_changed=[path])
        try:
            config.save(path)
        except OSError as e:
            return ErrorResult(message=f"Failed to write {path}: {e}", exception=e, operation="update config")
        return Result(success=True, message=f"Updated {path}", files_changed=[path])

    def apply(self, report: ShakeReport) -> BatchResult:
        """Patch the source of every module with an edit."""
        patcher = HeaderPatcher(self.loader, dry_run=self.dry_run)
        return patcher.apply_edits(report.registry, report.edits)


def _in_package(name: str, package: str) -> bool:
    return name == package or name.startswith(package + ".")
