"""Override configuration: exceptions to the usage analysis.

The configuration is a JSON document with three optional fields::

    {
      "ignoreAll": ["pkg.legacy"],
      "ignoreImport": ["pkg"],
      "ignore": {"pkg.cli": ["pkg.plugins"]}
    }

``ignoreAll`` lists modules whose own imports are never flagged,
``ignoreImport`` lists modules that count as used wherever they are imported,
and ``ignore`` lists, per module, imports that count as used in that module.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from importshake.bitset import Bitset

if TYPE_CHECKING:
    from importshake.graph.registry import ModuleRegistry

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".importshake.json"


@dataclass
class ShakeConfig:
    """The override configuration document.

    Attributes
    ----------
    ignore_all : list[str]
        Modules whose imports are never analyzed for removal.
    ignore_import : list[str] | None
        Modules treated as used wherever imported. None means unset, in which
        case the caller's default applies.
    ignore : dict[str, list[str]]
        Per-module imports treated as used.
    """

    ignore_all: list[str] = field(default_factory=list)
    ignore_import: list[str] | None = None
    ignore: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> ShakeConfig:
        """Build a config from parsed JSON, raising ValueError on bad shapes."""
        if not isinstance(data, dict):
            raise ValueError("configuration must be a JSON object")

        ignore = data.get("ignore", {})
        if not isinstance(ignore, dict):
            raise ValueError("'ignore' must map module names to lists of module names")

        ignore_import = data.get("ignoreImport")
        return cls(
            ignore_all=_names(data.get("ignoreAll", []), "ignoreAll"),
            ignore_import=None if ignore_import is None else _names(ignore_import, "ignoreImport"),
            ignore={str(mod): _names(names, f"ignore.{mod}") for mod, names in ignore.items()},
        )

    @classmethod
    def load(cls, path: Path) -> ShakeConfig:
        """Load the configuration, falling back to an empty one on any problem."""
        if not path.exists():
            logger.info("No configuration at %s; using defaults", path)
            return cls()

        try:
            return cls.from_dict(json.loads(path.read_text()))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring configuration %s: %s", path, e)
            return cls()

    def to_dict(self) -> dict[str, Any]:
        """Serialize with every collection sorted."""
        data: dict[str, Any] = {}
        if self.ignore_all:
            data["ignoreAll"] = sorted(set(self.ignore_all))
        if self.ignore_import is not None:
            data["ignoreImport"] = sorted(set(self.ignore_import))
        if self.ignore:
            data["ignore"] = {
                mod: sorted(set(names)) for mod, names in sorted(self.ignore.items()) if names
            }
        return data

    def save(self, path: Path) -> None:
        content = json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)
        path.write_text(content + "\n")

    def add_exceptions(
        self,
        module: str,
        imports: Iterable[str],
        global_: bool = False,
        default_ignore_import: Iterable[str] = (),
    ) -> None:
        """Record ``imports`` as legitimately used by ``module``.

        With ``global_`` the imports go into ``ignore_import`` instead, which
        starts from ``default_ignore_import`` when it was unset.
        """
        if global_:
            if self.ignore_import is None:
                self.ignore_import = list(default_ignore_import)
            self.ignore_import.extend(name for name in imports if name not in self.ignore_import)
        else:
            entry = self.ignore.setdefault(module, [])
            entry.extend(name for name in imports if name not in entry)


def _names(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of module names")
    return list(value)


@dataclass
class OverrideRules:
    """Configuration exceptions resolved to module ids.

    Attributes
    ----------
    ignore_all : Bitset
        Modules whose imports are never flagged.
    ignore_import : Bitset
        Modules treated as used wherever imported.
    ignore : dict[int, Bitset]
        Per-module modules treated as used.
    """

    ignore_all: Bitset = field(default_factory=Bitset)
    ignore_import: Bitset = field(default_factory=Bitset)
    ignore: dict[int, Bitset] = field(default_factory=dict)

    def ignored_for(self, module: int) -> Bitset:
        """Modules treated as used when analyzing ``module``."""
        ignored = self.ignore.get(module)
        if ignored is None:
            return self.ignore_import.copy()
        return self.ignore_import | ignored

    @classmethod
    def from_config(
        cls,
        config: ShakeConfig,
        registry: ModuleRegistry,
        default_ignore_import: Iterable[str] = (),
    ) -> OverrideRules:
        """Resolve configuration names against the loaded registry.

        Names of modules that were not loaded are skipped.
        """

        def resolve(names: Iterable[str]) -> Bitset:
            ids = Bitset()
            for name in names:
                module = registry.id_of(name)
                if module is None:
                    logger.debug("Configuration names unknown module %s", name)
                else:
                    ids.add(module)
            return ids

        ignore_import = default_ignore_import if config.ignore_import is None else config.ignore_import
        ignore: dict[int, Bitset] = {}
        for name, names in config.ignore.items():
            module = registry.id_of(name)
            if module is None:
                logger.debug("Configuration names unknown module %s", name)
                continue
            ignore[module] = resolve(names)

        return cls(
            ignore_all=resolve(config.ignore_all),
            ignore_import=resolve(ignore_import),
            ignore=ignore,
        )
