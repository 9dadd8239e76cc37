"""Exceptions raised while building the module graph."""
from __future__ import annotations


class ShakeError(Exception):
    """Base class for importshake errors."""


class LoadError(ShakeError):
    """A module could not be loaded; the graph is unusable.

    Attributes
    ----------
    module : str
        The module that failed to load.
    importer : str | None
        The module whose import referenced it, if any.
    """

    def __init__(self, module: str, reason: str, importer: str | None = None) -> None:
        self.module = module
        self.importer = importer
        message = f"cannot load module '{module}': {reason}"
        if importer:
            message += f" (imported by '{importer}')"
        super().__init__(message)


class ImportCycleError(LoadError):
    """The import graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(cycle[-1], "import cycle " + " -> ".join(cycle), importer=cycle[-2])
