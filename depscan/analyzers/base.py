"""Base classes for analyzer plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..errors import AnalyzerBindError
from ..models import DependencyResult, Module


class Analyzer(ABC):
    """Contract for analyzers bound to a single module."""

    def __init__(self, module: Module) -> None:
        self.module = module

    @abstractmethod
    def is_built(self) -> bool:
        """Return True when the module's build artifacts appear to exist."""

    @abstractmethod
    def analyze(self) -> DependencyResult:
        """Discover direct imports and the transitive dependency graph."""


class ManifestAnalyzer(Analyzer):
    """Analyzer rooted at a directory holding one of ``MANIFESTS``."""

    MANIFESTS: tuple[str, ...] = ()

    def __init__(self, module: Module) -> None:
        super().__init__(module)
        self.root, self.manifest = self._locate(Path(module.build_target))

    def _locate(self, target: Path) -> tuple[Path, Path]:
        target = target.expanduser()
        if target.is_file():
            return target.parent, target
        for name in self.MANIFESTS:
            candidate = target / name
            if candidate.is_file():
                return target, candidate
        expected = ", ".join(self.MANIFESTS)
        raise AnalyzerBindError(
            f"No {expected} found for module '{self.module.name}' at {target}"
        )
