"""Analyzer plugin implementations and the ecosystem registry."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .base import Analyzer, ManifestAnalyzer
from .java import GradleAnalyzer, MavenAnalyzer
from .npm import NpmAnalyzer
from .pip import PipAnalyzer
from ..errors import AnalyzerBindError
from ..models import Module, ModuleType

_ENTRY_POINT_GROUP = "depscan.analyzers"

AnalyzerFactory = Callable[[Module], Analyzer]

_BUILTIN_FACTORIES: Dict[str, AnalyzerFactory] = {
    ModuleType.PIP.value: PipAnalyzer,
    ModuleType.NPM.value: NpmAnalyzer,
    ModuleType.MAVEN.value: MavenAnalyzer,
    ModuleType.GRADLE.value: GradleAnalyzer,
}


class AnalyzerRegistry:
    """Maps ecosystem tags to analyzer factories."""

    def __init__(self, factories: Optional[Mapping[str, AnalyzerFactory]] = None) -> None:
        self._factories: Dict[str, AnalyzerFactory] = {}
        for name, factory in (factories or {}).items():
            self.register(name, factory)

    def register(self, module_type: str, factory: AnalyzerFactory) -> None:
        key = str(module_type).lower()
        if key == ModuleType.RAW.value:
            raise ValueError("Raw modules are uploaded, not analyzed")
        self._factories[key] = factory

    def types(self) -> List[str]:
        return sorted(self._factories)

    def create(self, module: Module) -> Analyzer:
        """Bind an analyzer to ``module`` or raise ``AnalyzerBindError``."""
        key = str(module.type).lower()
        factory = self._factories.get(key)
        if factory is None:
            raise AnalyzerBindError(f"No analyzer registered for module type '{module.type}'")
        try:
            instance = factory(module)
        except AnalyzerBindError:
            raise
        except Exception as exc:
            raise AnalyzerBindError(
                f"Could not initialize {key} analyzer for '{module.name}': {exc}"
            ) from exc
        if not isinstance(instance, Analyzer):
            raise AnalyzerBindError(f"Analyzer factory for '{key}' did not return an Analyzer instance")
        return instance


def default_registry() -> AnalyzerRegistry:
    """Return a registry holding built-in and entry-point analyzers."""
    registry = AnalyzerRegistry(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - broken plugin install
            raise RuntimeError(f"Failed to load analyzer entry point '{entry.name}': {exc}") from exc
        registry.register(entry.name, _coerce_factory(entry.name, loaded))
    return registry


def _coerce_factory(name: str, obj: object) -> AnalyzerFactory:
    if isinstance(obj, type) and issubclass(obj, Analyzer):
        return obj
    if callable(obj):
        return obj  # type: ignore[return-value]
    raise TypeError(f"Analyzer entry point '{name}' must be an Analyzer subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "Analyzer",
    "AnalyzerFactory",
    "AnalyzerRegistry",
    "GradleAnalyzer",
    "ManifestAnalyzer",
    "MavenAnalyzer",
    "NpmAnalyzer",
    "PipAnalyzer",
    "default_registry",
]
