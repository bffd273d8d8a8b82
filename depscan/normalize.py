"""Conversion of analyzed modules into locator-addressed source units."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from .errors import LocatorError, NormalizationError
from .models import Locator, Module, ModuleStatus, ModuleType, PackageID

DEFAULT_ARTIFACT = "default"


@dataclass(frozen=True)
class SourceDependency:
    """One node of a flattened dependency graph."""

    locator: str
    imports: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"locator": self.locator}
        if self.imports:
            payload["imports"] = list(self.imports)
        return payload


@dataclass(frozen=True)
class Build:
    """Dependency data recorded for a source unit."""

    artifact: str
    succeeded: bool
    imports: List[str]
    dependencies: List[SourceDependency]

    def to_dict(self) -> Dict[str, object]:
        return {
            "artifact": self.artifact,
            "succeeded": self.succeeded,
            "imports": list(self.imports),
            "dependencies": [dependency.to_dict() for dependency in self.dependencies],
        }


@dataclass(frozen=True)
class SourceUnit:
    """Wire-ready record of one analyzed module."""

    name: str
    type: str
    manifest: str
    locator: Locator
    build: Build

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "type": self.type,
            "manifest": self.manifest,
            "locator": str(self.locator),
            "build": self.build.to_dict(),
        }


def normalize(modules: Sequence[Module]) -> List[SourceUnit]:
    """Return one source unit per module, failing on structurally invalid input."""
    return [_normalize_module(module) for module in modules]


def dumps(units: Iterable[SourceUnit], *, indent: int | None = 2) -> str:
    """Serialize source units to deterministic JSON."""
    return json.dumps([unit.to_dict() for unit in units], indent=indent, sort_keys=True)


def _normalize_module(module: Module) -> SourceUnit:
    try:
        locator = (module.locator or Locator.of(module.identity())).validate()
    except LocatorError as exc:
        raise NormalizationError(
            f"Module '{module.name}' has no valid locator: {exc}", module=module.name
        ) from exc

    overrides: Dict[PackageID, Locator] = {}
    if module.locator is not None:
        raw_id = PackageID(
            type=ModuleType.RAW.value, name=module.locator.project, revision=module.locator.revision
        )
        overrides[raw_id] = module.locator

    def _render(package_id: PackageID) -> str:
        return str(overrides.get(package_id) or Locator.of(package_id))

    for key in module.deps:
        if not isinstance(key, PackageID):
            raise NormalizationError(
                f"Module '{module.name}' has a dependency keyed by {type(key).__name__}, not PackageID",
                module=module.name,
            )

    imports = list(dict.fromkeys(_render(edge.resolved) for edge in module.imports))
    dependencies = [
        SourceDependency(
            locator=_render(package_id),
            imports=sorted({_render(edge.resolved) for edge in module.deps[package_id].imports}),
        )
        for package_id in sorted(module.deps)
    ]

    return SourceUnit(
        name=module.name,
        type=str(module.type),
        manifest=module.build_target,
        locator=locator,
        build=Build(
            artifact=DEFAULT_ARTIFACT,
            succeeded=module.status == ModuleStatus.ANALYZED,
            imports=imports,
            dependencies=dependencies,
        ),
    )


__all__ = ["Build", "SourceDependency", "SourceUnit", "dumps", "normalize"]
