"""Python (pip) analyzer implementation."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, List, Optional, Tuple

from .base import ManifestAnalyzer
from .utils import (
    load_pyproject_requirements,
    load_requirements,
    normalize_dist_name,
    parse_requirement,
)
from ..errors import AnalyzerError
from ..models import DependencyResult, Import, Module, ModuleType, Package, PackageID

DistributionLookup = Callable[[str], metadata.Distribution]


class PipAnalyzer(ManifestAnalyzer):
    """Resolves requirements against the installed Python environment."""

    MANIFESTS = ("requirements.txt", "pyproject.toml")

    def __init__(self, module: Module, *, lookup: DistributionLookup | None = None) -> None:
        super().__init__(module)
        self._lookup = lookup or metadata.distribution

    def is_built(self) -> bool:
        return all(self._find(name) is not None for name, _ in self._requirements())

    def analyze(self) -> DependencyResult:
        result = DependencyResult()
        seen: Dict[str, PackageID] = {}
        pending: List[Tuple[Package, metadata.Distribution]] = []
        for name, pinned in self._requirements():
            package_id = self._visit(name, pinned, result.transitive, seen, pending)
            target = f"{name}=={pinned}" if pinned else name
            result.direct.append(Import(resolved=package_id, target=target))

        while pending:
            package, dist = pending.pop()
            for requirement in dist.requires or []:
                if _is_extra_only(requirement):
                    continue
                parsed = parse_requirement(requirement)
                if parsed is None:
                    continue
                child = self._visit(parsed[0], "", result.transitive, seen, pending)
                package.imports.append(Import(resolved=child, target=requirement))
        return result

    def _requirements(self) -> List[Tuple[str, str]]:
        try:
            if self.manifest.name == "pyproject.toml":
                return load_pyproject_requirements(self.manifest)
            return load_requirements(self.manifest)
        except OSError as exc:
            raise AnalyzerError(f"Could not read {self.manifest}: {exc}") from exc

    def _visit(
        self,
        name: str,
        pinned: str,
        graph: Dict[PackageID, Package],
        seen: Dict[str, PackageID],
        pending: List[Tuple[Package, metadata.Distribution]],
    ) -> PackageID:
        """Register ``name`` once and queue its installed requirements for walking."""
        key = normalize_dist_name(name)
        if key in seen:
            return seen[key]
        dist = self._find(name)
        revision = pinned or (dist.version if dist is not None else "")
        package_id = PackageID(type=ModuleType.PIP.value, name=name, revision=revision)
        seen[key] = package_id
        package = Package(id=package_id)
        graph[package_id] = package
        if dist is not None:
            pending.append((package, dist))
        return package_id

    def _find(self, name: str) -> Optional[metadata.Distribution]:
        try:
            return self._lookup(name)
        except metadata.PackageNotFoundError:
            return None


def _is_extra_only(requirement: str) -> bool:
    _, marker_sep, marker = requirement.partition(";")
    return bool(marker_sep) and "extra" in marker
