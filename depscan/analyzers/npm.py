"""Node.js (npm) analyzer implementation."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from .base import ManifestAnalyzer
from .utils import as_str_dict, load_json
from ..models import DependencyResult, Import, ModuleType, Package, PackageID

_NODE_MODULES = "node_modules/"


class NpmAnalyzer(ManifestAnalyzer):
    """Reads package.json and resolves the graph from package-lock.json."""

    MANIFESTS = ("package.json",)

    def is_built(self) -> bool:
        return (self.root / "node_modules").is_dir()

    def analyze(self) -> DependencyResult:
        manifest = load_json(self.manifest)
        declared = as_str_dict(manifest.get("dependencies"))
        if self.module.options.get("dev"):
            declared.update(as_str_dict(manifest.get("devDependencies")))

        lock_path = self.root / "package-lock.json"
        packages: Dict[str, Dict[str, object]] = {}
        if lock_path.is_file():
            packages = _flatten_lockfile(load_json(lock_path))

        result = DependencyResult()
        pending: List[str] = []
        for name, spec in declared.items():
            path = _resolve_path(packages, "", name)
            if path is None:
                package_id = _package_id(name, spec.lstrip("^~="))
                result.transitive.setdefault(package_id, Package(id=package_id))
            else:
                package_id = _package_id(name, str(packages[path].get("version", "")))
                pending.append(path)
            result.direct.append(Import(resolved=package_id, target=f"{name}@{spec}"))

        visited: set[str] = set()
        while pending:
            path = pending.pop()
            if path in visited:
                continue
            visited.add(path)
            entry = packages[path]
            package_id = _package_id(_name_from_path(path), str(entry.get("version", "")))
            node = result.transitive.setdefault(package_id, Package(id=package_id))
            requires = as_str_dict(entry.get("dependencies"))
            requires.update(as_str_dict(entry.get("optionalDependencies")))
            for child_name, spec in requires.items():
                child_path = _resolve_path(packages, path, child_name)
                if child_path is None:
                    # Optional dependencies for other platforms are absent from the lockfile.
                    continue
                child_id = _package_id(child_name, str(packages[child_path].get("version", "")))
                node.imports.append(Import(resolved=child_id, target=f"{child_name}@{spec}"))
                pending.append(child_path)
        return result


def _package_id(name: str, version: str) -> PackageID:
    return PackageID(type=ModuleType.NPM.value, name=name, revision=version)


def _name_from_path(path: str) -> str:
    index = path.rfind(_NODE_MODULES)
    return path[index + len(_NODE_MODULES):] if index != -1 else path


def _resolve_path(packages: Mapping[str, object], parent: str, name: str) -> Optional[str]:
    """Apply node's lookup: nearest ``node_modules`` walking up from ``parent``."""
    base = parent
    while True:
        candidate = f"{base}/{_NODE_MODULES}{name}" if base else f"{_NODE_MODULES}{name}"
        if candidate in packages:
            return candidate
        if not base:
            return None
        index = base.rfind(f"/{_NODE_MODULES}")
        base = base[:index] if index != -1 else ""


def _flatten_lockfile(lock: Mapping[str, object]) -> Dict[str, Dict[str, object]]:
    """Return lockfile entries keyed by install path for any lockfile version."""
    packages = lock.get("packages")
    if isinstance(packages, dict):
        return {
            str(path): entry
            for path, entry in packages.items()
            if path and isinstance(entry, dict) and not entry.get("link")
        }

    flattened: Dict[str, Dict[str, object]] = {}

    def _walk(prefix: str, tree: object) -> None:
        if not isinstance(tree, dict):
            return
        for name, entry in tree.items():
            if not isinstance(entry, dict):
                continue
            path = f"{prefix}/{_NODE_MODULES}{name}" if prefix else f"{_NODE_MODULES}{name}"
            flattened[path] = {
                "version": entry.get("version", ""),
                "dependencies": entry.get("requires", {}),
            }
            _walk(path, entry.get("dependencies"))

    _walk("", lock.get("dependencies"))
    return flattened
