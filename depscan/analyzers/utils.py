"""Shared helper utilities for analyzer implementations."""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from ..errors import AnalyzerError
from ..models import DependencyResult, Import, Package, PackageID

_REQUIREMENT_SPLIT = re.compile(r"[<>=!~;\[\s]")
_PIN = re.compile(r"===?\s*([^\s,;]+)")

# Python dependency helpers


def parse_requirement(line: str) -> Tuple[str, str] | None:
    """Return ``(name, pinned_version)`` for a requirement specifier."""
    stripped = line.split("#", 1)[0].strip()
    if not stripped or stripped.startswith("-"):
        return None
    name = _REQUIREMENT_SPLIT.split(stripped, 1)[0].strip()
    if not name:
        return None
    match = _PIN.search(stripped.split(";", 1)[0])
    return name, match.group(1) if match else ""


def load_requirements(path: Path) -> List[Tuple[str, str]]:
    requirements: List[Tuple[str, str]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        parsed = parse_requirement(line)
        if parsed is not None:
            requirements.append(parsed)
    return requirements


def load_pyproject_requirements(path: Path) -> List[Tuple[str, str]]:
    """Collect requirements from PEP 621 and Poetry tables."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise AnalyzerError(f"Could not parse {path}: {exc}") from exc

    requirements: List[Tuple[str, str]] = []
    project = data.get("project")
    if isinstance(project, dict):
        for dep in project.get("dependencies", []) or []:
            if isinstance(dep, str):
                parsed = parse_requirement(dep)
                if parsed is not None:
                    requirements.append(parsed)

    tool = data.get("tool")
    poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
    if isinstance(poetry, dict):
        poetry_deps = poetry.get("dependencies", {}) or {}
        for name, spec in poetry_deps.items():
            if name.lower() == "python":
                continue
            version = spec if isinstance(spec, str) else ""
            if isinstance(spec, dict):
                version = str(spec.get("version", ""))
            requirements.append((name, _poetry_pin(version)))
    return requirements


def _poetry_pin(version: str) -> str:
    version = version.strip()
    if version.startswith("=="):
        return version[2:].strip()
    if version[:1].isdigit() and not any(char in version for char in "<>^~*,"):
        return version
    return ""


def normalize_dist_name(name: str) -> str:
    return re.sub(r"[-_.]+", "-", name).lower()


# Node.js dependency helpers


def load_json(path: Path) -> Dict[str, object]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise AnalyzerError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise AnalyzerError(f"{path} must contain a JSON object")
    return data


def as_str_dict(value: object) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(item) for key, item in value.items()}


# Java dependency helpers


def load_pom_dependencies(path: Path) -> List[Tuple[str, str]]:
    """Return ``(groupId:artifactId, version)`` pairs declared in a pom.xml."""
    try:
        root = ET.fromstring(path.read_text(encoding="utf-8"))
    except ET.ParseError as exc:
        raise AnalyzerError(f"Could not parse {path}: {exc}") from exc

    namespace = _detect_xml_namespace(root)
    prefix = f"{{{namespace}}}" if namespace else ""

    properties: Dict[str, str] = {}
    props = root.find(f"{prefix}properties")
    if props is not None:
        for child in props:
            key = child.tag[len(prefix):] if prefix else child.tag
            properties[key] = (child.text or "").strip()
    version = root.findtext(f"{prefix}version", default="")
    if version:
        properties.setdefault("project.version", version.strip())

    deps: List[Tuple[str, str]] = []
    container = root.find(f"{prefix}dependencies")
    if container is None:
        return deps
    for dep in container.findall(f"{prefix}dependency"):
        group = dep.findtext(f"{prefix}groupId", default="").strip()
        artifact = dep.findtext(f"{prefix}artifactId", default="").strip()
        dep_version = _substitute(dep.findtext(f"{prefix}version", default="").strip(), properties)
        if group and artifact:
            deps.append((f"{group}:{artifact}", dep_version))
    return deps


def _substitute(value: str, properties: Dict[str, str]) -> str:
    return re.sub(r"\$\{([^}]+)\}", lambda m: properties.get(m.group(1), m.group(0)), value)


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


_GRADLE_CONFIGURATIONS = ("implementation", "api", "compile", "runtimeOnly", "compileOnly")
_GRADLE_COORDINATE = re.compile(r"['\"]([\w\-.]+):([\w\-.]+)(?::([\w\-.+]+))?['\"]")


def parse_gradle_dependencies(content: str) -> List[Tuple[str, str]]:
    """Return string-notation coordinates from a Gradle build script."""
    deps: List[Tuple[str, str]] = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        if any(line.startswith(token) for token in _GRADLE_CONFIGURATIONS):
            match = _GRADLE_COORDINATE.search(line)
            if match:
                group, artifact, version = match.groups()
                deps.append((f"{group}:{artifact}", version or ""))
    return deps


def leaf_result(module_type: str, coordinates: Iterable[Tuple[str, str]]) -> DependencyResult:
    """Build a result whose direct imports carry no further edges."""
    result = DependencyResult()
    for name, version in coordinates:
        package_id = PackageID(type=module_type, name=name, revision=version)
        target = f"{name}:{version}" if version else name
        result.direct.append(Import(resolved=package_id, target=target))
        result.transitive.setdefault(package_id, Package(id=package_id))
    return result
