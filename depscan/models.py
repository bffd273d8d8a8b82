"""Core data models shared across depscan components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .errors import LocatorError


class ModuleType(str, Enum):
    """Ecosystem tags understood by the built-in tooling."""

    RAW = "raw"
    PIP = "pip"
    NPM = "npm"
    MAVEN = "maven"
    GRADLE = "gradle"
    GO = "go"
    RUBY = "ruby"
    COMPOSER = "composer"
    NUGET = "nuget"
    COCOAPODS = "cocoapods"

    def __str__(self) -> str:
        return self.value


class ModuleStatus(str, Enum):
    """Terminal state of a module after orchestration."""

    PENDING = "pending"
    ANALYZED = "analyzed"
    UNANALYZED = "unanalyzed"


@dataclass(frozen=True, order=True)
class PackageID:
    """Composite key identifying a resolved dependency."""

    type: str
    name: str
    revision: str = ""

    def __post_init__(self) -> None:
        # Enum members hash by name; store plain strings so keys stay interchangeable.
        object.__setattr__(self, "type", str(self.type))

    def __str__(self) -> str:
        return f"{self.type}:{self.name}@{self.revision}"


@dataclass(frozen=True)
class Import:
    """Directed edge to a resolved package, keeping the original reference."""

    resolved: PackageID
    target: str = ""


@dataclass
class Package:
    """Graph node: a package and the packages it directly imports."""

    id: PackageID
    imports: List[Import] = field(default_factory=list)


@dataclass
class DependencyResult:
    """Direct imports and transitive graph reported by an analyzer."""

    direct: List[Import] = field(default_factory=list)
    transitive: Dict[PackageID, Package] = field(default_factory=dict)


# Remote fetcher names for each ecosystem tag. Unlisted tags map to themselves.
FETCHERS: Dict[str, str] = {
    ModuleType.RAW.value: "archive",
    ModuleType.PIP.value: "pip",
    ModuleType.NPM.value: "npm",
    ModuleType.MAVEN.value: "mvn",
    ModuleType.GRADLE.value: "mvn",
    ModuleType.GO.value: "go",
    ModuleType.RUBY.value: "gem",
    ModuleType.COMPOSER.value: "comp",
    ModuleType.NUGET.value: "nuget",
    ModuleType.COCOAPODS.value: "pod",
}

_SEPARATORS = ("+", "$")
_SEPARATOR_TABLE = str.maketrans({separator: "_" for separator in _SEPARATORS})


def locator_safe(text: str) -> str:
    """Replace locator separators so ``text`` can be used as a fetcher or project."""
    return text.translate(_SEPARATOR_TABLE)


@dataclass(frozen=True)
class Locator:
    """External address of an analyzed unit: ``fetcher+project$revision``."""

    fetcher: str
    project: str
    revision: str = ""

    def __str__(self) -> str:
        return f"{self.fetcher}+{self.project}${self.revision}"

    @classmethod
    def parse(cls, text: str) -> "Locator":
        """Parse the text encoding produced by ``str(locator)``."""
        fetcher, plus, rest = text.partition("+")
        if not plus:
            raise LocatorError(f"Locator '{text}' is missing the '+' separator")
        project, dollar, revision = rest.partition("$")
        if not dollar:
            raise LocatorError(f"Locator '{text}' is missing the '$' separator")
        return cls(fetcher=fetcher, project=project, revision=revision)

    @classmethod
    def of(cls, package_id: PackageID) -> "Locator":
        """Return the remote locator for a package identifier."""
        fetcher = FETCHERS.get(str(package_id.type), str(package_id.type))
        return cls(
            fetcher=locator_safe(fetcher),
            project=locator_safe(package_id.name),
            revision=package_id.revision,
        )

    def validate(self) -> "Locator":
        for label, value in (("fetcher", self.fetcher), ("project", self.project)):
            if not value:
                raise LocatorError(f"Locator {label} must not be empty")
            for separator in _SEPARATORS:
                if separator in value:
                    raise LocatorError(
                        f"Locator {label} '{value}' must not contain '{separator}'"
                    )
        return self

    def org_string(self) -> str:
        return f"{self.fetcher}+{self.project}"

    def report_url(self, endpoint: str, branch: Optional[str] = None) -> str:
        """Return the human-facing report address for this locator."""
        base = endpoint.rstrip("/")
        project = quote(self.org_string(), safe="")
        revision = quote(self.revision, safe="")
        return f"{base}/projects/{project}/refs/branch/{quote(branch or 'master', safe='')}/{revision}"


@dataclass
class Module:
    """A unit of analysis input and, once analyzed, its dependency graph."""

    name: str
    type: str
    build_target: str
    revision: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    imports: List[Import] = field(default_factory=list)
    deps: Dict[PackageID, Package] = field(default_factory=dict)
    status: ModuleStatus = ModuleStatus.PENDING
    locator: Optional[Locator] = None

    def __post_init__(self) -> None:
        self.type = str(self.type)

    @property
    def is_raw(self) -> bool:
        return str(self.type) == ModuleType.RAW.value

    def identity(self) -> PackageID:
        """Return the package identifier describing the module itself."""
        return PackageID(type=str(self.type), name=self.name, revision=self.revision or "")
