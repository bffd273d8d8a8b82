"""Maven and Gradle analyzer implementations."""

from __future__ import annotations

from .base import ManifestAnalyzer
from .utils import leaf_result, load_pom_dependencies, parse_gradle_dependencies
from ..errors import AnalyzerError
from ..models import DependencyResult, ModuleType


class MavenAnalyzer(ManifestAnalyzer):
    """Reports dependencies declared in pom.xml."""

    MANIFESTS = ("pom.xml",)

    def is_built(self) -> bool:
        return (self.root / "target").is_dir()

    def analyze(self) -> DependencyResult:
        try:
            coordinates = load_pom_dependencies(self.manifest)
        except OSError as exc:
            raise AnalyzerError(f"Could not read {self.manifest}: {exc}") from exc
        return leaf_result(ModuleType.MAVEN.value, coordinates)


class GradleAnalyzer(ManifestAnalyzer):
    """Reports string-notation dependencies declared in Gradle build scripts."""

    MANIFESTS = ("build.gradle", "build.gradle.kts")

    def is_built(self) -> bool:
        return (self.root / "build").is_dir()

    def analyze(self) -> DependencyResult:
        try:
            content = self.manifest.read_text(encoding="utf-8")
        except OSError as exc:
            raise AnalyzerError(f"Could not read {self.manifest}: {exc}") from exc
        return leaf_result(ModuleType.GRADLE.value, parse_gradle_dependencies(content))
