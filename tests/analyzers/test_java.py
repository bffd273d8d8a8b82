"""Tests for the Maven and Gradle analyzers."""

from __future__ import annotations

import pytest

from depscan.analyzers.java import GradleAnalyzer, MavenAnalyzer
from depscan.errors import AnalyzerError
from depscan.models import Module, PackageID

POM = """
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.example</groupId>
  <artifactId>orders</artifactId>
  <version>1.4.0</version>
  <properties>
    <slf4j.version>2.0.9</slf4j.version>
  </properties>
  <dependencies>
    <dependency>
      <groupId>org.slf4j</groupId>
      <artifactId>slf4j-api</artifactId>
      <version>${slf4j.version}</version>
    </dependency>
    <dependency>
      <groupId>com.example</groupId>
      <artifactId>orders-core</artifactId>
      <version>${project.version}</version>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
    </dependency>
  </dependencies>
</project>
"""


def test_maven_analyzer_reads_pom(project_builder) -> None:
    project_builder.write({"orders/pom.xml": POM})
    module = Module(name="orders", type="maven", build_target=str(project_builder.path("orders")))

    result = MavenAnalyzer(module).analyze()

    assert [(edge.resolved, edge.target) for edge in result.direct] == [
        (PackageID("maven", "org.slf4j:slf4j-api", "2.0.9"), "org.slf4j:slf4j-api:2.0.9"),
        (PackageID("maven", "com.example:orders-core", "1.4.0"), "com.example:orders-core:1.4.0"),
        (PackageID("maven", "junit:junit", ""), "junit:junit"),
    ]
    assert all(package.imports == [] for package in result.transitive.values())
    assert len(result.transitive) == 3


def test_maven_analyzer_rejects_malformed_pom(project_builder) -> None:
    project_builder.write({"pom.xml": "<project>"})
    module = Module(name="broken", type="maven", build_target=str(project_builder.path()))

    with pytest.raises(AnalyzerError, match="Could not parse"):
        MavenAnalyzer(module).analyze()


def test_gradle_analyzer_reads_string_coordinates(project_builder) -> None:
    project_builder.write(
        {
            "build.gradle.kts": """
            dependencies {
                implementation("com.squareup.okhttp3:okhttp:4.12.0")
                // implementation("commented:out:1.0")
                api 'com.google.guava:guava:33.0.0-jre'
                runtimeOnly("org.postgresql:postgresql")
                implementation(project(":core"))
            }
            """
        }
    )
    module = Module(name="app", type="gradle", build_target=str(project_builder.path()))
    analyzer = GradleAnalyzer(module)

    result = analyzer.analyze()

    assert [edge.resolved for edge in result.direct] == [
        PackageID("gradle", "com.squareup.okhttp3:okhttp", "4.12.0"),
        PackageID("gradle", "com.google.guava:guava", "33.0.0-jre"),
        PackageID("gradle", "org.postgresql:postgresql", ""),
    ]
    assert analyzer.is_built() is False
    project_builder.mkdir("build")
    assert analyzer.is_built() is True
