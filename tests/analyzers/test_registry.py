"""Tests for analyzer registration and binding."""

from __future__ import annotations

import pytest

from depscan.analyzers import AnalyzerRegistry, NpmAnalyzer, default_registry
from depscan.errors import AnalyzerBindError
from depscan.models import DependencyResult, Module
from tests._fixtures.doubles import StubAnalyzer


class _EntryPoint:
    def __init__(self, name: str, target: object) -> None:
        self.name = name
        self._target = target

    def load(self) -> object:
        return self._target


class CargoAnalyzer(StubAnalyzer):
    def analyze(self) -> DependencyResult:
        return DependencyResult()


def test_default_registry_includes_builtin_analyzers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("depscan.analyzers._iter_entry_points", lambda: [])

    assert default_registry().types() == ["gradle", "maven", "npm", "pip"]


def test_default_registry_loads_entry_points(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "depscan.analyzers._iter_entry_points", lambda: [_EntryPoint("cargo", CargoAnalyzer)]
    )

    registry = default_registry()
    analyzer = registry.create(Module(name="crate", type="Cargo", build_target="."))

    assert "cargo" in registry.types()
    assert isinstance(analyzer, CargoAnalyzer)


def test_entry_point_must_be_callable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "depscan.analyzers._iter_entry_points", lambda: [_EntryPoint("bogus", "not callable")]
    )

    with pytest.raises(TypeError, match="bogus"):
        default_registry()


def test_raw_cannot_be_registered() -> None:
    with pytest.raises(ValueError):
        AnalyzerRegistry().register("raw", StubAnalyzer)


def test_create_unknown_type_raises_bind_error() -> None:
    with pytest.raises(AnalyzerBindError, match="haskell"):
        AnalyzerRegistry().create(Module(name="x", type="haskell", build_target="."))


def test_create_wraps_factory_failures(project_builder) -> None:
    registry = AnalyzerRegistry({"npm": NpmAnalyzer})
    module = Module(name="web", type="npm", build_target=str(project_builder.path()))

    with pytest.raises(AnalyzerBindError, match="package.json"):
        registry.create(module)


def test_create_rejects_non_analyzer_instances() -> None:
    registry = AnalyzerRegistry({"odd": lambda module: object()})

    with pytest.raises(AnalyzerBindError, match="did not return an Analyzer"):
        registry.create(Module(name="x", type="odd", build_target="."))
