"""Tests for the npm analyzer."""

from __future__ import annotations

import json

from depscan.analyzers.npm import NpmAnalyzer
from depscan.models import Module, PackageID


def _npm(name: str, version: str) -> PackageID:
    return PackageID("npm", name, version)


PACKAGE_JSON = json.dumps(
    {
        "name": "web",
        "dependencies": {"express": "^4.18.0"},
        "devDependencies": {"jest": "^29.0.0"},
    }
)

LOCK_V3 = json.dumps(
    {
        "lockfileVersion": 3,
        "packages": {
            "": {"name": "web"},
            "node_modules/express": {
                "version": "4.18.2",
                "dependencies": {"debug": "2.6.9", "body-parser": "1.20.1"},
            },
            "node_modules/express/node_modules/debug": {
                "version": "2.6.9",
                "dependencies": {"ms": "2.1.3"},
            },
            "node_modules/debug": {"version": "4.3.4"},
            "node_modules/body-parser": {"version": "1.20.1", "dependencies": {"bytes": "3.1.2"}},
            "node_modules/bytes": {"version": "3.1.2"},
            "node_modules/ms": {"version": "2.1.3"},
            "node_modules/local-lib": {"resolved": "libs/local", "link": True},
        },
    }
)

LOCK_V1 = json.dumps(
    {
        "lockfileVersion": 1,
        "dependencies": {
            "express": {
                "version": "4.18.2",
                "requires": {"debug": "2.6.9"},
                "dependencies": {"debug": {"version": "2.6.9"}},
            },
            "debug": {"version": "4.3.4"},
        },
    }
)


def test_npm_analyzer_walks_nested_lockfile(project_builder) -> None:
    project_builder.write({"package.json": PACKAGE_JSON, "package-lock.json": LOCK_V3})
    module = Module(name="web", type="npm", build_target=str(project_builder.path()))

    result = NpmAnalyzer(module).analyze()

    express = _npm("express", "4.18.2")
    assert [(edge.resolved, edge.target) for edge in result.direct] == [
        (express, "express@^4.18.0")
    ]
    assert {edge.resolved for edge in result.transitive[express].imports} == {
        _npm("debug", "2.6.9"),
        _npm("body-parser", "1.20.1"),
    }
    assert [edge.resolved for edge in result.transitive[_npm("debug", "2.6.9")].imports] == [
        _npm("ms", "2.1.3")
    ]
    assert [edge.resolved for edge in result.transitive[_npm("body-parser", "1.20.1")].imports] == [
        _npm("bytes", "3.1.2")
    ]
    # Hoisted debug@4 is not required by anything reachable.
    assert _npm("debug", "4.3.4") not in result.transitive
    assert set(result.transitive) == {
        express,
        _npm("debug", "2.6.9"),
        _npm("body-parser", "1.20.1"),
        _npm("bytes", "3.1.2"),
        _npm("ms", "2.1.3"),
    }


def test_npm_analyzer_includes_dev_dependencies_when_requested(project_builder) -> None:
    project_builder.write({"package.json": PACKAGE_JSON, "package-lock.json": LOCK_V3})
    module = Module(
        name="web", type="npm", build_target=str(project_builder.path()), options={"dev": True}
    )

    result = NpmAnalyzer(module).analyze()

    jest = _npm("jest", "29.0.0")
    assert [edge.resolved for edge in result.direct][-1] == jest
    assert result.transitive[jest].imports == []


def test_npm_analyzer_reads_v1_lockfile(project_builder) -> None:
    project_builder.write({"package.json": PACKAGE_JSON, "package-lock.json": LOCK_V1})
    module = Module(
        name="web", type="npm", build_target=str(project_builder.path("package.json"))
    )

    result = NpmAnalyzer(module).analyze()

    express = _npm("express", "4.18.2")
    assert [edge.resolved for edge in result.direct] == [express]
    assert [edge.resolved for edge in result.transitive[express].imports] == [
        _npm("debug", "2.6.9")
    ]


def test_npm_analyzer_is_built_checks_node_modules(project_builder) -> None:
    project_builder.write({"package.json": PACKAGE_JSON})
    module = Module(name="web", type="npm", build_target=str(project_builder.path()))
    analyzer = NpmAnalyzer(module)

    assert analyzer.is_built() is False
    project_builder.mkdir("node_modules")
    assert analyzer.is_built() is True
