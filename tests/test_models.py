"""Tests for depscan.models."""

from __future__ import annotations

import pytest

from depscan.errors import LocatorError
from depscan.models import Locator, Module, ModuleStatus, ModuleType, PackageID, locator_safe


@pytest.mark.parametrize(
    "locator",
    [
        Locator("npm", "left-pad", "1.3.0"),
        Locator("mvn", "org.slf4j:slf4j-api", "2.0.9"),
        Locator("custom", "github.com/acme/widgets", ""),
        Locator("archive", "vendor", "rev$with+separators"),
    ],
)
def test_locator_text_round_trip(locator: Locator) -> None:
    assert Locator.parse(str(locator)) == locator


def test_locator_text_encoding() -> None:
    assert str(Locator("custom", "myproj", "abc123")) == "custom+myproj$abc123"


@pytest.mark.parametrize("text", ["npm", "npm+left-pad", ""])
def test_locator_parse_rejects_missing_separators(text: str) -> None:
    with pytest.raises(LocatorError):
        Locator.parse(text)


@pytest.mark.parametrize(
    "locator",
    [
        Locator("", "proj", "1"),
        Locator("npm", "", "1"),
        Locator("np+m", "proj", "1"),
        Locator("npm", "pro$j", "1"),
    ],
)
def test_locator_validate_rejects_invalid_fields(locator: Locator) -> None:
    with pytest.raises(LocatorError):
        locator.validate()


def test_locator_of_maps_ecosystem_to_fetcher() -> None:
    assert Locator.of(PackageID("maven", "g:a", "1")) == Locator("mvn", "g:a", "1")
    assert Locator.of(PackageID("raw", "vendor", "abc")) == Locator("archive", "vendor", "abc")
    assert Locator.of(PackageID("cargo", "serde", "1.0")) == Locator("cargo", "serde", "1.0")


def test_locator_report_url_escapes_components() -> None:
    url = Locator("custom", "acme/widgets", "v1 beta").report_url("https://example.test/")
    assert url == "https://example.test/projects/custom%2Bacme%2Fwidgets/refs/branch/master/v1%20beta"


def test_package_id_equality_and_hashing() -> None:
    first = PackageID(ModuleType.NPM, "react", "18.2.0")
    second = PackageID("npm", "react", "18.2.0")

    assert first == second
    assert hash(first) == hash(second)
    assert {first: "x"}[second] == "x"
    assert PackageID("npm", "react", "18.2.1") != first


def test_package_ids_sort_by_fields() -> None:
    ids = [PackageID("pip", "b", "1"), PackageID("npm", "z", "1"), PackageID("pip", "a", "2")]
    assert sorted(ids) == [
        PackageID("npm", "z", "1"),
        PackageID("pip", "a", "2"),
        PackageID("pip", "b", "1"),
    ]


def test_module_defaults_and_identity() -> None:
    module = Module(name="web", type=ModuleType.NPM, build_target="web/", revision="2.1.0")

    assert module.type == "npm"
    assert module.status is ModuleStatus.PENDING
    assert module.imports == [] and module.deps == {}
    assert module.identity() == PackageID("npm", "web", "2.1.0")
    assert not module.is_raw
    assert Module(name="v", type="raw", build_target="v").is_raw


def test_locator_of_replaces_separators_in_names() -> None:
    locator = Locator.of(PackageID("cargo+nightly", "libs/c++", "1.0$rc"))

    assert locator == Locator("cargo_nightly", "libs/c__", "1.0$rc")
    assert locator.validate() is locator
    assert Locator.parse(str(locator)) == locator


def test_locator_safe() -> None:
    assert locator_safe("a+b$c") == "a_b_c"
    assert locator_safe("plain") == "plain"
