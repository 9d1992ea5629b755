"""Shared fixtures: small in-memory datasets and isolated load caches."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from geodb.cache import LoadCache

TESTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = TESTS_DIR.parent
DATA_DIR = REPO_ROOT / "src" / "geodb" / "data"
DATASET_JSON = DATA_DIR / "countries.json"
DATASET_BIN = DATA_DIR / "geodb.bin"
ALIAS_TABLE = TESTS_DIR / "data" / "city_aliases.yaml"


def make_city(name: str, **extra: Any) -> dict[str, Any]:
    city: dict[str, Any] = {"name": name, "latitude": "10.0", "longitude": "20.0"}
    city.update(extra)
    return city


def make_state(name: str, code: str | None, cities: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {"name": name, "iso2": code, "cities": cities or []}


def make_country(
    iso2: str,
    iso3: str,
    name: str | None = None,
    *,
    phonecode: str | None = None,
    states: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    country: dict[str, Any] = {
        "name": name or iso2,
        "iso2": iso2,
        "iso3": iso3,
        "phonecode": phonecode,
        "states": states or [],
    }
    country.update(extra)
    return country


def to_json_bytes(root: Any) -> bytes:
    return json.dumps(root, ensure_ascii=False).encode("utf-8")


@pytest.fixture
def cache() -> LoadCache:
    return LoadCache()


@pytest.fixture
def small_dataset() -> list[dict[str, Any]]:
    return [
        make_country(
            "AA",
            "AAA",
            "Alphaland",
            phonecode="+1",
            states=[
                make_state(
                    "North",
                    "N",
                    [make_city("Springfield"), make_city("Capital City", aliases=["Cap"])],
                ),
                make_state("South", "S", [make_city("Springfield")]),
            ],
        ),
        make_country(
            "BB",
            "BBB",
            "Betaland",
            phonecode="1",
            states=[make_state("Only", "O", [make_city("Shelbyville")])],
        ),
        make_country("CC", "CCC", "Gammaland", phonecode="44"),
    ]


@pytest.fixture
def small_dataset_bytes(small_dataset: list[dict[str, Any]]) -> bytes:
    return to_json_bytes(small_dataset)
