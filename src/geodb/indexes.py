"""Secondary lookup tables over a built graph."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from .models import Country, CityLocation, State


def normalize_phone_code(code: str) -> str:
    """Strip surrounding whitespace and a leading ``+`` from a dialing code."""
    return code.strip().lstrip("+")


@dataclass(frozen=True, slots=True)
class GeoIndexes:
    """Non-owning lookup tables into one graph; rebuilt whenever the graph is."""

    by_iso2: Mapping[str, Country]
    by_iso3: Mapping[str, Country]
    by_phone_code: Mapping[str, tuple[Country, ...]]
    by_city_name: Mapping[str, tuple[CityLocation, ...]]
    states: tuple[State, ...]
    locations: tuple[CityLocation, ...]


def build_indexes(countries: Iterable[Country]) -> GeoIndexes:
    """Build every index with one pass over countries, states and cities.

    States and city locations are listed in id order. The city-name table
    holds canonical names and aliases; each key lists the cities carrying it in
    discovery order, each city once.
    """
    by_iso2: dict[str, Country] = {}
    by_iso3: dict[str, Country] = {}
    by_phone: dict[str, list[Country]] = {}
    by_name: dict[str, list[CityLocation]] = {}
    states: list[State] = []
    locations: list[CityLocation] = []

    for country in countries:
        by_iso2[country.iso2] = country
        by_iso3[country.iso3] = country
        if country.phone_code:
            phone = normalize_phone_code(country.phone_code)
            if phone:
                by_phone.setdefault(phone, []).append(country)
        for state in country.states():
            states.append(state)
            for city in state.cities():
                location = CityLocation(city=city, state=state, country=country)
                locations.append(location)
                for name in city.names():
                    by_name.setdefault(name, []).append(location)

    return GeoIndexes(
        by_iso2=MappingProxyType(by_iso2),
        by_iso3=MappingProxyType(by_iso3),
        by_phone_code=MappingProxyType({key: tuple(value) for key, value in by_phone.items()}),
        by_city_name=MappingProxyType({key: tuple(value) for key, value in by_name.items()}),
        states=tuple(states),
        locations=tuple(locations),
    )
