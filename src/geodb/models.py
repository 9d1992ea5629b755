"""Immutable geographic entities shared by the graph builder, indexes and queries.

Countries, states and cities carry an ``id``: their position in dataset order
among entities of the same kind in one built graph. States and cities also
carry the ids of their owners, so two same-named cities in different states
never compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Timezone:
    zone_name: str | None = None
    gmt_offset: int | None = None
    gmt_offset_name: str | None = None
    abbreviation: str | None = None
    tz_name: str | None = None


@dataclass(frozen=True, slots=True)
class City:
    """A city; ``id`` is its position among all cities of the graph."""

    id: int
    name: str
    state_id: int
    country_id: int
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    aliases: tuple[str, ...] = ()

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def names(self) -> tuple[str, ...]:
        """Canonical name followed by every alias not equal to it."""
        return (self.name, *(alias for alias in self.aliases if alias != self.name))


@dataclass(frozen=True, slots=True)
class State:
    id: int
    name: str
    country_id: int
    code: str | None = None
    full_code: str | None = None
    native_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    _cities: tuple[City, ...] = field(default=(), repr=False)

    def cities(self) -> tuple[City, ...]:
        return self._cities


@dataclass(frozen=True, slots=True)
class Country:
    id: int
    name: str
    iso2: str
    iso3: str
    phone_code: str | None = None
    capital: str | None = None
    currency: str | None = None
    currency_name: str | None = None
    currency_symbol: str | None = None
    region: str | None = None
    subregion: str | None = None
    population: int | None = None
    numeric_code: str | None = None
    tld: str | None = None
    native_name: str | None = None
    nationality: str | None = None
    emoji: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezones: tuple[Timezone, ...] = ()
    translations: tuple[tuple[str, str], ...] = ()
    _states: tuple[State, ...] = field(default=(), repr=False)

    def states(self) -> tuple[State, ...]:
        return self._states

    def translation(self, lang: str) -> str | None:
        for code, text in self.translations:
            if code == lang:
                return text
        return None

    def find_state_by_code(self, code: str) -> State | None:
        for state in self._states:
            if state.code == code:
                return state
        return None


@dataclass(frozen=True, slots=True, eq=False)
class CityLocation:
    """A city together with the state and country that own it.

    Locations are references into the graph and compare by identity.
    """

    city: City
    state: State
    country: Country

    @property
    def name(self) -> str:
        return self.city.name


@dataclass(frozen=True, slots=True)
class DbStats:
    countries: int
    states: int
    cities: int

    def to_dict(self) -> dict[str, int]:
        return {"countries": self.countries, "states": self.states, "cities": self.cities}
