"""Graph assembly from decoded records."""

from __future__ import annotations

import logging
from itertools import count
from typing import Iterable, Iterator

from .errors import DuplicateKey
from .indexes import normalize_phone_code
from .models import City, Country, State, Timezone
from .records import AliasRecord, CityRecord, CountryRecord, RawDataset, StateRecord

_LOGGER = logging.getLogger("geodb.builder")

AliasKey = tuple[str, str, str]


def build_graph(
    raw: RawDataset,
    *,
    iso2_filter: Iterable[str] | None = None,
) -> tuple[Country, ...]:
    """Assemble the owned Country -> State -> City graph in dataset order.

    Inline city aliases are merged with alias-table entries matched on
    ``(iso2, state name, city name)``. ISO2 and ISO3 must be unique across all
    country records, state codes unique within their country. Ids are assigned
    in dataset order over the countries that pass ``iso2_filter``.
    """
    wanted = _normalize_filter(iso2_filter)
    alias_table = _index_alias_table(raw.aliases)
    matched: set[AliasKey] = set()

    seen_iso2: set[str] = set()
    seen_iso3: set[str] = set()
    countries: list[Country] = []
    state_ids = count()
    city_ids = count()
    for record in raw.countries:
        if record.iso2 in seen_iso2:
            raise DuplicateKey("ISO2", record.iso2)
        if record.iso3 in seen_iso3:
            raise DuplicateKey("ISO3", record.iso3)
        seen_iso2.add(record.iso2)
        seen_iso3.add(record.iso3)
        if wanted is not None and record.iso2 not in wanted:
            continue
        countries.append(
            _build_country(len(countries), record, alias_table, matched, state_ids, city_ids)
        )

    built_iso2 = {country.iso2 for country in countries}
    for key in alias_table:
        if key not in matched and key[0] in built_iso2:
            _LOGGER.warning("Alias entry for %s/%s/%s matches no city; skipped", *key)
    return tuple(countries)


def _normalize_filter(iso2_filter: Iterable[str] | None) -> frozenset[str] | None:
    if iso2_filter is None:
        return None
    return frozenset(item.strip() for item in iso2_filter if item and item.strip())


def _index_alias_table(entries: Iterable[AliasRecord]) -> dict[AliasKey, list[str]]:
    table: dict[AliasKey, list[str]] = {}
    for entry in entries:
        table.setdefault((entry.iso2, entry.state, entry.city), []).extend(entry.aliases)
    return table


def _merge_aliases(inline: Iterable[str], extra: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for alias in (*inline, *extra):
        if alias and alias not in seen:
            seen.add(alias)
            out.append(alias)
    return tuple(out)


def _build_country(
    country_id: int,
    record: CountryRecord,
    alias_table: dict[AliasKey, list[str]],
    matched: set[AliasKey],
    state_ids: Iterator[int],
    city_ids: Iterator[int],
) -> Country:
    seen_codes: set[str] = set()
    states: list[State] = []
    for state_record in record.states:
        if state_record.code is not None:
            if state_record.code in seen_codes:
                raise DuplicateKey("state code", state_record.code, scope=record.iso2)
            seen_codes.add(state_record.code)
        states.append(
            _build_state(country_id, record.iso2, state_record, alias_table, matched, state_ids, city_ids)
        )

    return Country(
        id=country_id,
        name=record.name,
        iso2=record.iso2,
        iso3=record.iso3,
        phone_code=normalize_phone_code(record.phone_code or "") or None,
        capital=record.capital,
        currency=record.currency,
        currency_name=record.currency_name,
        currency_symbol=record.currency_symbol,
        region=record.region,
        subregion=record.subregion,
        population=record.population,
        numeric_code=record.numeric_code,
        tld=record.tld,
        native_name=record.native,
        nationality=record.nationality,
        emoji=record.emoji,
        latitude=record.latitude,
        longitude=record.longitude,
        timezones=tuple(
            Timezone(
                zone_name=tz.zone_name,
                gmt_offset=tz.gmt_offset,
                gmt_offset_name=tz.gmt_offset_name,
                abbreviation=tz.abbreviation,
                tz_name=tz.tz_name,
            )
            for tz in record.timezones
        ),
        translations=record.translations,
        _states=tuple(states),
    )


def _build_state(
    country_id: int,
    iso2: str,
    record: StateRecord,
    alias_table: dict[AliasKey, list[str]],
    matched: set[AliasKey],
    state_ids: Iterator[int],
    city_ids: Iterator[int],
) -> State:
    state_id = next(state_ids)
    cities = tuple(
        _build_city(
            next(city_ids), state_id, country_id, iso2, record.name, city, alias_table, matched
        )
        for city in record.cities
    )
    return State(
        id=state_id,
        name=record.name,
        country_id=country_id,
        code=record.code,
        full_code=record.full_code,
        native_name=record.native,
        latitude=record.latitude,
        longitude=record.longitude,
        _cities=cities,
    )


def _build_city(
    city_id: int,
    state_id: int,
    country_id: int,
    iso2: str,
    state_name: str,
    record: CityRecord,
    alias_table: dict[AliasKey, list[str]],
    matched: set[AliasKey],
) -> City:
    key = (iso2, state_name, record.name)
    extra = alias_table.get(key, ())
    if key in alias_table:
        matched.add(key)
    return City(
        id=city_id,
        name=record.name,
        state_id=state_id,
        country_id=country_id,
        latitude=record.latitude,
        longitude=record.longitude,
        timezone=record.timezone,
        aliases=_merge_aliases(record.aliases, extra),
    )
