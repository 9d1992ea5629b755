"""Raw records produced by the dataset decoder.

Records mirror the countries+states+cities source schema field for field. No
cross-entity resolution happens here: a country record simply carries its
state records, which carry their city records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import DecodeError


def _require_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DecodeError("Expected non-empty string", record=path)
    return value.strip()


def _opt_str(value: Any, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeError("Expected string or null", record=path)
    stripped = value.strip()
    return stripped or None


def _opt_int(value: Any, path: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise DecodeError("Expected integer or null", record=path)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        return int(value.strip())
    raise DecodeError("Expected integer or null", record=path)


def _coordinate(value: Any, path: str, limit: float) -> float | None:
    """Parse a latitude/longitude given as number or numeric string.

    Unparseable strings yield ``None``; parsed values outside ``[-limit, limit]``
    are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        raise DecodeError("Expected coordinate as number or string", record=path)
    if math.isnan(parsed):
        return None
    if parsed < -limit or parsed > limit:
        raise DecodeError(f"Coordinate {parsed} outside [-{limit:g}, {limit:g}]", record=path)
    return parsed


def _list(value: Any, path: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError("Expected list", record=path)
    return value


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DecodeError("Expected mapping", record=path)
    return value


def _alias_list(value: Any, path: str) -> tuple[str, ...]:
    aliases: list[str] = []
    for idx, item in enumerate(_list(value, path)):
        if not isinstance(item, str):
            raise DecodeError("Expected string alias", record=f"{path}[{idx}]")
        if item.strip():
            aliases.append(item.strip())
    return tuple(aliases)


@dataclass(frozen=True, slots=True)
class TimezoneRecord:
    zone_name: str | None = None
    gmt_offset: int | None = None
    gmt_offset_name: str | None = None
    abbreviation: str | None = None
    tz_name: str | None = None

    @classmethod
    def from_mapping(cls, data: Any, path: str) -> TimezoneRecord:
        raw = _mapping(data, path)
        return cls(
            zone_name=_opt_str(raw.get("zoneName"), f"{path}.zoneName"),
            gmt_offset=_opt_int(raw.get("gmtOffset"), f"{path}.gmtOffset"),
            gmt_offset_name=_opt_str(raw.get("gmtOffsetName"), f"{path}.gmtOffsetName"),
            abbreviation=_opt_str(raw.get("abbreviation"), f"{path}.abbreviation"),
            tz_name=_opt_str(raw.get("tzName"), f"{path}.tzName"),
        )


@dataclass(frozen=True, slots=True)
class CityRecord:
    name: str
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    aliases: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Any, path: str) -> CityRecord:
        raw = _mapping(data, path)
        return cls(
            name=_require_str(raw.get("name"), f"{path}.name"),
            latitude=_coordinate(raw.get("latitude"), f"{path}.latitude", 90.0),
            longitude=_coordinate(raw.get("longitude"), f"{path}.longitude", 180.0),
            timezone=_opt_str(raw.get("timezone"), f"{path}.timezone"),
            aliases=_alias_list(raw.get("aliases"), f"{path}.aliases"),
        )


@dataclass(frozen=True, slots=True)
class StateRecord:
    name: str
    code: str | None = None
    full_code: str | None = None
    native: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    cities: tuple[CityRecord, ...] = ()

    @classmethod
    def from_mapping(cls, data: Any, path: str) -> StateRecord:
        raw = _mapping(data, path)
        cities = tuple(
            CityRecord.from_mapping(item, f"{path}.cities[{idx}]")
            for idx, item in enumerate(_list(raw.get("cities"), f"{path}.cities"))
        )
        return cls(
            name=_require_str(raw.get("name"), f"{path}.name"),
            code=_opt_str(raw.get("iso2"), f"{path}.iso2"),
            full_code=_opt_str(raw.get("iso3166_2"), f"{path}.iso3166_2"),
            native=_opt_str(raw.get("native"), f"{path}.native"),
            latitude=_coordinate(raw.get("latitude"), f"{path}.latitude", 90.0),
            longitude=_coordinate(raw.get("longitude"), f"{path}.longitude", 180.0),
            cities=cities,
        )


@dataclass(frozen=True, slots=True)
class CountryRecord:
    name: str
    iso2: str
    iso3: str
    numeric_code: str | None = None
    phone_code: str | None = None
    capital: str | None = None
    currency: str | None = None
    currency_name: str | None = None
    currency_symbol: str | None = None
    tld: str | None = None
    native: str | None = None
    nationality: str | None = None
    region: str | None = None
    subregion: str | None = None
    population: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    emoji: str | None = None
    timezones: tuple[TimezoneRecord, ...] = ()
    translations: tuple[tuple[str, str], ...] = ()
    states: tuple[StateRecord, ...] = ()

    @classmethod
    def from_mapping(cls, data: Any, path: str) -> CountryRecord:
        raw = _mapping(data, path)

        translations_raw = raw.get("translations")
        translations: list[tuple[str, str]] = []
        if translations_raw is not None:
            for lang, value in _mapping(translations_raw, f"{path}.translations").items():
                text = _opt_str(value, f"{path}.translations.{lang}")
                if text is not None:
                    translations.append((str(lang), text))
        translations.sort()

        timezones = tuple(
            TimezoneRecord.from_mapping(item, f"{path}.timezones[{idx}]")
            for idx, item in enumerate(_list(raw.get("timezones"), f"{path}.timezones"))
        )
        states = tuple(
            StateRecord.from_mapping(item, f"{path}.states[{idx}]")
            for idx, item in enumerate(_list(raw.get("states"), f"{path}.states"))
        )
        return cls(
            name=_require_str(raw.get("name"), f"{path}.name"),
            iso2=_require_str(raw.get("iso2"), f"{path}.iso2"),
            iso3=_require_str(raw.get("iso3"), f"{path}.iso3"),
            numeric_code=_opt_str(raw.get("numeric_code"), f"{path}.numeric_code"),
            phone_code=_opt_str(raw.get("phonecode"), f"{path}.phonecode"),
            capital=_opt_str(raw.get("capital"), f"{path}.capital"),
            currency=_opt_str(raw.get("currency"), f"{path}.currency"),
            currency_name=_opt_str(raw.get("currency_name"), f"{path}.currency_name"),
            currency_symbol=_opt_str(raw.get("currency_symbol"), f"{path}.currency_symbol"),
            tld=_opt_str(raw.get("tld"), f"{path}.tld"),
            native=_opt_str(raw.get("native"), f"{path}.native"),
            nationality=_opt_str(raw.get("nationality"), f"{path}.nationality"),
            region=_opt_str(raw.get("region"), f"{path}.region"),
            subregion=_opt_str(raw.get("subregion"), f"{path}.subregion"),
            population=_opt_int(raw.get("population"), f"{path}.population"),
            latitude=_coordinate(raw.get("latitude"), f"{path}.latitude", 90.0),
            longitude=_coordinate(raw.get("longitude"), f"{path}.longitude", 180.0),
            emoji=_opt_str(raw.get("emoji"), f"{path}.emoji"),
            timezones=timezones,
            translations=tuple(translations),
            states=states,
        )


@dataclass(frozen=True, slots=True)
class AliasRecord:
    """Alternate names for one city, addressed by country, state and city name."""

    iso2: str
    state: str
    city: str
    aliases: tuple[str, ...]

    @classmethod
    def from_mapping(cls, iso2: str, data: Any, path: str) -> AliasRecord:
        raw = _mapping(data, path)
        return cls(
            iso2=iso2,
            state=_require_str(raw.get("state"), f"{path}.state"),
            city=_require_str(raw.get("city"), f"{path}.city"),
            aliases=_alias_list(raw.get("aliases"), f"{path}.aliases"),
        )


@dataclass(frozen=True, slots=True)
class RawDataset:
    """Decoder output: country records in source order plus optional alias entries."""

    countries: tuple[CountryRecord, ...]
    aliases: tuple[AliasRecord, ...] = ()
    source_format: str = "json"

    def with_aliases(self, aliases: tuple[AliasRecord, ...]) -> RawDataset:
        return RawDataset(
            countries=self.countries,
            aliases=self.aliases + aliases,
            source_format=self.source_format,
        )
