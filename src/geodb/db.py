"""Database handle and query API."""

from __future__ import annotations

import logging
import time
from typing import Hashable, Iterator

from .backends import EmbeddedBackend, GeoBackend
from .builder import build_graph
from .cache import LoadCache, default_cache
from .indexes import GeoIndexes, build_indexes, normalize_phone_code
from .models import City, CityLocation, Country, DbStats, State
from .search import SearchHit, smart_search

_LOGGER = logging.getLogger("geodb.db")


class GeoDb:
    """Read-only view over one built graph and its indexes.

    Instances are only produced fully built; they never change afterwards and
    may be shared between threads without locking. Lookups never raise: a
    missing key yields ``None`` or an empty tuple.
    """

    __slots__ = ("_countries", "_indexes", "_source")

    def __init__(self, countries: tuple[Country, ...], indexes: GeoIndexes, source: Hashable) -> None:
        self._countries = countries
        self._indexes = indexes
        self._source = source

    @classmethod
    def from_backend(cls, backend: GeoBackend) -> GeoDb:
        """Decode, build and index without consulting any cache."""
        started = time.perf_counter()
        raw = backend.load_raw()
        countries = build_graph(raw, iso2_filter=backend.iso2_filter)
        indexes = build_indexes(countries)
        db = cls(countries, indexes, backend.cache_key)
        stats = db.stats()
        _LOGGER.info(
            "Built geodb from %s: %d countries, %d states, %d cities in %.1f ms",
            raw.source_format,
            stats.countries,
            stats.states,
            stats.cities,
            (time.perf_counter() - started) * 1000.0,
        )
        return db

    @classmethod
    def load(cls, backend: GeoBackend | None = None, *, cache: LoadCache | None = None) -> GeoDb:
        """Return the shared database for ``backend`` (default: embedded), building it once."""
        backend = backend if backend is not None else EmbeddedBackend()
        cache = cache if cache is not None else default_cache()
        return cache.get_or_build(backend, cls.from_backend)

    @classmethod
    def reload(cls, backend: GeoBackend | None = None, *, cache: LoadCache | None = None) -> GeoDb:
        """Drop the cached entry for ``backend`` and build it again."""
        backend = backend if backend is not None else EmbeddedBackend()
        cls.clear_cache(backend, cache=cache)
        return cls.load(backend, cache=cache)

    @staticmethod
    def clear_cache(backend: GeoBackend | None = None, *, cache: LoadCache | None = None) -> None:
        (cache if cache is not None else default_cache()).clear(backend)

    @property
    def source(self) -> Hashable:
        """Cache key of the backend this database was built from."""
        return self._source

    def countries(self) -> tuple[Country, ...]:
        return self._countries

    def find_country_by_iso2(self, code: str) -> Country | None:
        return self._indexes.by_iso2.get(code)

    def find_country_by_iso3(self, code: str) -> Country | None:
        return self._indexes.by_iso3.get(code)

    def find_country_by_code(self, code: str) -> Country | None:
        """ISO2 lookup first, then ISO3; surrounding whitespace is ignored."""
        code = code.strip()
        return self._indexes.by_iso2.get(code) or self._indexes.by_iso3.get(code)

    def find_countries_by_phone_code(self, code: str) -> tuple[Country, ...]:
        """Countries sharing a dialing code, e.g. ``"1"`` or ``"+1"``, in dataset order."""
        return self._indexes.by_phone_code.get(normalize_phone_code(code), ())

    def find_cities_by_name(self, name: str) -> tuple[City, ...]:
        """Cities whose canonical name or alias equals ``name`` exactly."""
        return tuple(location.city for location in self.locate_cities(name))

    def locate_cities(self, name: str) -> tuple[CityLocation, ...]:
        return self._indexes.by_city_name.get(name, ())

    def find_countries_by_substring(self, text: str) -> tuple[Country, ...]:
        """Countries whose name contains ``text`` (case-sensitive), in dataset order."""
        if not text:
            return ()
        return tuple(country for country in self._countries if text in country.name)

    def find_states_by_substring(self, text: str) -> tuple[tuple[State, Country], ...]:
        if not text:
            return ()
        return tuple(
            (state, self._countries[state.country_id])
            for state in self._indexes.states
            if text in state.name
        )

    def find_cities_by_substring(self, text: str) -> tuple[CityLocation, ...]:
        """Cities whose name or any alias contains ``text``, each city once."""
        if not text:
            return ()
        return tuple(
            location
            for location in self._indexes.locations
            if any(text in name for name in location.city.names())
        )

    def smart_search(self, query: str) -> tuple[SearchHit, ...]:
        """Ranked hits across countries, states, cities and dialing codes.

        Highest score first; equal scores keep dataset order.
        """
        return smart_search(self._countries, self._indexes, query)

    def iter_cities(self) -> Iterator[CityLocation]:
        return iter(self._indexes.locations)

    def stats(self) -> DbStats:
        return DbStats(
            countries=len(self._countries),
            states=len(self._indexes.states),
            cities=len(self._indexes.locations),
        )

    def __repr__(self) -> str:
        stats = self.stats()
        return (
            f"GeoDb(source={self._source!r}, countries={stats.countries}, "
            f"states={stats.states}, cities={stats.cities})"
        )
