"""Dataset sources.

A backend owns one storage configuration and produces decoded raw records from
it. Its ``cache_key`` identifies that configuration, so two backends with the
same key share one built database in the load cache.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Hashable, Iterable

from .compiler import binary_cache_path, compile_json, is_cache_fresh
from .decode import SUPPORTED_FORMATS, decode_alias_table, decode_dataset, detect_format, gunzip_if_needed
from .errors import DecodeError, UnsupportedVersion
from .records import RawDataset
from .util import sha256_bytes, write_bytes

DATA_DIR = Path(__file__).resolve().parent / "data"
EMBEDDED_DATASET = DATA_DIR / "geodb.bin"

_LOGGER = logging.getLogger("geodb.backends")


def _filter_key(iso2_filter: Iterable[str] | None) -> tuple[str, ...] | None:
    if iso2_filter is None:
        return None
    if isinstance(iso2_filter, str):
        raise ValueError("iso2_filter must be a collection of ISO2 codes, not a single string")
    return tuple(sorted({item.strip() for item in iso2_filter if item and item.strip()}))


def _check_format(fmt: str) -> str:
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unknown dataset format '{fmt}', expected one of: {', '.join(SUPPORTED_FORMATS)}")
    return fmt


class GeoBackend(ABC):
    """Capability: produce a decoded dataset from the backend's own configuration."""

    def __init__(self, iso2_filter: Iterable[str] | None = None) -> None:
        self.iso2_filter = _filter_key(iso2_filter)

    @property
    @abstractmethod
    def cache_key(self) -> Hashable:
        """Hashable identity of this configuration."""

    @abstractmethod
    def load_raw(self) -> RawDataset:
        """Read and decode the dataset. Performs no graph or index construction."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.cache_key!r})"


class EmbeddedBackend(GeoBackend):
    """Standard backend: the compiled dataset shipped inside the package."""

    def __init__(self, iso2_filter: Iterable[str] | None = None) -> None:
        super().__init__(iso2_filter)

    @property
    def cache_key(self) -> Hashable:
        return ("embedded", self.iso2_filter)

    def load_raw(self) -> RawDataset:
        data = EMBEDDED_DATASET.read_bytes()
        _LOGGER.debug("Read embedded dataset %s (%d bytes)", EMBEDDED_DATASET.name, len(data))
        return decode_dataset(data, "binary")


class PathBackend(GeoBackend):
    """Dataset file on disk: compiled binary or JSON, optionally gzip'd.

    With ``binary_cache`` a JSON source is compiled once to a ``.bin`` file
    beside it and later loads read that file while it is not older than the
    source. A stale, corrupt or unwritable cache falls back to the source.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        fmt: str = "auto",
        alias_path: str | Path | None = None,
        iso2_filter: Iterable[str] | None = None,
        binary_cache: bool = False,
    ) -> None:
        super().__init__(iso2_filter)
        self.path = Path(path).resolve()
        self.fmt = _check_format(fmt)
        self.alias_path = Path(alias_path).resolve() if alias_path is not None else None
        self.binary_cache = binary_cache

    @property
    def cache_key(self) -> Hashable:
        alias = str(self.alias_path) if self.alias_path is not None else None
        return ("path", str(self.path), self.fmt, alias, self.iso2_filter)

    def load_raw(self) -> RawDataset:
        if not self.path.exists():
            raise FileNotFoundError(f"Dataset file not found: {self.path}")
        use_cache = self.binary_cache and self.fmt != "binary"
        raw = self._read_cached() if use_cache else None
        if raw is None:
            data = self.path.read_bytes()
            _LOGGER.debug("Read dataset %s (%d bytes)", self.path, len(data))
            if use_cache and detect_format(gunzip_if_needed(data)) == "json":
                raw = self._compile(data)
            else:
                raw = decode_dataset(data, self.fmt)
        if self.alias_path is None:
            return raw
        if not self.alias_path.exists():
            raise FileNotFoundError(f"Alias table not found: {self.alias_path}")
        aliases = decode_alias_table(self.alias_path.read_bytes())
        _LOGGER.debug("Loaded %d alias entries from %s", len(aliases), self.alias_path)
        return raw.with_aliases(aliases)

    def _read_cached(self) -> RawDataset | None:
        cache = binary_cache_path(self.path)
        if not is_cache_fresh(self.path, cache):
            return None
        try:
            raw = decode_dataset(cache.read_bytes(), "binary")
        except (DecodeError, UnsupportedVersion) as exc:
            _LOGGER.warning("Ignoring unreadable binary cache %s: %s", cache, exc)
            return None
        _LOGGER.debug("Read binary cache %s", cache)
        return raw

    def _compile(self, data: bytes) -> RawDataset:
        blob, raw = compile_json(data)
        cache = binary_cache_path(self.path)
        try:
            write_bytes(cache, blob)
        except OSError as exc:
            _LOGGER.warning("Could not write binary cache %s: %s", cache, exc)
        else:
            _LOGGER.info("Wrote binary cache %s (%d bytes)", cache, len(blob))
        return raw


class MemoryBackend(GeoBackend):
    """Dataset held in memory, e.g. bytes fetched by the caller or built in tests."""

    def __init__(
        self,
        data: bytes,
        *,
        fmt: str = "auto",
        alias_data: bytes | None = None,
        iso2_filter: Iterable[str] | None = None,
    ) -> None:
        super().__init__(iso2_filter)
        self.data = bytes(data)
        self.fmt = _check_format(fmt)
        self.alias_data = bytes(alias_data) if alias_data is not None else None
        self._digest = sha256_bytes(self.data)
        self._alias_digest = sha256_bytes(self.alias_data) if self.alias_data is not None else None

    @property
    def cache_key(self) -> Hashable:
        return ("memory", self._digest, self.fmt, self._alias_digest, self.iso2_filter)

    def load_raw(self) -> RawDataset:
        raw = decode_dataset(self.data, self.fmt)
        if self.alias_data is None:
            return raw
        return raw.with_aliases(decode_alias_table(self.alias_data))
