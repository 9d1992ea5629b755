"""Dataset decoding: byte stream to raw record tree."""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from typing import Any, Mapping

import yaml

from . import binary
from .errors import DecodeError, UnsupportedVersion
from .records import AliasRecord, CountryRecord, RawDataset

GZIP_MAGIC = b"\x1f\x8b"
SUPPORTED_FORMATS = ("auto", "binary", "json")
JSON_SCHEMA_VERSION = 1

_LOGGER = logging.getLogger("geodb.decode")


def gunzip_if_needed(data: bytes) -> bytes:
    if data[:2] != GZIP_MAGIC:
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"Corrupt gzip stream: {exc}", offset=0) from exc


def detect_format(data: bytes) -> str:
    return "binary" if binary.is_binary(data) else "json"


def decode_dataset(data: bytes, fmt: str = "auto") -> RawDataset:
    """Decode a compiled binary or JSON payload (optionally gzip'd) into raw records."""
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unknown dataset format '{fmt}', expected one of: {', '.join(SUPPORTED_FORMATS)}")
    payload = gunzip_if_needed(data)
    resolved = detect_format(payload) if fmt == "auto" else fmt
    _LOGGER.debug("Decoding %d byte %s payload", len(payload), resolved)
    if resolved == "binary":
        root = binary.decode_binary(payload)
    else:
        root = _load_json(payload)
    return dataset_from_root(root, resolved)


def decode_json_root(data: bytes) -> Any:
    """Parse a JSON payload (optionally gzip'd) into plain values without building records."""
    return _load_json(gunzip_if_needed(data))


def decode_alias_table(data: bytes | str) -> tuple[AliasRecord, ...]:
    """Parse an alias table keyed by ISO2: ``{ISO2: [{state, city, aliases}, ...]}``.

    YAML and JSON are both accepted.
    """
    try:
        raw = yaml.safe_load(data)
    except RecursionError as exc:
        raise DecodeError("Malformed alias table: nesting too deep", offset=0) from exc
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise DecodeError(
            f"Malformed alias table: {exc}",
            offset=mark.index if mark is not None else None,
        ) from exc
    if raw is None:
        return ()
    return _alias_records(raw, "aliases")


def _load_json(payload: bytes) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Malformed JSON: {exc.msg}", offset=exc.pos) from exc
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Invalid text encoding: {exc.reason}", offset=exc.start) from exc
    except RecursionError as exc:
        raise DecodeError("Nesting too deep", offset=0) from exc


def dataset_from_root(root: Any, source_format: str) -> RawDataset:
    """Parse a decoded list or ``{version, countries, aliases}`` mapping into records."""
    aliases: tuple[AliasRecord, ...] = ()
    if isinstance(root, Mapping):
        version = root.get("version")
        if version is not None and (
            isinstance(version, bool) or not isinstance(version, int) or version != JSON_SCHEMA_VERSION
        ):
            raise UnsupportedVersion(JSON_SCHEMA_VERSION, version)
        if "aliases" in root and root["aliases"] is not None:
            aliases = _alias_records(root["aliases"], "aliases")
        countries_raw = root.get("countries")
    else:
        countries_raw = root
    if not isinstance(countries_raw, list):
        raise DecodeError("Expected a list of countries", record="countries")
    countries = tuple(
        CountryRecord.from_mapping(item, f"countries[{idx}]")
        for idx, item in enumerate(countries_raw)
    )
    return RawDataset(countries=countries, aliases=aliases, source_format=source_format)


def _alias_records(raw: Any, path: str) -> tuple[AliasRecord, ...]:
    if not isinstance(raw, Mapping):
        raise DecodeError("Expected mapping keyed by ISO2", record=path)
    out: list[AliasRecord] = []
    for iso2_raw, entries in raw.items():
        if not isinstance(iso2_raw, str) or not iso2_raw.strip():
            raise DecodeError("Alias table key must be an ISO2 string", record=path)
        iso2 = iso2_raw.strip()
        if not isinstance(entries, list):
            raise DecodeError("Expected list of alias entries", record=f"{path}.{iso2}")
        for idx, entry in enumerate(entries):
            out.append(AliasRecord.from_mapping(iso2, entry, f"{path}.{iso2}[{idx}]"))
    return tuple(out)
