"""Compile JSON datasets into the binary layout and manage compiled cache files."""

from __future__ import annotations

import gzip
import logging
from pathlib import Path

from .binary import encode_binary
from .decode import dataset_from_root, decode_json_root, detect_format, gunzip_if_needed
from .errors import DecodeError
from .records import RawDataset
from .util import write_bytes

BINARY_CACHE_SUFFIX = "bin"

_LOGGER = logging.getLogger("geodb.compiler")


def binary_cache_path(source: Path) -> Path:
    """``countries.json.gz`` -> ``countries.json.gz.bin`` beside the source."""
    return source.with_name(f"{source.name}.{BINARY_CACHE_SUFFIX}")


def is_cache_fresh(source: Path, cache: Path) -> bool:
    if not cache.exists():
        return False
    return cache.stat().st_mtime >= source.stat().st_mtime


def compile_json(data: bytes) -> tuple[bytes, RawDataset]:
    """Validate a JSON payload and return its binary encoding with the parsed records.

    The records come from the JSON itself, so a payload that would not load
    is never compiled.
    """
    if detect_format(gunzip_if_needed(data)) == "binary":
        raise DecodeError("Payload is already in the binary layout", offset=0)
    root = decode_json_root(data)
    raw = dataset_from_root(root, "json")
    try:
        blob = encode_binary(root)
    except ValueError as exc:
        raise DecodeError(f"Cannot compile dataset: {exc}") from exc
    return blob, raw


def compile_dataset(source: str | Path, target: str | Path | None = None, *, compress: bool = False) -> Path:
    """Compile a JSON dataset file (optionally gzip'd) into a binary dataset file.

    ``target`` defaults to :func:`binary_cache_path` of the source.
    """
    src = Path(source).resolve()
    if not src.exists():
        raise FileNotFoundError(f"Dataset file not found: {src}")
    dst = Path(target).resolve() if target is not None else binary_cache_path(src)

    blob, raw = compile_json(src.read_bytes())
    if compress:
        blob = gzip.compress(blob)
    write_bytes(dst, blob)
    _LOGGER.info(
        "Compiled %s -> %s: %d countries, %d bytes",
        src.name,
        dst,
        len(raw.countries),
        len(blob),
    )
    return dst
