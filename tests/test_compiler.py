from __future__ import annotations

import gzip
import logging
import os
from pathlib import Path

import pytest

from conftest import DATASET_BIN, DATASET_JSON
from geodb.backends import PathBackend
from geodb.compiler import binary_cache_path, compile_dataset, is_cache_fresh
from geodb.decode import decode_dataset
from geodb.errors import DecodeError


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "countries.json"
    path.write_bytes(DATASET_JSON.read_bytes())
    return path


def _age(path: Path, seconds: float) -> None:
    mtime = path.stat().st_mtime - seconds
    os.utime(path, (mtime, mtime))


def test_compile_to_explicit_target(source: Path, tmp_path: Path) -> None:
    target = compile_dataset(source, tmp_path / "out" / "geodb.bin")
    assert target == (tmp_path / "out" / "geodb.bin").resolve()
    compiled = decode_dataset(target.read_bytes())
    assert compiled.source_format == "binary"
    assert compiled.countries == decode_dataset(DATASET_JSON.read_bytes()).countries
    assert not list((tmp_path / "out").glob(".*.tmp"))


def test_compile_defaults_beside_source(source: Path) -> None:
    target = compile_dataset(source)
    assert target == binary_cache_path(source.resolve())
    assert target.name == "countries.json.bin"
    assert is_cache_fresh(source, target)


def test_compile_gzip_output(source: Path, tmp_path: Path) -> None:
    target = compile_dataset(source, tmp_path / "geodb.bin.gz", compress=True)
    data = target.read_bytes()
    assert data[:2] == b"\x1f\x8b"
    assert decode_dataset(gzip.decompress(data)).source_format == "binary"


def test_compile_rejects_missing_and_binary_sources(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Dataset file not found"):
        compile_dataset(tmp_path / "absent.json")
    binary = tmp_path / "geodb.bin"
    binary.write_bytes(DATASET_BIN.read_bytes())
    with pytest.raises(DecodeError, match="already in the binary layout"):
        compile_dataset(binary, tmp_path / "again.bin")


def test_compile_rejects_invalid_json(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text('[{"name": "A"}]', encoding="utf-8")
    with pytest.raises(DecodeError):
        compile_dataset(broken)
    assert not binary_cache_path(broken.resolve()).exists()


def test_binary_cache_is_written_then_read(source: Path) -> None:
    backend = PathBackend(source, binary_cache=True)
    first = backend.load_raw()
    assert first.source_format == "json"
    assert binary_cache_path(source).exists()
    second = backend.load_raw()
    assert second.source_format == "binary"
    assert second.countries == first.countries


def test_binary_cache_is_off_by_default(source: Path) -> None:
    PathBackend(source).load_raw()
    assert not binary_cache_path(source).exists()


def test_stale_binary_cache_is_rebuilt(source: Path) -> None:
    backend = PathBackend(source, binary_cache=True)
    backend.load_raw()
    cache_file = binary_cache_path(source)
    _age(cache_file, 60)
    assert not is_cache_fresh(source, cache_file)
    assert backend.load_raw().source_format == "json"
    assert is_cache_fresh(source, cache_file)
    assert backend.load_raw().source_format == "binary"


def test_corrupt_binary_cache_falls_back(source: Path, caplog: pytest.LogCaptureFixture) -> None:
    cache_file = binary_cache_path(source)
    cache_file.write_bytes(b"GEODBIN garbage")
    _age(source, 60)
    backend = PathBackend(source, binary_cache=True)
    with caplog.at_level(logging.WARNING, logger="geodb.backends"):
        raw = backend.load_raw()
    assert raw.source_format == "json"
    assert any("unreadable binary cache" in record.getMessage() for record in caplog.records)
    assert backend.load_raw().source_format == "binary"


def test_binary_cache_does_not_change_the_cache_key(source: Path) -> None:
    assert PathBackend(source, binary_cache=True).cache_key == PathBackend(source).cache_key
