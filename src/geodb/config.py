"""Typed configuration loader for ``geodb.yaml``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .backends import EmbeddedBackend, GeoBackend, PathBackend
from .decode import SUPPORTED_FORMATS
from .util import setup_logging

DATASET_SOURCES = ("embedded", "path")


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class DatasetConfig:
    source: str
    path: Path | None
    format: str
    alias_table: Path | None
    iso2_filter: tuple[str, ...] | None
    binary_cache: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> DatasetConfig:
        source = _str(raw.get("source", "embedded"), "dataset.source").casefold()
        if source not in DATASET_SOURCES:
            raise ValueError("dataset.source must be one of: " + ", ".join(DATASET_SOURCES))
        fmt = _str(raw.get("format", "auto"), "dataset.format").casefold()
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError("dataset.format must be one of: " + ", ".join(SUPPORTED_FORMATS))

        path_raw = raw.get("path")
        path = _path_from_cfg(path_raw, "dataset.path", root_dir) if path_raw is not None else None
        if source == "path" and path is None:
            raise ValueError("dataset.path is required when dataset.source is 'path'")

        alias_raw = raw.get("alias_table")
        alias_table = (
            _path_from_cfg(alias_raw, "dataset.alias_table", root_dir) if alias_raw is not None else None
        )
        if source == "embedded" and alias_table is not None:
            raise ValueError("dataset.alias_table is only supported with dataset.source 'path'")

        filter_raw = raw.get("iso2_filter")
        iso2_filter = _str_list(filter_raw, "dataset.iso2_filter") if filter_raw is not None else None

        binary_cache = _bool(raw.get("binary_cache", False), "dataset.binary_cache")
        if source == "embedded" and binary_cache:
            raise ValueError("dataset.binary_cache is only supported with dataset.source 'path'")

        return cls(
            source=source,
            path=path,
            format=fmt,
            alias_table=alias_table,
            iso2_filter=iso2_filter,
            binary_cache=binary_cache,
        )

    @classmethod
    def default(cls) -> DatasetConfig:
        return cls(source="embedded", path=None, format="auto", alias_table=None, iso2_filter=None)


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    verbose: bool
    log_file: Path | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> LoggingConfig:
        log_file_raw = raw.get("log_file")
        return cls(
            verbose=_bool(raw.get("verbose", False), "logging.verbose"),
            log_file=(
                _path_from_cfg(log_file_raw, "logging.log_file", root_dir)
                if log_file_raw is not None
                else None
            ),
        )

    @classmethod
    def default(cls) -> LoggingConfig:
        return cls(verbose=False, log_file=None)


@dataclass(frozen=True, slots=True)
class GeoDbConfig:
    source_path: Path
    dataset: DatasetConfig
    logging: LoggingConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> GeoDbConfig:
        root_dir = source_path.parent.resolve()
        dataset_raw = raw.get("dataset")
        logging_raw = raw.get("logging")
        return cls(
            source_path=source_path.resolve(),
            dataset=(
                DatasetConfig.default()
                if dataset_raw is None
                else DatasetConfig.from_mapping(_mapping(dataset_raw, "dataset"), root_dir)
            ),
            logging=(
                LoggingConfig.default()
                if logging_raw is None
                else LoggingConfig.from_mapping(_mapping(logging_raw, "logging"), root_dir)
            ),
        )

    def backend(self) -> GeoBackend:
        """Build the backend this configuration describes."""
        if self.dataset.source == "embedded":
            return EmbeddedBackend(iso2_filter=self.dataset.iso2_filter)
        if self.dataset.path is None:
            raise ValueError("dataset.path is required when dataset.source is 'path'")
        return PathBackend(
            self.dataset.path,
            fmt=self.dataset.format,
            alias_path=self.dataset.alias_table,
            iso2_filter=self.dataset.iso2_filter,
            binary_cache=self.dataset.binary_cache,
        )

    def apply_logging(self) -> None:
        setup_logging(self.logging.log_file, verbose=self.logging.verbose)


def load_config(path: str | Path) -> GeoDbConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return GeoDbConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
