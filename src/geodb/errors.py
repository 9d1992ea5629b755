"""Error taxonomy raised while loading a dataset."""

from __future__ import annotations


class GeoDbError(Exception):
    """Base class for dataset load failures."""


class DecodeError(GeoDbError, ValueError):
    """Raised when a byte stream cannot be decoded into raw records."""

    def __init__(self, message: str, *, offset: int | None = None, record: str | None = None) -> None:
        self.offset = offset
        self.record = record
        location: list[str] = []
        if offset is not None:
            location.append(f"offset {offset}")
        if record is not None:
            location.append(f"record {record}")
        if location:
            message = f"{message} (at {', '.join(location)})"
        super().__init__(message)


class UnsupportedVersion(GeoDbError):
    """Raised when the dataset schema version is not the one this reader understands."""

    def __init__(self, expected: int, found: object) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"Unsupported dataset version: expected {expected}, found {found!r}")


class DuplicateKey(GeoDbError, ValueError):
    """Raised when a unique code appears twice while building the graph."""

    def __init__(self, kind: str, key: str, *, scope: str | None = None) -> None:
        self.kind = kind
        self.key = key
        self.scope = scope
        where = f" in {scope}" if scope else ""
        super().__init__(f"Duplicate {kind} '{key}'{where}")
