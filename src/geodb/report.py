"""Dataset health report for a loaded database."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .db import GeoDb
from .models import DbStats

MAX_LISTED = 10


@dataclass(slots=True)
class DatasetReport:
    stats: DbStats | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def _preview(items: list[str]) -> str:
    shown = ", ".join(items[:MAX_LISTED])
    if len(items) > MAX_LISTED:
        shown += f", ... (+{len(items) - MAX_LISTED} more)"
    return shown


def build_report(db: GeoDb) -> DatasetReport:
    """Summarize coverage gaps in a loaded dataset.

    Structural invariants are enforced at build time; this only reports data
    that is legal but likely incomplete.
    """
    report = DatasetReport(stats=db.stats())
    stats = report.stats
    report.add_info(
        f"Loaded {stats.countries} countries, {stats.states} states, {stats.cities} cities"
    )
    if stats.countries == 0:
        report.add_error("Dataset contains no countries")
        return report

    without_states = [country.iso2 for country in db.countries() if not country.states()]
    if without_states:
        report.add_warning(
            f"{len(without_states)} countries have no states: {_preview(without_states)}"
        )

    without_cities = [
        f"{country.iso2}/{state.name}"
        for country in db.countries()
        for state in country.states()
        if not state.cities()
    ]
    if without_cities:
        report.add_warning(f"{len(without_cities)} states have no cities: {_preview(without_cities)}")

    without_phone = [country.iso2 for country in db.countries() if not country.phone_code]
    if without_phone:
        report.add_warning(
            f"{len(without_phone)} countries have no phone code: {_preview(without_phone)}"
        )

    missing_coords = 0
    alias_count = 0
    for location in db.iter_cities():
        if not location.city.has_coordinates:
            missing_coords += 1
        alias_count += len(location.city.aliases)
    if missing_coords:
        report.add_warning(f"{missing_coords} cities have no coordinates")
    report.add_info(f"{alias_count} city aliases indexed")

    shared_names = sorted(
        {
            alias
            for location in db.iter_cities()
            for alias in location.city.aliases
            if len(db.locate_cities(alias)) > 1
        }
    )
    if shared_names:
        report.add_info(
            f"{len(shared_names)} aliases resolve to several cities: {_preview(shared_names)}"
        )
    return report


def format_report_lines(report: DatasetReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Dataset report completed with no errors."
