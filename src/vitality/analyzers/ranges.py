"""Scoring range tables: loading from YAML and point lookup."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pydantic
import yaml

from vitality.exceptions import ConfigError
from vitality.models.schemas import Range, ScoringTable, TableName

if TYPE_CHECKING:
    from vitality.monitoring import MetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_RANGES_FILE = Path(__file__).resolve().parent.parent / "data" / "ranges.yml"


def lookup(table: ScoringTable | None, value: float) -> float:
    """Return the points of the first range containing ``value``, else 0."""
    if table is None:
        return 0.0
    for r in table.ranges:
        if r.contains(value):
            return r.points
    return 0.0


class RangeTable:
    """The four scoring tables of one configuration, immutable once loaded.

    Lookups never fail: a value outside every range of a table, or a table
    name the configuration does not define, scores 0. The two cases are
    logged (and counted, when a metrics collector is passed) separately so a
    misspelled table name does not pass for an ordinary miss.
    """

    def __init__(self, tables: Mapping[TableName, ScoringTable], source: str | None = None) -> None:
        self._tables: dict[TableName, ScoringTable] = dict(tables)
        self.source = source

    @property
    def tables(self) -> dict[TableName, ScoringTable]:
        return dict(self._tables)

    @property
    def names(self) -> list[str]:
        return [name.value for name in self._tables]

    def __contains__(self, name: object) -> bool:
        return _table_name(name) in self._tables

    def __getitem__(self, name: TableName | str) -> ScoringTable:
        key = _table_name(name)
        if key is None or key not in self._tables:
            raise KeyError(name)
        return self._tables[key]

    def get(self, name: TableName | str) -> ScoringTable | None:
        key = _table_name(name)
        return self._tables.get(key) if key is not None else None

    def lookup(
        self,
        name: TableName | str,
        value: float,
        metrics: MetricsCollector | None = None,
    ) -> float:
        """Map ``value`` to points using the table called ``name``."""
        table = self.get(name)
        label = name.value if isinstance(name, TableName) else str(name)

        if table is None:
            logger.warning(f"Unknown scoring table {label!r}; scoring 0 points")
            if metrics is not None:
                metrics.record_unknown_table(label)
            return 0.0

        for r in table.ranges:
            if r.contains(value):
                if metrics is not None:
                    metrics.record_lookup(label, matched=True)
                return r.points

        logger.debug(f"Value {value} outside every range of {label}; scoring 0 points")
        if metrics is not None:
            metrics.record_lookup(label, matched=False)
        return 0.0


def _table_name(name: object) -> TableName | None:
    if isinstance(name, TableName):
        return name
    try:
        return TableName(name)
    except ValueError:
        return None


def load_default_ranges() -> RangeTable:
    """Load the ranges shipped with the package."""
    return load_ranges(DEFAULT_RANGES_FILE)


def load_ranges(source: Path | str | Mapping[str, Any] | list[Any]) -> RangeTable:
    """Load scoring tables from a YAML file or already-parsed data.

    A ``str`` is always a file path; YAML text must be parsed first.

    Accepts the list form ``[{name, ranges: [{min, max, points}]}]`` or a
    mapping ``{name: [[min, max, points], ...]}`` whose entries may also be
    ``{min, max, points}`` dicts.

    Raises:
        ConfigError: If the file is missing or malformed, a table is unknown,
            duplicated or missing, or a range has ``min > max``.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        origin = str(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read ranges file {origin}: {e}") from e
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in ranges file {origin}: {e}") from e
    else:
        origin = "<ranges data>"
        data = source

    tables = _parse_tables(data, origin)
    logger.debug(f"Loaded {len(tables)} scoring tables from {origin}")
    return RangeTable(tables, source=origin)


def _parse_tables(data: Any, origin: str) -> dict[TableName, ScoringTable]:
    if isinstance(data, Mapping):
        entries = list(data.items())
    elif isinstance(data, list):
        entries = []
        for item in data:
            if not isinstance(item, Mapping) or "name" not in item:
                raise ConfigError(f"{origin}: every table needs a 'name' and 'ranges'")
            entries.append((item["name"], item.get("ranges")))
    else:
        raise ConfigError(f"{origin}: expected a list or mapping of scoring tables")

    tables: dict[TableName, ScoringTable] = {}
    for raw_name, raw_ranges in entries:
        name = _table_name(raw_name)
        if name is None:
            known = ", ".join(t.value for t in TableName)
            raise ConfigError(f"{origin}: unknown scoring table {raw_name!r} (expected one of {known})")
        if name in tables:
            raise ConfigError(f"{origin}: scoring table {name.value} is defined twice")
        ranges = tuple(_parse_range(entry, name, origin) for entry in _range_list(raw_ranges, name, origin))
        tables[name] = ScoringTable(name=name, ranges=ranges)

    missing = [t.value for t in TableName if t not in tables]
    if missing:
        raise ConfigError(f"{origin}: missing scoring tables: {', '.join(missing)}")

    # Keep the canonical order regardless of file order
    return {t: tables[t] for t in TableName}


def _range_list(raw: Any, name: TableName, origin: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"{origin}: ranges of {name.value} must be a list")
    return raw


def _parse_range(entry: Any, name: TableName, origin: str) -> Range:
    if isinstance(entry, Mapping):
        values = {k: entry.get(k) for k in ("min", "max", "points")}
    elif isinstance(entry, (list, tuple)) and len(entry) == 3:
        values = dict(zip(("min", "max", "points"), entry))
    else:
        raise ConfigError(f"{origin}: {name.value} range {entry!r} must be {{min, max, points}} or a triple")

    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{origin}: {name.value} range {key} must be a number, got {value!r}")
        if math.isnan(value):
            raise ConfigError(f"{origin}: {name.value} range {key} is NaN")

    try:
        return Range(**values)
    except pydantic.ValidationError as e:
        message = e.errors()[0].get("msg", str(e))
        raise ConfigError(f"{origin}: invalid range in {name.value}: {message}") from e
