"""Per-dong aggregate records seeded from boundaries and merged with tables."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

from .geometry import outer_ring
from .keys import normalize_region_name
from .models import MetricValue, Region, TabularRow

_LOGGER = logging.getLogger("mapbuilder.regions")

RowApplier = Callable[[Region, TabularRow], None]


@dataclass(slots=True)
class MergeSummary:
    """Outcome of merging one table into the index."""

    matched: int = 0
    discarded: int = 0
    discarded_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "discarded": self.discarded,
            "discarded_keys": list(self.discarded_keys),
        }


def filter_features(features: Iterable[Mapping[str, Any]], target_sido: str | None) -> list[Mapping[str, Any]]:
    """Keep features whose ``properties.sidonm`` equals ``target_sido`` (all when None)."""
    if target_sido is None:
        return list(features)
    return [
        feature
        for feature in features
        if (feature.get("properties") or {}).get("sidonm") == target_sido
    ]


class RegionIndex:
    """Per-dong metric records keyed by canonical name, plus one region per feature.

    Every boundary feature keeps its own :class:`Region` (ring, properties,
    feature) in boundary-file order. Features whose names normalise to the
    same key share a single metric record, so a table row for that key lands
    on all of them. Both ``seed`` and ``merge`` resolve repeated keys
    last-write-wins.
    """

    def __init__(self) -> None:
        self._regions: list[Region] = []
        self._by_key: dict[str, list[Region]] = {}
        self._records: dict[str, dict[str, MetricValue]] = {}

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def keys(self) -> list[str]:
        return list(self._records)

    def get(self, key: str) -> Region | None:
        """First region seeded under ``key``; its metrics are the shared record."""
        regions = self._by_key.get(key)
        return regions[0] if regions else None

    def regions_for(self, key: str) -> list[Region]:
        return list(self._by_key.get(key, ()))

    def record(self, key: str) -> dict[str, MetricValue] | None:
        return self._records.get(key)

    def regions(self) -> list[Region]:
        return list(self._regions)

    def seed(
        self,
        features: Iterable[Mapping[str, Any]],
        defaults: Mapping[str, MetricValue],
        *,
        name_property: str = "adm_nm",
    ) -> None:
        for feature in features:
            properties = feature.get("properties") or {}
            raw_name = properties.get(name_property)
            if not isinstance(raw_name, str):
                raise ValueError(f"Feature without string '{name_property}' property")
            geometry = feature.get("geometry")
            if not isinstance(geometry, Mapping):
                raise ValueError(f"Feature '{raw_name}' has no geometry")
            key = normalize_region_name(raw_name)
            record: dict[str, MetricValue] = dict(defaults)
            siblings = self._by_key.setdefault(key, [])
            if siblings:
                _LOGGER.debug("Dong key %s seeded again by %s; its features share one record", key, raw_name)
                for sibling in siblings:
                    sibling.metrics = record
            self._records[key] = record
            region = Region(
                name=key,
                ring=outer_ring(geometry),
                properties=dict(properties),
                metrics=record,
                feature=feature,
            )
            siblings.append(region)
            self._regions.append(region)

    def merge(self, rows: Iterable[TabularRow], apply: RowApplier) -> MergeSummary:
        summary = MergeSummary()
        for row in rows:
            region = self.get(row.key)
            if region is None:
                summary.discarded += 1
                summary.discarded_keys.append(row.key)
                _LOGGER.debug("No boundary for table key %s; row discarded", row.key)
                continue
            # The record is shared, so applying to one region updates its siblings too.
            apply(region, row)
            summary.matched += 1
        return summary

    @classmethod
    def from_features(
        cls,
        features: Iterable[Mapping[str, Any]],
        defaults: Mapping[str, MetricValue],
        *,
        name_property: str = "adm_nm",
    ) -> RegionIndex:
        index = cls()
        index.seed(features, defaults, name_property=name_property)
        return index


def merge_vector(metric: str, width: int) -> RowApplier:
    """Store the first ``width`` measures of a row as a fixed-length vector."""

    def apply(region: Region, row: TabularRow) -> None:
        values = list(row.values[:width])
        values.extend([math.nan] * (width - len(values)))
        region.metrics[metric] = tuple(values)

    return apply


def merge_scalar(
    metric: str,
    *,
    column: int = 0,
    divide_by: tuple[str, int] | None = None,
) -> RowApplier:
    """Store one measure as a scalar.

    ``divide_by=(metric, component)`` divides the value by ``1 + that
    component`` of a previously merged vector, e.g. facilities per
    (1 + male young population).
    """

    def apply(region: Region, row: TabularRow) -> None:
        value = row.values[column] if column < len(row.values) else math.nan
        if divide_by is not None:
            sibling, component = divide_by
            denominator = 1.0 + region.metric(sibling, component)
            value = value / denominator if denominator else 0.0
        region.metrics[metric] = value

    return apply


def region_values(regions: Sequence[Region], metric: str, component: int | None = None) -> list[float]:
    return [region.metric(metric, component) for region in regions]
