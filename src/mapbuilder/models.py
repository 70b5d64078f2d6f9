"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Sequence, Union


Coordinate = tuple[float, float]
MetricValue = Union[float, tuple[float, ...]]

DEFAULT_EXCLUDED_KINDS = ("동", "계", "합계", "소계", "미상", "행정동")


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _require_non_negative_int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"Expected non-negative integer for '{field_name}'")
    return value


@dataclass(frozen=True, slots=True)
class TableLayout:
    """Column layout of one delimited-text export."""

    leading_columns: int = 2
    kind_column: int = 2
    value_columns: int = 1
    excluded_kinds: tuple[str, ...] = DEFAULT_EXCLUDED_KINDS

    @property
    def min_width(self) -> int:
        return self.leading_columns + 1 + self.value_columns

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], name: str = "table") -> TableLayout:
        leading = _require_non_negative_int(
            data.get("leading_columns", 2), f"{name}.leading_columns"
        )
        kind = _require_non_negative_int(data.get("kind_column", leading), f"{name}.kind_column")
        values = _require_non_negative_int(data.get("value_columns", 1), f"{name}.value_columns")
        excluded_raw = data.get("excluded_kinds")
        if excluded_raw is None:
            excluded = DEFAULT_EXCLUDED_KINDS
        elif isinstance(excluded_raw, list):
            excluded = tuple(_require_str(item, f"{name}.excluded_kinds[]") for item in excluded_raw)
        else:
            raise ValueError(f"Expected list for '{name}.excluded_kinds'")
        return cls(
            leading_columns=leading,
            kind_column=kind,
            value_columns=values,
            excluded_kinds=excluded,
        )


@dataclass(frozen=True, slots=True)
class TabularRow:
    """One parsed export row: canonical dong key plus its measures."""

    key: str
    values: tuple[float, ...]

    def as_list(self) -> list[Any]:
        return [self.key, *self.values]


@dataclass(frozen=True, slots=True)
class ClosedRing:
    """Outer boundary of a region as an implicitly closed vertex loop.

    The edge from the last vertex back to the first is part of the ring;
    callers never need to repeat the first vertex. A repeated closing
    vertex, as GeoJSON writes it, only adds a zero-length edge.
    """

    vertices: tuple[Coordinate, ...]

    @classmethod
    def from_coordinates(cls, coords: Sequence[Sequence[float]]) -> ClosedRing:
        vertices: list[Coordinate] = []
        for idx, pair in enumerate(coords):
            if len(pair) < 2:
                raise ValueError(f"Ring vertex {idx} must hold [lon, lat]")
            vertices.append((float(pair[0]), float(pair[1])))
        if len(vertices) < 3:
            raise ValueError("A ring needs at least three vertices")
        return cls(vertices=tuple(vertices))

    def edges(self) -> Iterator[tuple[Coordinate, Coordinate]]:
        """Yield every edge, starting with the wrap-around edge (last, first)."""
        previous = self.vertices[-1]
        for current in self.vertices:
            yield (previous, current)
            previous = current

    def rotated(self, offset: int) -> ClosedRing:
        n = len(self.vertices)
        k = offset % n
        return ClosedRing(vertices=self.vertices[k:] + self.vertices[:k])

    def to_list(self) -> list[list[float]]:
        return [[lon, lat] for lon, lat in self.vertices]


@dataclass(slots=True)
class Region:
    """One administrative dong: boundary plus its joined metric bag."""

    name: str
    ring: ClosedRing
    properties: Mapping[str, Any] = field(default_factory=dict)
    metrics: dict[str, MetricValue] = field(default_factory=dict)
    feature: Mapping[str, Any] | None = None

    def metric(self, name: str, component: int | None = None) -> float:
        value = self.metrics.get(name, 0.0)
        if isinstance(value, tuple):
            return float(value[component or 0])
        return float(value)


@dataclass(frozen=True, slots=True)
class PointObservation:
    """A located record such as one library."""

    lon: float
    lat: float
    payload: tuple[Any, ...] = ()

    @property
    def position(self) -> Coordinate:
        return (self.lon, self.lat)

    def as_list(self) -> list[Any]:
        return [self.lon, self.lat, *self.payload]


@dataclass(frozen=True, slots=True)
class Matched:
    point: PointObservation
    region: Region


@dataclass(frozen=True, slots=True)
class Unmatched:
    point: PointObservation


MatchResult = Union[Matched, Unmatched]


@dataclass(frozen=True, slots=True)
class AugmentedPoint:
    """A point joined with the metrics of the region that contains it."""

    point: PointObservation
    region_name: str
    metrics: Mapping[str, MetricValue]

    def as_list(self) -> list[Any]:
        return [*self.point.as_list(), self.region_name, dict(self.metrics)]


@dataclass(frozen=True, slots=True)
class AggregateStats:
    """Corpus-wide scalars used to normalize colour and elevation scales."""

    mean: float
    max: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"mean": self.mean, "max": self.max, "count": self.count}


@dataclass(frozen=True, slots=True)
class BuildManifest:
    """Build metadata used for deterministic audit trails."""

    generated_at_utc: str
    config_hash_sha256: str
    git_commit: str | None
    steps: Mapping[str, str]
    artifacts: Mapping[str, str]

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        git_commit: str | None,
        steps: Mapping[str, str],
        artifacts: Mapping[str, str],
    ) -> BuildManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            git_commit=git_commit,
            steps=steps,
            artifacts=artifacts,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "git_commit": self.git_commit,
            "steps": dict(self.steps),
            "artifacts": dict(self.artifacts),
        }
