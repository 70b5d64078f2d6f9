"""Point-in-polygon spatial join of located records to dong boundaries.

Every point is tested against every region in feature order with a
crossing-number test, so a run costs O(points x regions x vertices). That is
fine for a few thousand libraries against Seoul's ~425 dongs; larger inputs
would need a spatial index, which this module deliberately does not have.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from .models import (
    AugmentedPoint,
    ClosedRing,
    Coordinate,
    Matched,
    MatchResult,
    PointObservation,
    Region,
    Unmatched,
)

_LOGGER = logging.getLogger("mapbuilder.geometry")


def point_in_ring(point: Coordinate, ring: ClosedRing) -> bool:
    """Crossing-number containment test against an outer ring.

    Points exactly on an edge or vertex get whatever the parity yields; the
    answer is deterministic for a given vertex order but not otherwise
    specified.
    """
    x, y = point
    inside = False
    for (xi, yi), (xj, yj) in ring.edges():
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
    return inside


def outer_ring(geometry: Mapping[str, Any]) -> ClosedRing:
    """Extract the exterior ring of a GeoJSON Polygon or the first polygon of a MultiPolygon."""
    geom_type = geometry.get("type")
    coords = geometry.get("coordinates")
    if not isinstance(coords, list) or not coords:
        raise ValueError(f"Geometry without coordinates: {geom_type}")
    if geom_type == "MultiPolygon":
        return ClosedRing.from_coordinates(coords[0][0])
    if geom_type == "Polygon":
        return ClosedRing.from_coordinates(coords[0])
    raise ValueError(f"Unsupported geometry type: {geom_type}")


def match_point(point: PointObservation, regions: Iterable[Region]) -> MatchResult:
    """Return the first region, in feature order, whose ring contains the point."""
    for region in regions:
        if point_in_ring(point.position, region.ring):
            return Matched(point=point, region=region)
    return Unmatched(point=point)


def match_points(points: Sequence[PointObservation], regions: Sequence[Region]) -> list[MatchResult]:
    results: list[MatchResult] = []
    for point in points:
        result = match_point(point, regions)
        if isinstance(result, Unmatched):
            _LOGGER.warning(
                "No region contains point (%.6f, %.6f) %s",
                point.lon,
                point.lat,
                list(point.payload),
            )
        results.append(result)
    return results


def augment_points(results: Iterable[MatchResult]) -> list[AugmentedPoint]:
    """Join matched points with their region metrics; unmatched points are left out."""
    augmented: list[AugmentedPoint] = []
    for result in results:
        if isinstance(result, Matched):
            augmented.append(
                AugmentedPoint(
                    point=result.point,
                    region_name=result.region.name,
                    metrics=dict(result.region.metrics),
                )
            )
    return augmented
