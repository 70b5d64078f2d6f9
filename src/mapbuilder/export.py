"""Render payloads handed to the deck.gl front-end."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from .config import HexagonConfig, VariantRenderConfig
from .models import AggregateStats, AugmentedPoint, MetricValue, Region

WHITE = (255, 255, 255)


def metrics_to_json(metrics: Mapping[str, MetricValue]) -> dict[str, Any]:
    return {key: list(value) if isinstance(value, tuple) else value for key, value in metrics.items()}


def enriched_feature(
    region: Region,
    *,
    fill_color: Sequence[int],
    elevation: float | None = None,
) -> dict[str, Any]:
    """Original feature geometry and properties plus the joined ``data`` bag."""
    source = region.feature or {}
    geometry = source.get("geometry") or {"type": "Polygon", "coordinates": [region.ring.to_list()]}
    feature: dict[str, Any] = {
        "type": "Feature",
        "properties": dict(region.properties),
        "geometry": geometry,
        "data": metrics_to_json(region.metrics),
        "fillColor": list(fill_color),
    }
    if elevation is not None:
        feature["elevation"] = elevation
    return feature


def feature_collection(features: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def point_rows(points: Sequence[AugmentedPoint]) -> list[list[Any]]:
    rows: list[list[Any]] = []
    for point in points:
        row = point.as_list()
        row[-1] = metrics_to_json(row[-1])
        rows.append(row)
    return rows


def _base_payload(variant: str, render: VariantRenderConfig, stats: Mapping[str, AggregateStats]) -> dict[str, Any]:
    return {
        "variant": variant,
        "mapStyle": render.map_style,
        "viewState": render.view.to_dict(),
        "lighting": render.lighting.to_dict(),
        "stats": {name: value.to_dict() for name, value in stats.items()},
    }


def choropleth_payload(
    variant: str,
    render: VariantRenderConfig,
    *,
    data_file: str,
    stats: Mapping[str, AggregateStats],
    extruded: bool,
) -> dict[str, Any]:
    payload = _base_payload(variant, render, stats)
    payload["layer"] = {
        "type": "GeoJsonLayer",
        "id": variant,
        "data": data_file,
        "opacity": render.opacity,
        "stroked": False,
        "filled": True,
        "extruded": extruded,
        "wireframe": True,
        "getLineColor": list(WHITE),
        "pickable": True,
    }
    return payload


def hexagon_payload(
    render: VariantRenderConfig,
    hexagon: HexagonConfig,
    *,
    data_file: str,
    stats: Mapping[str, AggregateStats],
) -> dict[str, Any]:
    payload = _base_payload("libraries", render, stats)
    payload["layer"] = {
        "type": "HexagonLayer",
        "id": "libraries",
        "data": data_file,
        "extruded": True,
        "pickable": True,
        **hexagon.to_dict(),
    }
    return payload
