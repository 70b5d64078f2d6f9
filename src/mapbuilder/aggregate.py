"""Derived per-dong metrics, corpus statistics, and colour/elevation scales."""

from __future__ import annotations

import colorsys
import math
from typing import Iterable, Sequence

from .models import AggregateStats, Region


def region_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, defined as exactly 0.0 for a zero or NaN denominator."""
    if not denominator or math.isnan(denominator):
        return 0.0
    return numerator / denominator


def apply_ratios(
    regions: Iterable[Region],
    *,
    numerator: str,
    denominator: str,
    component: int | None = None,
    target: str = "ratio",
) -> None:
    for region in regions:
        region.metrics[target] = region_ratio(
            region.metric(numerator),
            region.metric(denominator, component),
        )


def corpus_stats(values: Sequence[float]) -> AggregateStats:
    """Mean and maximum over every region, zero-valued regions included."""
    if not values:
        return AggregateStats(mean=0.0, max=0.0, count=0)
    total = 0.0
    peak = -math.inf
    for value in values:
        total += value
        if value > peak:
            peak = value
    return AggregateStats(mean=total / len(values), max=peak, count=len(values))


def normalized_intensity(value: float, mean: float, clamp: float | None = 2.0) -> float:
    """``value / mean`` capped at ``clamp``; 0.0 when the mean is zero."""
    if not mean or math.isnan(mean):
        return 0.0
    scaled = value / mean
    if clamp is not None and scaled > clamp:
        return clamp
    return scaled


def max_ratio(value: float, peak: float) -> float:
    if not peak or math.isnan(peak):
        return 0.0
    return value / peak


def apply_max_ratios(
    regions: Sequence[Region],
    *,
    metric: str,
    component: int | None = None,
    target: str = "popRatio",
) -> AggregateStats:
    stats = corpus_stats([region.metric(metric, component) for region in regions])
    for region in regions:
        region.metrics[target] = max_ratio(region.metric(metric, component), stats.max)
    return stats


def hue_color(x: float) -> tuple[int, int, int]:
    """Map ``x`` to a fully saturated colour: 0 red, 1 green, 2 blue."""
    if math.isnan(x):
        x = 0.0
    r, g, b = colorsys.hsv_to_rgb(x / 3.0, 1.0, 1.0)
    return (_channel(r), _channel(g), _channel(b))


def _channel(value: float) -> int:
    return int(math.floor(value * 255 + 0.5))


def elevation(value: float, scale: float) -> float:
    if math.isnan(value):
        return 0.0
    return value * scale
