import math

import pytest

from mapbuilder.aggregate import (
    apply_max_ratios,
    apply_ratios,
    corpus_stats,
    elevation,
    hue_color,
    normalized_intensity,
    region_ratio,
)
from mapbuilder.models import ClosedRing, Region

from conftest import square


def make_region(name, **metrics):
    return Region(name=name, ring=ClosedRing.from_coordinates(square(0, 0)), metrics=dict(metrics))


def test_zero_denominator_gives_exactly_zero():
    value = region_ratio(10.0, 0.0)
    assert value == 0.0
    assert not math.isnan(value) and not math.isinf(value)
    assert region_ratio(10.0, math.nan) == 0.0


def test_ratio_divides_otherwise():
    assert region_ratio(10.0, 100.0) == pytest.approx(0.1)


def test_mean_includes_zero_ratios():
    stats = corpus_stats([0.1, 0.0, 0.0, 0.3])
    assert stats.mean == pytest.approx(0.1)
    assert stats.max == pytest.approx(0.3)
    assert stats.count == 4


def test_empty_corpus_stats_are_zero():
    stats = corpus_stats([])
    assert (stats.mean, stats.max, stats.count) == (0.0, 0.0, 0)


def test_two_dong_scenario():
    ga = make_region("가동", young=(100.0, 40.0, 60.0), facil=10.0)
    na = make_region("나동", young=(0.0, 0.0, 0.0), facil=0.0)
    apply_ratios([ga, na], numerator="facil", denominator="young", component=0)
    assert ga.metrics["ratio"] == pytest.approx(0.1)
    assert na.metrics["ratio"] == 0.0
    assert corpus_stats([ga.metrics["ratio"], na.metrics["ratio"]]).mean == pytest.approx(0.05)


def test_intensity_is_clamped_and_safe_for_zero_mean():
    assert normalized_intensity(0.1, 0.05) == pytest.approx(2.0)
    assert normalized_intensity(1.0, 0.05) == 2.0
    assert normalized_intensity(1.0, 0.05, clamp=None) == pytest.approx(20.0)
    assert normalized_intensity(0.3, 0.0) == 0.0


def test_hue_color_endpoints():
    assert hue_color(0.0) == (255, 0, 0)
    assert hue_color(1.0) == (0, 255, 0)
    assert hue_color(2.0) == (0, 0, 255)
    assert hue_color(math.nan) == (255, 0, 0)


def test_hue_color_midpoint():
    # hue 1/6 is yellow
    assert hue_color(0.5) == (255, 255, 0)


def test_max_ratio_written_as_pop_ratio():
    regions = [make_region("a", young=(50.0, 0.0, 0.0)), make_region("b", young=(200.0, 0.0, 0.0))]
    stats = apply_max_ratios(regions, metric="young", component=0)
    assert stats.max == 200.0
    assert [region.metrics["popRatio"] for region in regions] == [0.25, 1.0]


def test_max_ratio_all_zero():
    regions = [make_region("a", young=(0.0, 0.0, 0.0))]
    apply_max_ratios(regions, metric="young", component=0)
    assert regions[0].metrics["popRatio"] == 0.0


def test_elevation():
    assert elevation(120.0, 10.0) == 1200.0
    assert elevation(math.nan, 10.0) == 0.0
