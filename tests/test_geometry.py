import pytest

from mapbuilder.geometry import augment_points, match_point, match_points, outer_ring, point_in_ring
from mapbuilder.models import ClosedRing, Matched, PointObservation, Region, Unmatched

from conftest import square


# Concave "L": the notch (1..2, 1..2) is outside.
L_SHAPE = ClosedRing.from_coordinates([[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]])

INTERIOR = [(0.5, 0.5), (1.5, 0.5), (0.5, 1.5), (0.1, 1.9)]
EXTERIOR = [(1.5, 1.5), (2.5, 0.5), (-0.1, 1.0), (0.5, 2.5), (1.9, 1.9)]


def region(name, ring_coords, **metrics):
    return Region(name=name, ring=ClosedRing.from_coordinates(ring_coords), metrics=dict(metrics))


@pytest.mark.parametrize("point", INTERIOR)
def test_interior_points(point):
    assert point_in_ring(point, L_SHAPE)


@pytest.mark.parametrize("point", EXTERIOR)
def test_exterior_points(point):
    assert not point_in_ring(point, L_SHAPE)


@pytest.mark.parametrize("offset", range(6))
def test_containment_is_invariant_under_ring_rotation(offset):
    rotated = L_SHAPE.rotated(offset)
    for point in INTERIOR:
        assert point_in_ring(point, rotated)
    for point in EXTERIOR:
        assert not point_in_ring(point, rotated)


def test_repeated_closing_vertex_does_not_change_result():
    open_ring = ClosedRing.from_coordinates(square(0, 0)[:-1])
    closed_ring = ClosedRing.from_coordinates(square(0, 0))
    for point in [(0.5, 0.5), (1.5, 0.5), (0.5, -0.5)]:
        assert point_in_ring(point, open_ring) == point_in_ring(point, closed_ring)


def test_edges_include_wrap_around_edge_first():
    ring = ClosedRing.from_coordinates([[0, 0], [1, 0], [0, 1]])
    assert list(ring.edges()) == [((0.0, 1.0), (0.0, 0.0)), ((0.0, 0.0), (1.0, 0.0)), ((1.0, 0.0), (0.0, 1.0))]


def test_vertex_coincident_point_is_deterministic():
    ring = ClosedRing.from_coordinates([[127.0, 37.5], [127.5, 37.5], [127.5, 38.0], [127.0, 38.0]])
    results = {point_in_ring((127.0, 37.5), ring) for _ in range(5)}
    assert len(results) == 1
    assert isinstance(results.pop(), bool)


def test_agrees_with_shapely_for_strict_cases():
    shapely_geometry = pytest.importorskip("shapely.geometry")
    polygon = shapely_geometry.Polygon(L_SHAPE.vertices)
    for point in INTERIOR + EXTERIOR:
        assert point_in_ring(point, L_SHAPE) == polygon.contains(shapely_geometry.Point(point))


def test_ring_needs_three_vertices():
    with pytest.raises(ValueError):
        ClosedRing.from_coordinates([[0, 0], [1, 1]])


def test_outer_ring_from_multipolygon_and_polygon():
    ring = square(0, 0)
    hole = [[0.2, 0.2], [0.4, 0.2], [0.4, 0.4], [0.2, 0.2]]
    multi = {"type": "MultiPolygon", "coordinates": [[ring, hole], [square(5, 5)]]}
    poly = {"type": "Polygon", "coordinates": [ring, hole]}
    assert outer_ring(multi).vertices[:4] == ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))
    assert outer_ring(poly) == outer_ring(multi)
    with pytest.raises(ValueError):
        outer_ring({"type": "Point", "coordinates": [0, 0]})


def test_holes_are_ignored():
    hole = [[0.2, 0.2], [0.4, 0.2], [0.4, 0.4], [0.2, 0.4]]
    ring = outer_ring({"type": "Polygon", "coordinates": [square(0, 0), hole]})
    assert point_in_ring((0.3, 0.3), ring)


def test_first_containing_region_wins():
    first = region("first", square(0, 0, 2))
    second = region("second", square(0, 0, 1))
    result = match_point(PointObservation(0.5, 0.5), [first, second])
    assert isinstance(result, Matched)
    assert result.region is first


def test_point_outside_every_region_is_unmatched():
    regions = [region("가동", square(126, 37)), region("나동", square(127, 37))]
    points = [
        PointObservation(126.5, 37.5, ("공공도서관", "a")),
        PointObservation(130.0, 30.0, ("작은도서관", "b")),
        PointObservation(127.5, 37.5, (None, "c")),
    ]
    results = match_points(points, regions)
    assert isinstance(results[1], Unmatched)
    assert results[1].point is points[1]

    augmented = augment_points(results)
    unmatched = sum(isinstance(result, Unmatched) for result in results)
    assert len(augmented) == len(points) - unmatched
    assert [point.region_name for point in augmented] == ["가동", "나동"]


def test_augmented_row_concatenates_point_and_region_metrics():
    dong = region("가동", square(126, 37), facil=3.0, young=(10.0, 4.0, 6.0))
    (augmented,) = augment_points(match_points([PointObservation(126.5, 37.5, ("공공도서관", "a"))], [dong]))
    assert augmented.as_list() == [
        126.5,
        37.5,
        "공공도서관",
        "a",
        "가동",
        {"facil": 3.0, "young": (10.0, 4.0, 6.0)},
    ]


def test_nan_coordinates_never_match():
    dong = region("가동", square(126, 37))
    result = match_point(PointObservation(float("nan"), 37.5), [dong])
    assert isinstance(result, Unmatched)
