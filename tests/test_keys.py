import pytest

from mapbuilder.keys import normalize_region_name


def test_boundary_and_table_names_share_a_key():
    assert normalize_region_name("서울특별시 종로구 청운·효자동") == "청운·효자동"
    assert normalize_region_name("청운.효자동") == "청운·효자동"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("서울특별시 종로구 사직동", "사직동"),
        ("사직동", "사직동"),
        ("  종로구   종로1.2.3.4가동  ", "종로1·2·3·4가동"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_keeps_last_token_and_swaps_dots(raw, expected):
    assert normalize_region_name(raw) == expected
