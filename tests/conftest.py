import json
from pathlib import Path

import pytest
import yaml


def square(x0, y0, size=1.0):
    return [[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]


def feature(adm_nm, ring, sidonm="서울특별시", multi=True):
    if multi:
        geometry = {"type": "MultiPolygon", "coordinates": [[ring]]}
    else:
        geometry = {"type": "Polygon", "coordinates": [ring]}
    return {
        "type": "Feature",
        "properties": {"adm_nm": adm_nm, "sidonm": sidonm},
        "geometry": geometry,
    }


YOUNG_TEXT = "\n".join(
    [
        "기간,자치구,동,계,남자,여자",
        "2020,합계,합계,\"1,000\",500,500",
        "2020,종로구,소계,100,40,60",
        "2020,종로구,가동,100,40,60",
        "2020,종로구,다동,5,2,3",
        "",
    ]
)

FACILITY_TEXT = "\n".join(
    [
        "기간,자치구,동,보육시설",
        "2020,합계,합계,\"1,234\"",
        "2020,종로구,가동,10",
        "2020,종로구,미상,3",
        "",
    ]
)

BOUNDARIES = {
    "type": "FeatureCollection",
    "features": [
        feature("서울특별시 종로구 가동", square(126.0, 37.0)),
        feature("서울특별시 종로구 나동", square(127.0, 37.0)),
        feature("경기도 수원시 라동", square(120.0, 30.0), sidonm="경기도"),
    ],
}

LIBRARIES = {
    "DATA": [
        {"ydnts": "126.5", "xcnts": "37.5", "lbrry_se_name": "공공도서관", "lbrry_name": "가도서관"},
        {"ydnts": "127.5", "xcnts": "37.5", "lbrry_se_name": "작은도서관", "lbrry_name": "나도서관"},
        {"ydnts": "130.0", "xcnts": "30.0", "lbrry_se_name": None, "lbrry_name": "바깥도서관"},
    ]
}


def base_config(data_dir: Path) -> dict:
    lighting = {
        "shadow_color": [0, 0, 0, 0.5],
        "lights": [
            {"kind": "ambient", "color": [255, 255, 255], "intensity": 1.0},
            {"kind": "sun", "color": [255, 255, 255], "intensity": 1.0, "timestamp_utc": "2019-08-01T22:00:00Z"},
        ],
    }
    return {
        "project": {"name": "test maps"},
        "paths": {"output_dir": "out", "logs_dir": "logs"},
        "sources": {
            "young": {"location": str(data_dir / "young.txt")},
            "facility": {"location": str(data_dir / "facility.txt")},
            "boundaries": {"location": str(data_dir / "boundaries.geojson")},
            "libraries": {"location": str(data_dir / "libs.json")},
        },
        "tables": {
            "young": {"leading_columns": 2, "kind_column": 2, "value_columns": 3},
            "facility": {"leading_columns": 2, "kind_column": 2, "value_columns": 1},
        },
        "region": {"target_sido": "서울특별시"},
        "aggregation": {"ratio_clamp": 2.0, "facility_adjust_by_young_component": 1},
        "render": {
            "children": {"view": {"zoom": 11}, "lighting": lighting},
            "population": {"view": {"zoom": 11}, "lighting": lighting},
            "libraries": {
                "map_style": "mapbox://styles/mapbox/dark-v9",
                "view": {"zoom": 10, "pitch": 40.5, "bearing": -27},
                "hexagon": {"color_range": [[42, 42, 62], [84, 84, 104]]},
            },
        },
        "qa": {"generate_index": True},
        "preview": {"enabled": False},
        "build": {"write_manifest": True},
    }


@pytest.fixture
def data_dir(tmp_path):
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "young.txt").write_text(YOUNG_TEXT, encoding="utf-8")
    (directory / "facility.txt").write_text(FACILITY_TEXT, encoding="utf-8")
    (directory / "boundaries.geojson").write_text(
        json.dumps(BOUNDARIES, ensure_ascii=False), encoding="utf-8"
    )
    (directory / "libs.json").write_text(json.dumps(LIBRARIES, ensure_ascii=False), encoding="utf-8")
    return directory


@pytest.fixture
def raw_config(data_dir):
    return base_config(data_dir)


@pytest.fixture
def write_config(tmp_path):
    def _write(raw: dict) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(raw, allow_unicode=True), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_path(raw_config, write_config):
    return write_config(raw_config)
