import json
import math

import pytest
import requests

from mapbuilder.config import FetchConfig, LibrariesConfig, SourceConfig
from mapbuilder.sources import SourceRepository, parse_feature_collection, parse_library_points

from conftest import LIBRARIES


FETCH = FetchConfig(request_timeout_s=5, user_agent="test-agent", max_workers=2)


class FakeResponse:
    def __init__(self, text, status=200):
        self._text = text
        self.status = status
        self.encoding = None

    @property
    def text(self):
        return self._text

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"HTTP {self.status}")


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = responses
        self.calls = []

    def get(self, url, timeout):
        self.calls.append((url, timeout))
        return self.responses[url]


def test_batch_preserves_input_order(data_dir):
    session = FakeSession({"https://example.org/a.csv": FakeResponse("remote")})
    repo = SourceRepository(FETCH, session=session)
    texts = repo.fetch_batch(
        [
            SourceConfig(location="https://example.org/a.csv", encoding="utf-8"),
            SourceConfig(location=data_dir / "facility.txt", encoding="utf-8"),
        ]
    )
    assert texts[0] == "remote"
    assert texts[1].startswith("기간,자치구")
    assert session.headers["User-Agent"] == "test-agent"
    assert session.calls == [("https://example.org/a.csv", 5)]


def test_any_failed_fetch_aborts_the_batch(data_dir):
    session = FakeSession({"https://example.org/broken": FakeResponse("", status=503)})
    repo = SourceRepository(FETCH, session=session)
    with pytest.raises(requests.HTTPError):
        repo.fetch_batch(
            [
                SourceConfig(location=data_dir / "young.txt", encoding="utf-8"),
                SourceConfig(location="https://example.org/broken", encoding="utf-8"),
            ]
        )


def test_missing_local_file_raises(tmp_path):
    repo = SourceRepository(FETCH, session=FakeSession({}))
    with pytest.raises(FileNotFoundError):
        repo.fetch_text(SourceConfig(location=tmp_path / "missing.txt", encoding="utf-8"))


def test_parse_feature_collection_requires_features():
    with pytest.raises(ValueError):
        parse_feature_collection(json.dumps({"type": "FeatureCollection"}))
    assert parse_feature_collection(json.dumps({"features": []})) == []


def test_parse_library_points():
    fields = LibrariesConfig.from_mapping({})
    points = parse_library_points(json.dumps(LIBRARIES, ensure_ascii=False), fields)
    assert [point.position for point in points] == [(126.5, 37.5), (127.5, 37.5), (130.0, 30.0)]
    assert points[0].payload == ("공공도서관", "가도서관")


def test_library_with_non_numeric_coordinate_gets_nan():
    fields = LibrariesConfig.from_mapping({})
    points = parse_library_points(json.dumps({"DATA": [{"ydnts": "n/a", "xcnts": "37.5"}]}), fields)
    assert math.isnan(points[0].lon)


def test_library_file_without_records_key():
    with pytest.raises(ValueError, match="DATA"):
        parse_library_points(json.dumps({"rows": []}), LibrariesConfig.from_mapping({}))
