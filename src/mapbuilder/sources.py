"""Input loading: local files or http(s) URLs, fetched as one batch."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Mapping, Sequence

import requests

from .config import FetchConfig, LibrariesConfig, SourceConfig
from .models import PointObservation
from .tabular import parse_number

_LOGGER = logging.getLogger("mapbuilder.sources")


class SourceRepository:
    """Reads configured inputs as text.

    Every input of one pipeline run is requested together through
    :meth:`fetch_batch`. The first failure propagates to the caller and the
    run is abandoned; there is no retry and no partial result.
    """

    def __init__(self, fetch: FetchConfig, session: requests.Session | None = None) -> None:
        self.fetch = fetch
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": fetch.user_agent})

    def fetch_text(self, source: SourceConfig) -> str:
        if source.remote:
            url = str(source.location)
            _LOGGER.info("Fetching %s", url)
            response = self.session.get(url, timeout=self.fetch.request_timeout_s)
            response.raise_for_status()
            response.encoding = source.encoding
            return response.text
        path = Path(source.location)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        _LOGGER.info("Reading %s", path)
        return path.read_text(encoding=source.encoding)

    def fetch_batch(self, sources: Sequence[SourceConfig]) -> list[str]:
        """Fetch all sources concurrently; results follow the input order."""
        if not sources:
            return []
        workers = min(self.fetch.max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.fetch_text, sources))


def parse_feature_collection(text: str) -> list[Mapping[str, Any]]:
    payload = json.loads(text)
    if not isinstance(payload, Mapping) or not isinstance(payload.get("features"), list):
        raise ValueError("Boundary file must be a GeoJSON FeatureCollection with a 'features' list")
    features: list[Mapping[str, Any]] = []
    for idx, feature in enumerate(payload["features"]):
        if not isinstance(feature, Mapping):
            raise ValueError(f"Expected mapping at features[{idx}]")
        features.append(feature)
    return features


def parse_library_points(text: str, fields: LibrariesConfig) -> list[PointObservation]:
    """Convert the library listing into ``(lon, lat, category, label)`` points."""
    payload = json.loads(text)
    if not isinstance(payload, Mapping):
        raise ValueError("Library file must be a JSON object")
    records = payload.get(fields.records_key)
    if not isinstance(records, list):
        raise ValueError(f"Library file has no '{fields.records_key}' list")

    points: list[PointObservation] = []
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValueError(f"Expected mapping at {fields.records_key}[{idx}]")
        points.append(
            PointObservation(
                lon=parse_number(record.get(fields.lon_field)),
                lat=parse_number(record.get(fields.lat_field)),
                payload=(record.get(fields.category_field), record.get(fields.label_field)),
            )
        )
    return points
