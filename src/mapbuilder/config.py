"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .models import TableLayout


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _rgb(value: Any, field_name: str) -> tuple[int, int, int]:
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"Expected [r, g, b] list for '{field_name}'")
    channels = tuple(_int(item, f"{field_name}[{idx}]") for idx, item in enumerate(value))
    if any(channel < 0 or channel > 255 for channel in channels):
        raise ValueError(f"Colour channels of '{field_name}' must be between 0 and 255")
    return cast(tuple[int, int, int], channels)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def is_remote(location: str | Path) -> bool:
    return isinstance(location, str) and location.startswith(("http://", "https://"))


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectConfig:
        return cls(name=_str(raw.get("name"), "project.name"))


@dataclass(frozen=True, slots=True)
class PathsConfig:
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            output_dir=_path_from_cfg(raw.get("output_dir"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """One input: a local path or an http(s) URL."""

    location: str | Path
    encoding: str

    @property
    def remote(self) -> bool:
        return is_remote(self.location)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path, name: str) -> SourceConfig:
        raw_location = _str(raw.get("location"), f"sources.{name}.location")
        location: str | Path
        if is_remote(raw_location):
            location = raw_location
        else:
            location = _path_from_cfg(raw_location, f"sources.{name}.location", root_dir)
        return cls(
            location=location,
            encoding=_str(raw.get("encoding", "utf-8"), f"sources.{name}.encoding"),
        )


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    young: SourceConfig
    facility: SourceConfig
    boundaries: SourceConfig
    libraries: SourceConfig

    @property
    def local_files(self) -> tuple[Path, ...]:
        sources = (self.young, self.facility, self.boundaries, self.libraries)
        return tuple(cast(Path, source.location) for source in sources if not source.remote)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> SourcesConfig:
        def source(name: str) -> SourceConfig:
            return SourceConfig.from_mapping(_mapping(raw.get(name), f"sources.{name}"), root_dir, name)

        return cls(
            young=source("young"),
            facility=source("facility"),
            boundaries=source("boundaries"),
            libraries=source("libraries"),
        )


@dataclass(frozen=True, slots=True)
class TablesConfig:
    young: TableLayout
    facility: TableLayout

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TablesConfig:
        young = TableLayout.from_mapping(_mapping(raw.get("young"), "tables.young"), "tables.young")
        facility = TableLayout.from_mapping(
            _mapping(raw.get("facility"), "tables.facility"), "tables.facility"
        )
        if young.value_columns < 1 or facility.value_columns < 1:
            raise ValueError("tables.*.value_columns must be >= 1")
        return cls(young=young, facility=facility)


@dataclass(frozen=True, slots=True)
class RegionConfig:
    target_sido: str | None
    name_property: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RegionConfig:
        target_raw = raw.get("target_sido")
        return cls(
            target_sido=None if target_raw is None else _str(target_raw, "region.target_sido"),
            name_property=_str(raw.get("name_property", "adm_nm"), "region.name_property"),
        )


@dataclass(frozen=True, slots=True)
class LibrariesConfig:
    records_key: str
    lon_field: str
    lat_field: str
    category_field: str
    label_field: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LibrariesConfig:
        return cls(
            records_key=_str(raw.get("records_key", "DATA"), "libraries.records_key"),
            lon_field=_str(raw.get("lon_field", "ydnts"), "libraries.lon_field"),
            lat_field=_str(raw.get("lat_field", "xcnts"), "libraries.lat_field"),
            category_field=_str(raw.get("category_field", "lbrry_se_name"), "libraries.category_field"),
            label_field=_str(raw.get("label_field", "lbrry_name"), "libraries.label_field"),
        )


@dataclass(frozen=True, slots=True)
class AggregationConfig:
    ratio_clamp: float
    population_clamp: float | None
    facility_adjust_by_young_component: int | None
    facility_color_divisor: float
    population_elevation_scale: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> AggregationConfig:
        ratio_clamp = _float(raw.get("ratio_clamp", 2.0), "aggregation.ratio_clamp")
        if ratio_clamp <= 0:
            raise ValueError("aggregation.ratio_clamp must be > 0")
        population_clamp_raw = raw.get("population_clamp")
        population_clamp: float | None = None
        if population_clamp_raw is not None:
            population_clamp = _float(population_clamp_raw, "aggregation.population_clamp")
            if population_clamp <= 0:
                raise ValueError("aggregation.population_clamp must be > 0 or null")
        adjust_raw = raw.get("facility_adjust_by_young_component", 1)
        adjust: int | None
        if adjust_raw is None:
            adjust = None
        else:
            adjust = _int(adjust_raw, "aggregation.facility_adjust_by_young_component")
            if adjust < 0:
                raise ValueError("aggregation.facility_adjust_by_young_component must be >= 0")
        divisor = _float(raw.get("facility_color_divisor", 2.0), "aggregation.facility_color_divisor")
        if divisor <= 0:
            raise ValueError("aggregation.facility_color_divisor must be > 0")
        return cls(
            ratio_clamp=ratio_clamp,
            population_clamp=population_clamp,
            facility_adjust_by_young_component=adjust,
            facility_color_divisor=divisor,
            population_elevation_scale=_float(
                raw.get("population_elevation_scale", 10.0), "aggregation.population_elevation_scale"
            ),
        )


@dataclass(frozen=True, slots=True)
class ViewStateConfig:
    latitude: float
    longitude: float
    zoom: float
    min_zoom: float
    max_zoom: float
    pitch: float
    bearing: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], name: str) -> ViewStateConfig:
        return cls(
            latitude=_float(raw.get("latitude", 37.5663), f"{name}.latitude"),
            longitude=_float(raw.get("longitude", 126.9779), f"{name}.longitude"),
            zoom=_float(raw.get("zoom", 11), f"{name}.zoom"),
            min_zoom=_float(raw.get("min_zoom", 0), f"{name}.min_zoom"),
            max_zoom=_float(raw.get("max_zoom", 16), f"{name}.max_zoom"),
            pitch=_float(raw.get("pitch", 45), f"{name}.pitch"),
            bearing=_float(raw.get("bearing", 0), f"{name}.bearing"),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "zoom": self.zoom,
            "minZoom": self.min_zoom,
            "maxZoom": self.max_zoom,
            "pitch": self.pitch,
            "bearing": self.bearing,
        }


@dataclass(frozen=True, slots=True)
class LightConfig:
    kind: str
    color: tuple[int, int, int]
    intensity: float
    position: tuple[float, ...] | None = None
    timestamp_utc: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], name: str) -> LightConfig:
        kind = _str(raw.get("kind"), f"{name}.kind")
        if kind not in {"ambient", "sun", "point"}:
            raise ValueError(f"{name}.kind must be one of: ambient, point, sun")
        position_raw = raw.get("position")
        position: tuple[float, ...] | None = None
        if position_raw is not None:
            if not isinstance(position_raw, list) or len(position_raw) != 3:
                raise ValueError(f"Expected [lon, lat, z] list for '{name}.position'")
            position = tuple(_float(item, f"{name}.position[]") for item in position_raw)
        if kind == "point" and position is None:
            raise ValueError(f"{name}.position is required for point lights")
        timestamp_raw = raw.get("timestamp_utc")
        return cls(
            kind=kind,
            color=_rgb(raw.get("color", [255, 255, 255]), f"{name}.color"),
            intensity=_float(raw.get("intensity", 1.0), f"{name}.intensity"),
            position=position,
            timestamp_utc=None if timestamp_raw is None else _str(timestamp_raw, f"{name}.timestamp_utc"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "color": list(self.color), "intensity": self.intensity}
        if self.position is not None:
            out["position"] = list(self.position)
        if self.timestamp_utc is not None:
            out["timestamp"] = self.timestamp_utc
        return out


@dataclass(frozen=True, slots=True)
class LightingConfig:
    """Lights handed to the render adapter as values, never shared globals."""

    lights: tuple[LightConfig, ...]
    shadow_color: tuple[float, float, float, float] | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], name: str) -> LightingConfig:
        lights_raw = raw.get("lights", [])
        if not isinstance(lights_raw, list):
            raise ValueError(f"Expected list for '{name}.lights'")
        lights = tuple(
            LightConfig.from_mapping(_mapping(item, f"{name}.lights[{idx}]"), f"{name}.lights[{idx}]")
            for idx, item in enumerate(lights_raw)
        )
        shadow_raw = raw.get("shadow_color")
        shadow: tuple[float, float, float, float] | None = None
        if shadow_raw is not None:
            if not isinstance(shadow_raw, list) or len(shadow_raw) != 4:
                raise ValueError(f"Expected [r, g, b, a] list for '{name}.shadow_color'")
            shadow = cast(
                tuple[float, float, float, float],
                tuple(_float(item, f"{name}.shadow_color[]") for item in shadow_raw),
            )
        return cls(lights=lights, shadow_color=shadow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lights": [light.to_dict() for light in self.lights],
            "shadowColor": list(self.shadow_color) if self.shadow_color is not None else None,
        }


@dataclass(frozen=True, slots=True)
class HexagonConfig:
    radius: float
    coverage: float
    elevation_range: tuple[float, float]
    elevation_scale: float
    upper_percentile: float
    color_range: tuple[tuple[int, int, int], ...]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> HexagonConfig:
        elevation_raw = raw.get("elevation_range", [5, 100])
        if not isinstance(elevation_raw, list) or len(elevation_raw) != 2:
            raise ValueError("Expected [min, max] list for 'render.libraries.hexagon.elevation_range'")
        colors_raw = raw.get("color_range")
        if not isinstance(colors_raw, list) or not colors_raw:
            raise ValueError("Expected non-empty list for 'render.libraries.hexagon.color_range'")
        return cls(
            radius=_float(raw.get("radius", 500), "render.libraries.hexagon.radius"),
            coverage=_float(raw.get("coverage", 0.8), "render.libraries.hexagon.coverage"),
            elevation_range=(
                _float(elevation_raw[0], "render.libraries.hexagon.elevation_range[0]"),
                _float(elevation_raw[1], "render.libraries.hexagon.elevation_range[1]"),
            ),
            elevation_scale=_float(raw.get("elevation_scale", 30), "render.libraries.hexagon.elevation_scale"),
            upper_percentile=_float(
                raw.get("upper_percentile", 100), "render.libraries.hexagon.upper_percentile"
            ),
            color_range=tuple(
                _rgb(item, f"render.libraries.hexagon.color_range[{idx}]")
                for idx, item in enumerate(colors_raw)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "radius": self.radius,
            "coverage": self.coverage,
            "elevationRange": list(self.elevation_range),
            "elevationScale": self.elevation_scale,
            "upperPercentile": self.upper_percentile,
            "colorRange": [list(color) for color in self.color_range],
        }


@dataclass(frozen=True, slots=True)
class VariantRenderConfig:
    map_style: str
    opacity: float
    view: ViewStateConfig
    lighting: LightingConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], name: str) -> VariantRenderConfig:
        return cls(
            map_style=_str(raw.get("map_style", "mapbox://styles/mapbox/light-v9"), f"{name}.map_style"),
            opacity=_float(raw.get("opacity", 0.9), f"{name}.opacity"),
            view=ViewStateConfig.from_mapping(_mapping(raw.get("view", {}), f"{name}.view"), f"{name}.view"),
            lighting=LightingConfig.from_mapping(
                _mapping(raw.get("lighting", {}), f"{name}.lighting"), f"{name}.lighting"
            ),
        )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    access_token_env: str
    children: VariantRenderConfig
    population: VariantRenderConfig
    libraries: VariantRenderConfig
    hexagon: HexagonConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        libraries_raw = _mapping(raw.get("libraries"), "render.libraries")
        return cls(
            access_token_env=_str(raw.get("access_token_env", "MapboxAccessToken"), "render.access_token_env"),
            children=VariantRenderConfig.from_mapping(
                _mapping(raw.get("children"), "render.children"), "render.children"
            ),
            population=VariantRenderConfig.from_mapping(
                _mapping(raw.get("population"), "render.population"), "render.population"
            ),
            libraries=VariantRenderConfig.from_mapping(libraries_raw, "render.libraries"),
            hexagon=HexagonConfig.from_mapping(
                _mapping(libraries_raw.get("hexagon"), "render.libraries.hexagon")
            ),
        )


@dataclass(frozen=True, slots=True)
class FetchConfig:
    request_timeout_s: int
    user_agent: str
    max_workers: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> FetchConfig:
        timeout = _int(raw.get("request_timeout_s", 30), "fetch.request_timeout_s")
        max_workers = _int(raw.get("max_workers", 4), "fetch.max_workers")
        if timeout <= 0:
            raise ValueError("fetch.request_timeout_s must be > 0")
        if max_workers < 1:
            raise ValueError("fetch.max_workers must be >= 1")
        return cls(
            request_timeout_s=timeout,
            user_agent=_str(raw.get("user_agent", "mapbuilder/0.1"), "fetch.user_agent"),
            max_workers=max_workers,
        )


@dataclass(frozen=True, slots=True)
class QaConfig:
    generate_index: bool
    swatch_size_px: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> QaConfig:
        return cls(
            generate_index=_bool(raw.get("generate_index"), "qa.generate_index"),
            swatch_size_px=_int(raw.get("swatch_size_px", 14), "qa.swatch_size_px"),
        )


@dataclass(frozen=True, slots=True)
class PreviewConfig:
    enabled: bool
    width_px: int
    height_px: int
    dpi: int
    background: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PreviewConfig:
        return cls(
            enabled=_bool(raw.get("enabled"), "preview.enabled"),
            width_px=_int(raw.get("width_px", 1200), "preview.width_px"),
            height_px=_int(raw.get("height_px", 1000), "preview.height_px"),
            dpi=_int(raw.get("dpi", 100), "preview.dpi"),
            background=_str(raw.get("background", "white"), "preview.background"),
        )


@dataclass(frozen=True, slots=True)
class BuildConfig:
    write_manifest: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> BuildConfig:
        return cls(write_manifest=_bool(raw.get("write_manifest"), "build.write_manifest"))


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    project: ProjectConfig
    paths: PathsConfig
    sources: SourcesConfig
    tables: TablesConfig
    region: RegionConfig
    libraries: LibrariesConfig
    aggregation: AggregationConfig
    render: RenderConfig
    fetch: FetchConfig
    qa: QaConfig
    preview: PreviewConfig
    build: BuildConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            project=ProjectConfig.from_mapping(_mapping(raw.get("project"), "project")),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            sources=SourcesConfig.from_mapping(_mapping(raw.get("sources"), "sources"), root_dir),
            tables=TablesConfig.from_mapping(_mapping(raw.get("tables"), "tables")),
            region=RegionConfig.from_mapping(_mapping(raw.get("region"), "region")),
            libraries=LibrariesConfig.from_mapping(_mapping(raw.get("libraries", {}), "libraries")),
            aggregation=AggregationConfig.from_mapping(
                _mapping(raw.get("aggregation", {}), "aggregation")
            ),
            render=RenderConfig.from_mapping(_mapping(raw.get("render"), "render")),
            fetch=FetchConfig.from_mapping(_mapping(raw.get("fetch", {}), "fetch")),
            qa=QaConfig.from_mapping(_mapping(raw.get("qa"), "qa")),
            preview=PreviewConfig.from_mapping(_mapping(raw.get("preview"), "preview")),
            build=BuildConfig.from_mapping(_mapping(raw.get("build"), "build")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
