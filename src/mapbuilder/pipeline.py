"""The three map variants: childcare ratio, young population, libraries.

Each run follows the same order: fetch every input as one batch, seed the
region index from the boundaries, merge the tables, derive per-dong metrics,
and only then compute the corpus statistics that drive the colour scales.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .aggregate import (
    apply_max_ratios,
    apply_ratios,
    corpus_stats,
    elevation,
    hue_color,
    normalized_intensity,
)
from .config import AppConfig
from .export import (
    choropleth_payload,
    enriched_feature,
    feature_collection,
    hexagon_payload,
    point_rows,
)
from .geometry import augment_points, match_points
from .models import AggregateStats, AugmentedPoint, MatchResult, PointObservation, Region, TabularRow, Unmatched
from .preview import render_preview
from .qa import write_qa_index
from .regions import MergeSummary, RegionIndex, filter_features, merge_scalar, merge_vector, region_values
from .sources import SourceRepository, parse_feature_collection, parse_library_points
from .tabular import parse_table
from .util import write_json

_LOGGER = logging.getLogger("mapbuilder.pipeline")

VARIANTS = ("children", "population", "libraries")

YOUNG_TOTAL = 0


@dataclass(slots=True)
class PipelineReport:
    """Outcome of one variant run."""

    variant: str
    outputs: dict[str, Path] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


@dataclass(slots=True)
class RegionBuild:
    """Seeded and merged regions of one run, before derivation."""

    index: RegionIndex
    merges: dict[str, MergeSummary]

    @property
    def regions(self) -> list[Region]:
        return self.index.regions()

    def empty_keys(self, metric: str, component: int | None = None) -> list[str]:
        """Dong keys whose shared record still holds zero for ``metric``."""
        return [key for key in self.index.keys() if self.index.get(key).metric(metric, component) == 0]


@dataclass(slots=True)
class LibraryJoin:
    points: list[PointObservation]
    results: list[MatchResult]
    augmented: list[AugmentedPoint]

    @property
    def unmatched(self) -> list[PointObservation]:
        return [result.point for result in self.results if isinstance(result, Unmatched)]


def build_regions(
    features: Sequence[Any],
    young_rows: Sequence[TabularRow],
    facility_rows: Sequence[TabularRow],
    *,
    young_width: int,
    adjust_by_young_component: int | None = None,
    name_property: str = "adm_nm",
) -> RegionBuild:
    """Seed one region per feature, then merge young population before facilities.

    Young population goes first because the facility count may be divided
    by ``1 + young[adjust_by_young_component]``.
    """
    index = RegionIndex.from_features(
        features,
        {"young": tuple(0.0 for _ in range(young_width)), "facil": 0.0},
        name_property=name_property,
    )
    merges = {"young": index.merge(young_rows, merge_vector("young", young_width))}
    divide_by = None if adjust_by_young_component is None else ("young", adjust_by_young_component)
    merges["facil"] = index.merge(facility_rows, merge_scalar("facil", divide_by=divide_by))
    return RegionBuild(index=index, merges=merges)


def derive_children(regions: Sequence[Region]) -> AggregateStats:
    """Facilities per young resident for every dong, then their corpus mean."""
    apply_ratios(regions, numerator="facil", denominator="young", component=YOUNG_TOTAL)
    return corpus_stats(region_values(regions, "ratio"))


def derive_population(regions: Sequence[Region]) -> dict[str, AggregateStats]:
    young = apply_max_ratios(regions, metric="young", component=YOUNG_TOTAL, target="popRatio")
    facil = corpus_stats(region_values(regions, "facil"))
    return {"young": young, "facil": facil}


def join_libraries(points: Sequence[PointObservation], regions: Sequence[Region]) -> LibraryJoin:
    results = match_points(points, regions)
    return LibraryJoin(points=list(points), results=results, augmented=augment_points(results))


class Pipeline:
    """Runs map variants against one configuration."""

    def __init__(self, cfg: AppConfig, repo: SourceRepository | None = None) -> None:
        self.cfg = cfg
        self.repo = repo or SourceRepository(cfg.fetch)

    def run(self, variant: str) -> PipelineReport:
        if variant == "children":
            return self.run_children()
        if variant == "population":
            return self.run_population()
        if variant == "libraries":
            return self.run_libraries()
        raise ValueError(f"Unknown variant: {variant}")

    def _load_regions(self, *, adjust: bool, extra: Sequence[Any] = ()) -> tuple[RegionBuild, list[str]]:
        sources = self.cfg.sources
        texts = self.repo.fetch_batch([sources.young, sources.facility, sources.boundaries, *extra])
        young_text, facility_text, boundary_text = texts[:3]
        features = filter_features(parse_feature_collection(boundary_text), self.cfg.region.target_sido)
        tables = self.cfg.tables
        build = build_regions(
            features,
            parse_table(young_text, tables.young),
            parse_table(facility_text, tables.facility),
            young_width=tables.young.value_columns,
            adjust_by_young_component=(
                self.cfg.aggregation.facility_adjust_by_young_component if adjust else None
            ),
            name_property=self.cfg.region.name_property,
        )
        return build, texts[3:]

    def run_children(self) -> PipelineReport:
        report = PipelineReport(variant="children")
        build, _ = self._load_regions(adjust=False)
        regions = build.regions
        stats = derive_children(regions)
        clamp = self.cfg.aggregation.ratio_clamp

        colors = {
            region.name: hue_color(normalized_intensity(region.metric("ratio"), stats.mean, clamp))
            for region in regions
        }
        features = [enriched_feature(region, fill_color=colors[region.name]) for region in regions]
        self._write_choropleth(report, features, {"ratio": stats}, extruded=False)
        self._write_extras(report, build, colors, metric_columns=("young", "facil", "ratio"))
        report.add_info(f"Mean facility/young ratio over {stats.count} dongs: {stats.mean:.6f}")
        return report

    def run_population(self) -> PipelineReport:
        report = PipelineReport(variant="population")
        build, _ = self._load_regions(adjust=True)
        regions = build.regions
        stats = derive_population(regions)
        aggregation = self.cfg.aggregation

        colors: dict[str, tuple[int, int, int]] = {}
        features: list[dict[str, Any]] = []
        for region in regions:
            adjusted = region.metric("facil") / aggregation.facility_color_divisor
            colors[region.name] = hue_color(
                normalized_intensity(adjusted, stats["facil"].mean, aggregation.population_clamp)
            )
            features.append(
                enriched_feature(
                    region,
                    fill_color=colors[region.name],
                    elevation=elevation(
                        region.metric("young", YOUNG_TOTAL), aggregation.population_elevation_scale
                    ),
                )
            )
        self._write_choropleth(report, features, stats, extruded=True)
        self._write_extras(report, build, colors, metric_columns=("young", "facil", "popRatio"))
        report.add_info(
            f"Young population max {stats['young'].max:.0f}, adjusted facility mean {stats['facil'].mean:.6f}"
        )
        return report

    def run_libraries(self) -> PipelineReport:
        report = PipelineReport(variant="libraries")
        build, (library_text,) = self._load_regions(adjust=False, extra=[self.cfg.sources.libraries])
        regions = build.regions
        ratio_stats = derive_children(regions)
        points = parse_library_points(library_text, self.cfg.libraries)
        joined = join_libraries(points, regions)

        out_dir = self.cfg.paths.output_dir
        data_path = out_dir / "libraries.json"
        write_json(data_path, point_rows(joined.augmented))
        payload_path = out_dir / "libraries_payload.json"
        write_json(
            payload_path,
            hexagon_payload(
                self.cfg.render.libraries,
                self.cfg.render.hexagon,
                data_file=data_path.name,
                stats={"ratio": ratio_stats},
            ),
        )
        report.outputs["data"] = data_path
        report.outputs["payload"] = payload_path

        unmatched = joined.unmatched
        diagnostics = self._diagnostics(build)
        diagnostics["unmatched_points"] = [point.as_list() for point in unmatched]
        diagnostics_path = out_dir / "libraries_diagnostics.json"
        write_json(diagnostics_path, diagnostics)
        report.outputs["diagnostics"] = diagnostics_path

        if self.cfg.preview.enabled:
            colors = {
                region.name: hue_color(
                    normalized_intensity(region.metric("ratio"), ratio_stats.mean, self.cfg.aggregation.ratio_clamp)
                )
                for region in regions
            }
            report.outputs["preview"] = render_preview(
                regions,
                colors,
                out_dir / "libraries_preview.png",
                self.cfg.preview,
                points=[point.position for point in points],
                title="libraries",
            )

        if unmatched:
            report.add_warning(f"{len(unmatched)} of {len(points)} libraries lie outside every dong")
        report.summary = {
            "points_total": len(points),
            "points_matched": len(joined.augmented),
            "points_unmatched": len(unmatched),
        }
        report.add_info(f"Joined {len(joined.augmented)} libraries to {len(regions)} dongs")
        return report

    def _write_choropleth(
        self,
        report: PipelineReport,
        features: list[dict[str, Any]],
        stats: dict[str, AggregateStats],
        *,
        extruded: bool,
    ) -> None:
        variant = report.variant
        out_dir = self.cfg.paths.output_dir
        data_path = out_dir / f"{variant}.geojson"
        write_json(data_path, feature_collection(features))
        payload_path = out_dir / f"{variant}_payload.json"
        write_json(
            payload_path,
            choropleth_payload(
                variant,
                getattr(self.cfg.render, variant),
                data_file=data_path.name,
                stats=stats,
                extruded=extruded,
            ),
        )
        report.outputs["data"] = data_path
        report.outputs["payload"] = payload_path

    def _write_extras(
        self,
        report: PipelineReport,
        build: RegionBuild,
        colors: dict[str, tuple[int, int, int]],
        *,
        metric_columns: Sequence[str],
    ) -> None:
        variant = report.variant
        out_dir = self.cfg.paths.output_dir
        diagnostics = self._diagnostics(build)
        diagnostics_path = out_dir / f"{variant}_diagnostics.json"
        write_json(diagnostics_path, diagnostics)
        report.outputs["diagnostics"] = diagnostics_path

        for name, merge in build.merges.items():
            if merge.discarded:
                report.add_info(f"{merge.discarded} {name} rows had no matching dong and were discarded")
        without_data = diagnostics["regions_without_young"]
        if without_data:
            report.add_info(f"{len(without_data)} dongs have no young population data")

        regions = build.regions
        if self.cfg.qa.generate_index:
            report.outputs["qa"] = write_qa_index(
                title=f"{self.cfg.project.name}: {variant}",
                regions=regions,
                colors=colors,
                metric_columns=metric_columns,
                output_html=out_dir / f"{variant}_qa.html",
                swatch_size_px=self.cfg.qa.swatch_size_px,
                name_property=self.cfg.region.name_property,
            )
        if self.cfg.preview.enabled:
            report.outputs["preview"] = render_preview(
                regions,
                colors,
                out_dir / f"{variant}_preview.png",
                self.cfg.preview,
                title=variant,
            )
        report.summary = {
            "regions": len(regions),
            **{f"{name}_matched": merge.matched for name, merge in build.merges.items()},
            **{f"{name}_discarded": merge.discarded for name, merge in build.merges.items()},
        }

    @staticmethod
    def _diagnostics(build: RegionBuild) -> dict[str, Any]:
        return {
            "regions_total": len(build.index),
            "keys_total": len(build.index.keys()),
            "shared_keys": [key for key in build.index.keys() if len(build.index.regions_for(key)) > 1],
            "merges": {name: merge.to_dict() for name, merge in build.merges.items()},
            "regions_without_young": build.empty_keys("young", YOUNG_TOTAL),
            "regions_without_facil": build.empty_keys("facil"),
        }


def format_pipeline_lines(report: PipelineReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    for name, path in sorted(report.outputs.items()):
        lines.append(f"[INFO] {report.variant} {name}: {path}")
    if report.summary:
        summary = ", ".join(f"{key}={value}" for key, value in report.summary.items())
        lines.append(f"[INFO] {report.variant} summary: {summary}")
    if report.ok:
        lines.append(f"[OK] {report.variant} completed with no errors.")
    return lines
