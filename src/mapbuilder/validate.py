"""Validation layer for config and input datasets."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import AppConfig
from .regions import filter_features
from .sources import parse_feature_collection, parse_library_points
from .tabular import parse_table


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks local inputs parse and the environment the front-end needs."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self) -> ValidationReport:
        report = ValidationReport()
        self._validate_local_files(report)
        self._validate_boundaries(report)
        self._validate_tables(report)
        self._validate_libraries(report)
        self._validate_access_token(report)
        return report

    def _validate_local_files(self, report: ValidationReport) -> None:
        for path in self.cfg.sources.local_files:
            if not path.exists():
                report.add_error(f"Missing input file: {path}")
        sources = self.cfg.sources
        for name in ("young", "facility", "boundaries", "libraries"):
            source = getattr(sources, name)
            if source.remote:
                report.add_info(f"Source '{name}' is remote and is checked at fetch time: {source.location}")

    def _read_local(self, name: str) -> str | None:
        source = getattr(self.cfg.sources, name)
        if source.remote:
            return None
        path = Path(source.location)
        if not path.exists():
            return None
        return path.read_text(encoding=source.encoding)

    def _validate_boundaries(self, report: ValidationReport) -> None:
        try:
            text = self._read_local("boundaries")
            if text is None:
                return
            features = parse_feature_collection(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
            report.add_error(f"Failed parsing boundary file: {exc}")
            return
        selected = filter_features(features, self.cfg.region.target_sido)
        report.add_info(f"Boundary file holds {len(features)} features, {len(selected)} in scope")
        if not selected:
            report.add_error(f"No boundary features with sidonm == {self.cfg.region.target_sido!r}")
        name_property = self.cfg.region.name_property
        missing = [
            idx for idx, feature in enumerate(selected)
            if not isinstance((feature.get("properties") or {}).get(name_property), str)
        ]
        if missing:
            report.add_error(f"{len(missing)} features lack a '{name_property}' property")

    def _validate_tables(self, report: ValidationReport) -> None:
        for name in ("young", "facility"):
            try:
                text = self._read_local(name)
                if text is None:
                    continue
                rows = parse_table(text, getattr(self.cfg.tables, name))
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                report.add_error(f"Failed parsing {name} table: {exc}")
                continue
            if not rows:
                report.add_warning(f"{name} table has no dong rows after filtering")
            else:
                report.add_info(f"{name} table parsed into {len(rows)} dong rows")

    def _validate_libraries(self, report: ValidationReport) -> None:
        try:
            text = self._read_local("libraries")
            if text is None:
                return
            points = parse_library_points(text, self.cfg.libraries)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
            report.add_error(f"Failed parsing library file: {exc}")
            return
        report.add_info(f"Library file holds {len(points)} records")

    def _validate_access_token(self, report: ValidationReport) -> None:
        env_name = self.cfg.render.access_token_env
        token = os.environ.get(env_name, "")
        if len(token) < 2:
            report.add_warning(f"Environment variable {env_name} is not set; the map front-end needs a token.")


def format_report_lines(report: ValidationReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation completed with no errors.")
    return lines
