"""CLI entrypoint for the Seoul dong map builder."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from .config import AppConfig, load_config
from .models import BuildManifest
from .pipeline import VARIANTS, Pipeline, PipelineReport, format_pipeline_lines
from .util import detect_git_commit, ensure_directories, sha256_file, setup_logging, write_json
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("mapbuilder.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapbuilder",
        description="Build data and render payloads for Seoul dong maps.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    build_p = subparsers.add_parser("build", help="Validate inputs and build every map variant.")
    add_common(build_p)
    build_p.add_argument(
        "--variant",
        action="append",
        choices=VARIANTS,
        default=[],
        help="Build only this variant. Can be repeated.",
    )

    validate_p = subparsers.add_parser("validate", help="Validate config and input files.")
    add_common(validate_p)

    children_p = subparsers.add_parser("children", help="Childcare facilities per young resident.")
    add_common(children_p)

    population_p = subparsers.add_parser(
        "population",
        help="Young population elevation with adjusted facility colouring.",
    )
    add_common(population_p)

    libraries_p = subparsers.add_parser("libraries", help="Libraries joined to their dongs.")
    add_common(libraries_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "build.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_variant(cfg: AppConfig, variant: str) -> PipelineReport | None:
    try:
        report = Pipeline(cfg).run(variant)
    except Exception as exc:
        LOGGER.error("%s pipeline failed: %s", variant, exc)
        return None
    for line in format_pipeline_lines(report):
        LOGGER.info(line)
    return report


def _run_single(cfg: AppConfig, variant: str) -> int:
    report = _run_variant(cfg, variant)
    return 0 if report is not None and report.ok else 1


def _run_build(cfg: AppConfig, *, variants: Sequence[str]) -> int:
    LOGGER.info("Starting build pipeline.")

    validation = Validator(cfg).run()
    for line in format_report_lines(validation):
        LOGGER.info(line)
    if not validation.ok:
        LOGGER.error("Build aborted due to validation errors.")
        return 1

    selected = list(variants) or list(VARIANTS)
    steps: dict[str, str] = {"validate": "ok"}
    artifacts: dict[str, str] = {}
    failed = False
    for variant in selected:
        report = _run_variant(cfg, variant)
        if report is None or not report.ok:
            steps[variant] = "error"
            failed = True
            continue
        steps[variant] = "ok"
        for name, path in report.outputs.items():
            artifacts[f"{variant}_{name}"] = str(path)

    if cfg.build.write_manifest:
        manifest = BuildManifest.create(
            config_hash_sha256=sha256_file(cfg.source_path),
            git_commit=detect_git_commit(cfg.source_path.parent),
            steps=steps,
            artifacts=artifacts,
        )
        manifest_path = cfg.paths.output_dir / "build_manifest.json"
        write_json(manifest_path, manifest.to_dict())
        LOGGER.info("Build manifest written to %s", manifest_path)

    if failed:
        LOGGER.error("Build finished with errors.")
        return 1
    LOGGER.info("Build finished.")
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "build":
        return _run_build(cfg, variants=[str(item) for item in args.variant])
    if command == "validate":
        return _run_validate(cfg)
    if command in VARIANTS:
        return _run_single(cfg, command)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
