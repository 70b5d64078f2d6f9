"""QA artifact generation."""

from __future__ import annotations

import math
from html import escape
from pathlib import Path
from typing import Mapping, Sequence

from .models import MetricValue, Region


def _format_metric(value: MetricValue | None) -> str:
    if value is None:
        return ""
    if isinstance(value, tuple):
        return " / ".join(_format_metric(item) for item in value)
    if math.isnan(value):
        return "NaN"
    if float(value).is_integer():
        return f"{value:.0f}"
    return f"{value:.4f}"


def write_qa_index(
    *,
    title: str,
    regions: Sequence[Region],
    colors: Mapping[str, Sequence[int]],
    metric_columns: Sequence[str],
    output_html: Path,
    swatch_size_px: int,
    name_property: str = "adm_nm",
) -> Path:
    """Generate an HTML table of every dong with its colour and metrics."""
    header_cells = "".join(f"<th>{escape(column)}</th>" for column in metric_columns)
    rows: list[str] = []
    for region in regions:
        r, g, b = colors.get(region.name, (255, 255, 255))
        full_name = str(region.properties.get(name_property, region.name))
        metric_cells = "".join(
            f"<td>{escape(_format_metric(region.metrics.get(column)))}</td>" for column in metric_columns
        )
        rows.append(
            "<tr>"
            f"<td><span class='swatch' style='background: rgb({r}, {g}, {b})'></span></td>"
            f"<td>{escape(region.name)}</td>"
            f"<td class='full'>{escape(full_name)}</td>"
            f"{metric_cells}"
            "</tr>"
        )

    html = "\n".join(
        [
            "<!doctype html>",
            "<html lang='ko'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <meta name='viewport' content='width=device-width, initial-scale=1'>",
            f"  <title>{escape(title)}</title>",
            "  <style>",
            "    body { font-family: Arial, sans-serif; margin: 16px; }",
            "    table { border-collapse: collapse; }",
            "    th, td { border-bottom: 1px solid #ddd; padding: 4px 8px; text-align: left; font-size: 13px; }",
            "    td.full { color: #666; }",
            "    .swatch { "
            f"display: inline-block; width: {swatch_size_px}px; height: {swatch_size_px}px; "
            "border: 1px solid #999; }",
            "  </style>",
            "</head>",
            "<body>",
            f"  <h1>{escape(title)}</h1>",
            f"  <p>{len(regions)} dongs</p>",
            "  <table>",
            f"    <tr><th></th><th>dong</th><th>{escape(name_property)}</th>{header_cells}</tr>",
            *(f"    {row}" for row in rows),
            "  </table>",
            "</body>",
            "</html>",
            "",
        ]
    )
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
    return output_html
