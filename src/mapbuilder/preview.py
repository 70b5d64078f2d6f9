"""Static PNG preview of a variant for quick visual checks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config import PreviewConfig
from .models import Coordinate, Region

_LOGGER = logging.getLogger("mapbuilder.preview")

_OUTLINE_COLOR = "#ffffff"
_POINT_COLOR = "#222222"


def render_preview(
    regions: Sequence[Region],
    colors: Mapping[str, Sequence[int]],
    output_path: Path,
    preview: PreviewConfig,
    *,
    points: Sequence[Coordinate] = (),
    title: str | None = None,
) -> Path:
    """Draw every dong ring filled with its colour, plus optional points."""
    plt, patches = _require_matplotlib()
    fig, ax = plt.subplots(
        figsize=(preview.width_px / preview.dpi, preview.height_px / preview.dpi),
        dpi=preview.dpi,
    )
    try:
        fig.patch.set_facecolor(preview.background)
        ax.set_facecolor(preview.background)
        for region in regions:
            rgb = colors.get(region.name, (200, 200, 200))
            ax.add_patch(
                patches.Polygon(
                    region.ring.to_list(),
                    closed=True,
                    facecolor=tuple(channel / 255.0 for channel in rgb),
                    edgecolor=_OUTLINE_COLOR,
                    linewidth=0.4,
                )
            )
        if points:
            ax.scatter(
                [lon for lon, _ in points],
                [lat for _, lat in points],
                s=4,
                c=_POINT_COLOR,
                zorder=3,
            )
        ax.autoscale_view()
        ax.set_aspect("equal", adjustable="datalim")
        ax.set_axis_off()
        if title:
            ax.set_title(title)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=preview.dpi, facecolor=fig.get_facecolor())
    finally:
        plt.close(fig)
    _LOGGER.info("Preview written to %s", output_path)
    return output_path


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.patches as patches
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for preview rendering") from exc
    return (plt, patches)
