"""Parsing of the district statistics exports into typed rows."""

from __future__ import annotations

import io
import logging
import math
from typing import Any

import pandas as pd

from .keys import normalize_region_name
from .models import TableLayout, TabularRow

_LOGGER = logging.getLogger("mapbuilder.tabular")


def parse_number(value: Any) -> float:
    """Parse a locale-formatted number such as ``"1,234"``.

    A blank cell reads as ``0.0``. Anything else that is not numeric once the
    thousands separators are gone becomes NaN; a bad cell never aborts the
    parse. A missing value (``None``) is NaN too.
    """
    if value is None:
        return math.nan
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value).replace(",", "").strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        _LOGGER.debug("Non-numeric cell %r parsed as NaN", value)
        return math.nan


def read_table(text: str) -> list[list[str]]:
    """Split comma-delimited text into rows of raw string cells.

    Exports are ragged (title lines, merged header cells), so the frame is
    sized to the widest line and short rows come back padded with ``""``.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []
    # Upper bound: quoted thousands separators only over-count.
    width = max(line.count(",") + 1 for line in lines)
    frame = pd.read_csv(
        io.StringIO("\n".join(lines)),
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        engine="python",
    ).fillna("")
    return [[str(cell).strip() for cell in record] for record in frame.itertuples(index=False, name=None)]


def parse_table(text: str, layout: TableLayout) -> list[TabularRow]:
    """Parse one export into ``[key, *measures]`` rows in input order.

    Summary rows (totals, subtotals, unknowns and the header) are dropped by
    their kind field so they do not double count against the leaf dongs.
    Duplicated keys are kept; the region merge decides which one wins.
    """
    excluded = set(layout.excluded_kinds)
    parsed: list[TabularRow] = []
    skipped_kind = 0
    skipped_short = 0
    for idx, cells in enumerate(read_table(text)):
        kind = cells[layout.kind_column] if layout.kind_column < len(cells) else ""
        if kind in excluded:
            skipped_kind += 1
            continue
        data = cells[layout.leading_columns :]
        if len(cells) < layout.min_width or not data[0]:
            _LOGGER.debug("Row %d has no dong name or too few cells; skipped", idx)
            skipped_short += 1
            continue
        key = normalize_region_name(data[0])
        values = tuple(parse_number(cell) for cell in data[1 : 1 + layout.value_columns])
        parsed.append(TabularRow(key=key, values=values))
    _LOGGER.debug(
        "Parsed %d rows (excluded kinds: %d, short rows: %d)",
        len(parsed),
        skipped_kind,
        skipped_short,
    )
    return parsed
