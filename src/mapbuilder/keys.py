"""Administrative-name canonicalization shared by every data source."""

from __future__ import annotations

MIDDLE_DOT = "·"


def normalize_region_name(raw: str) -> str:
    """Return the join key for a dong name.

    Only the last whitespace-delimited token is kept, so
    ``"서울특별시 종로구 청운·효자동"`` and ``"청운.효자동"`` both become
    ``"청운·효자동"``. Some exports abbreviate with ``.`` where the boundary
    file uses the middle dot.
    """
    tokens = str(raw).split()
    if not tokens:
        return ""
    return tokens[-1].replace(".", MIDDLE_DOT)
