"""Area unit conversion

Every area stored by the application is normalized to square meters.
Uploads and forms express area either directly in square meters or as an
acre/guntha pair (40 guntha = 1 acre).
"""

from typing import Any, Dict, Tuple, Union

SQ_METERS_PER_ACRE = 4046.86
SQ_METERS_PER_GUNTHA = 101.17
GUNTHAS_PER_ACRE = 40

SQ_M = "sq_m"
ACRE = "acre"
GUNTHA = "guntha"

_SQ_METERS_PER_UNIT = {
    ACRE: SQ_METERS_PER_ACRE,
    GUNTHA: SQ_METERS_PER_GUNTHA,
    SQ_M: 1,
}


def to_square_meters(value: float, unit: str) -> float:
    """Convert a value in the given unit to square meters.

    Unknown units are treated as square meters already.
    """
    factor = _SQ_METERS_PER_UNIT.get(unit)
    if factor is None:
        return value
    return value * factor


def from_square_meters(sq_meters: float, target_unit: str) -> float:
    """Convert square meters to the given unit"""
    factor = _SQ_METERS_PER_UNIT.get(target_unit)
    if factor is None:
        return sq_meters
    return sq_meters / factor


def parse_area(area: Union[Dict[str, Any], float, None]) -> Tuple[float, str]:
    """Normalize an uploaded area to (square meters, "sq_m").

    Accepts a bare number (already square meters), ``{"sqm": v}`` or
    ``{"acre": a, "guntha": g}``; anything else, including ``None``, is
    zero area.
    """
    if isinstance(area, (int, float)) and not isinstance(area, bool):
        return area, SQ_M

    if not area or not isinstance(area, dict):
        return 0, SQ_M

    if area.get("sqm") is not None:
        return area["sqm"], SQ_M

    if area.get("acre") is not None or area.get("guntha") is not None:
        acres = area.get("acre") or 0
        gunthas = area.get("guntha") or 0
        total = to_square_meters(acres, ACRE) + to_square_meters(gunthas, GUNTHA)
        return total, SQ_M

    return 0, SQ_M
