"""Translation of uploaded nondh status labels to the internal vocabulary"""
from typing import Optional

from lrms.models.nondh import NondhStatus

# Keys are compared case-insensitively with surrounding whitespace removed
STATUS_ALIASES = {
    # Internal vocabulary, accepted verbatim
    "valid": NondhStatus.VALID,
    "invalid": NondhStatus.INVALID,
    "nullified": NondhStatus.NULLIFIED,
    # Labels used on the revenue record
    "pramaanik": NondhStatus.VALID,
    "radd": NondhStatus.INVALID,
    "na manjoor": NondhStatus.NULLIFIED,
    # English renderings of the same labels
    "certified": NondhStatus.VALID,
    "cancelled": NondhStatus.INVALID,
    "canceled": NondhStatus.INVALID,
    "rejected": NondhStatus.NULLIFIED,
}


def map_status(raw_status: Optional[str]) -> NondhStatus:
    """Map an uploaded status label to a NondhStatus.

    Missing or unrecognized labels map to VALID.
    """
    if isinstance(raw_status, NondhStatus):
        return raw_status
    if not raw_status:
        return NondhStatus.VALID
    return STATUS_ALIASES.get(str(raw_status).strip().lower(), NondhStatus.VALID)
