"""Survey number reference classification

A nondh lists the survey numbers it affects, each tagged with its kind:
a direct survey number (``s_no``), a block number or a re-survey number.
The primary kind of a reference list is the highest priority kind present.

Two priority tables exist. The display table ranks direct survey numbers
first; the sequencing table used to order nondhs for the validity chain
ranks them in reverse. They are kept as separate names on purpose.
"""

import json
import re
import logging
from typing import Any, Iterable, List, Optional, Sequence

from lrms.models.nondh import SurveyNumberType

logger = logging.getLogger(__name__)

DISPLAY_PRIORITY: Sequence[SurveyNumberType] = (
    SurveyNumberType.S_NO,
    SurveyNumberType.BLOCK_NO,
    SurveyNumberType.RE_SURVEY_NO,
)

SEQUENCE_PRIORITY: Sequence[SurveyNumberType] = tuple(reversed(DISPLAY_PRIORITY))

_DIGITS = re.compile(r"(\d+)")


def reference_kind(reference: Any) -> SurveyNumberType:
    """Kind of a single reference.

    References arrive as dicts or as JSON encoded strings. Anything that
    cannot be read, or carries an unknown tag, counts as a direct survey number.
    """
    parsed = _as_dict(reference)
    if parsed is None:
        return SurveyNumberType.S_NO

    try:
        return SurveyNumberType(parsed.get("type") or SurveyNumberType.S_NO)
    except ValueError:
        logger.debug(f"Unknown survey number type {parsed.get('type')!r}, using s_no")
        return SurveyNumberType.S_NO


def reference_kinds(references: Iterable[Any]) -> List[SurveyNumberType]:
    return [reference_kind(ref) for ref in references or []]


def _first_present(kinds: List[SurveyNumberType], priority: Sequence[SurveyNumberType]) -> SurveyNumberType:
    for kind in priority:
        if kind in kinds:
            return kind
    return SurveyNumberType.S_NO


def primary_kind(references: Iterable[Any]) -> SurveyNumberType:
    """Primary kind of a reference list for display (s_no > block_no > re_survey_no)"""
    return _first_present(reference_kinds(references), DISPLAY_PRIORITY)


def sequencing_kind(references: Iterable[Any]) -> SurveyNumberType:
    """Primary kind of a reference list for sequencing (re_survey_no > block_no > s_no)"""
    return _first_present(reference_kinds(references), SEQUENCE_PRIORITY)


def sequencing_rank(references: Iterable[Any]) -> int:
    """Position of the list's sequencing kind in the sequencing table"""
    return SEQUENCE_PRIORITY.index(sequencing_kind(references))


def sort_references(references: Iterable[Any]) -> List[Any]:
    """Order references for display: by display priority, then survey number"""
    def key(ref):
        parsed = _as_dict(ref)
        number = str(parsed.get("number", "")) if parsed else str(ref)
        return DISPLAY_PRIORITY.index(reference_kind(ref)), natural_key(number)

    return sorted(references or [], key=key)


def _as_dict(reference: Any) -> Optional[dict]:
    if isinstance(reference, str):
        try:
            reference = json.loads(reference)
        except ValueError:
            return None
    return reference if isinstance(reference, dict) else None


def natural_key(text: str) -> list:
    # "124/2" sorts before "124/10"
    return [(0, int(part), "") if part.isdecimal() else (1, 0, part) for part in _DIGITS.split(text) if part]
