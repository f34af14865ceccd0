"""Nondh sequencing and validity chain resolution

Nondhs on a land record are ordered by the kind of survey number they
affect and then by their number. Walking that order, a nondh whose own
recorded status is ``invalid`` reverses the legal effect of every nondh
before it. A later invalid nondh reverses it again, so a nondh is in force
when the number of invalid nondhs after it is even.

Explicit cross references between nondhs (``affectedNondhDetails``) are
stored for display but do not take part in the resolution.
"""

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Sequence

from lrms.models.nondh import NondhStatus
from lrms.services.status_mapping import map_status
from lrms.services.survey_reference import sequencing_rank, natural_key

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_nondh_number(number: Any) -> int:
    """Leading integer of a nondh number ("10-35" -> 10); 0 when there is none"""
    if number is None:
        return 0
    match = _LEADING_INT.match(str(number))
    return int(match.group(1)) if match else 0


def nondh_references(nondh: Mapping[str, Any]) -> List[Any]:
    """Affected survey numbers of a persisted row or an uploaded entry"""
    refs = nondh.get("affected_s_nos")
    if refs is None:
        refs = nondh.get("affectedSNos")
    if isinstance(refs, str):
        try:
            refs = json.loads(refs)
        except ValueError:
            refs = []
    return list(refs or [])


def sequence_key(nondh: Mapping[str, Any]):
    """Total-order sort key for a nondh"""
    number = str(nondh.get("number", ""))
    refs = nondh_references(nondh)
    return (
        sequencing_rank(refs),
        parse_nondh_number(number),
        natural_key(number),
        number,
        json.dumps(refs, sort_keys=True, default=str),
    )


def sort_nondhs(nondhs: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Order nondhs by sequencing kind, then numerically by nondh number.

    The result does not depend on the order of the input.
    """
    return sorted(nondhs, key=sequence_key)


def resolve_validity(
    ordered_nondhs: Sequence[Mapping[str, Any]],
    statuses_by_number: Mapping[Any, Any],
) -> Dict[str, bool]:
    """Compute whether each nondh in an ordered sequence is currently in force.

    ``statuses_by_number`` maps a nondh number to the recorded status of its
    detail. Nondhs without a detail count as not invalid. Only the parity of
    invalid successors matters; a nondh's own status does not affect itself.
    """
    statuses: Dict[str, NondhStatus] = {
        str(number): map_status(status) for number, status in statuses_by_number.items()
    }
    numbers = [str(nondh.get("number", "")) for nondh in ordered_nondhs]

    # invalid_after[i] = invalid nondhs at positions > i
    invalid_after = [0] * len(numbers)
    running = 0
    for i in range(len(numbers) - 1, -1, -1):
        invalid_after[i] = running
        if statuses.get(numbers[i]) == NondhStatus.INVALID:
            running += 1

    validity: Dict[str, bool] = {}
    for number, count in zip(numbers, invalid_after):
        validity[number] = count % 2 == 0

    logger.debug(
        f"Resolved validity for {len(validity)} nondhs, "
        f"{sum(1 for v in validity.values() if not v)} not in force"
    )
    return validity


def resolve_chain(
    nondhs: Sequence[Mapping[str, Any]],
    statuses_by_number: Mapping[Any, Any],
    ordered: bool = False,
) -> Dict[str, bool]:
    """Sort (unless already ``ordered``) and resolve in one step"""
    sequence = nondhs if ordered else sort_nondhs(nondhs)
    return resolve_validity(sequence, statuses_by_number)
