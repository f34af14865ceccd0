"""Validation of uploaded land record documents

Validation never raises. Each check returns a list of human readable
violations and the caller decides whether to abort (structural problems)
or to skip the offending record and continue (per-record problems).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from lrms.models.nondh import NondhStatus
from lrms.services.status_mapping import map_status


DATE_FORMAT_LENGTH = 8  # ddmmyyyy


@dataclass
class Violation:
    """A violation message that also records whether it rejects the record.

    Non-blocking violations are advisory: the record is still accepted and
    the ingestion pipeline fills in a default instead.
    """
    message: str
    field: str
    blocking: bool = True

    def __str__(self) -> str:
        return self.message


def as_int(value: Any) -> Optional[int]:
    """Whole number from an int or a numeric string, None otherwise"""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_nondh_detail(detail: Dict[str, Any], prior_valid_count: int = 0) -> List[Violation]:
    """Validate one nondh detail record.

    Every check is evaluated so the uploader sees all problems at once.
    ``prior_valid_count`` is the number of details accepted before this one
    and is only used to locate records that have no nondh number.
    """
    violations: List[Violation] = []

    if not detail.get("nondhNumber"):
        violations.append(Violation(
            f"Missing nondh number (record after {prior_valid_count} accepted details)",
            field="nondhNumber",
        ))

    if not detail.get("type"):
        violations.append(Violation("Missing type", field="type"))

    date = detail.get("date")
    if not date:
        violations.append(Violation("Missing date", field="date"))
    elif len(str(date)) != DATE_FORMAT_LENGTH:
        violations.append(Violation(
            "Date must be in ddmmyyyy format (e.g., 15012020)",
            field="date",
        ))

    if not detail.get("vigat"):
        violations.append(Violation("Missing vigat", field="vigat"))

    if map_status(detail.get("status")) == NondhStatus.INVALID and not detail.get("invalidReason"):
        violations.append(Violation(
            "Invalid status requires invalidReason",
            field="invalidReason",
            blocking=False,
        ))

    return violations


def blocking_violations(violations: List[Violation]) -> List[Violation]:
    """Violations that reject the record"""
    return [v for v in violations if v.blocking]


def validate_structure(document: Any) -> List[str]:
    """Check the minimal shape an upload needs before anything is written"""
    errors: List[str] = []

    if not isinstance(document, dict):
        return ["Upload must be a JSON object"]

    basic_info = document.get("basicInfo")
    if not isinstance(basic_info, dict):
        errors.append("Missing 'basicInfo' section")
    else:
        for field in ("district", "taluka", "village"):
            if not basic_info.get(field):
                errors.append(f"Missing required field in basicInfo: {field}")

        if not basic_info.get("blockNo") and not basic_info.get("reSurveyNo"):
            errors.append("Basic info must have either 'blockNo' or 'reSurveyNo'")

    for key in ("nondhs", "nondhDetails", "yearSlabs", "panipatraks"):
        value = document.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            errors.append(f"'{key}' must be an array")
        elif not all(isinstance(entry, dict) for entry in value):
            errors.append(f"Every entry in '{key}' must be an object")

    details = document.get("nondhDetails")
    if isinstance(details, list) and details:
        nondhs = document.get("nondhs")
        if not isinstance(nondhs, list) or not nondhs:
            errors.append("nondhDetails require corresponding nondhs array")

    return errors


def find_slab_for_year(year: Any, year_slabs: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the first slab whose [startYear, endYear) range holds the year.

    Years may arrive as numbers or numeric strings; slabs whose bounds are
    not numbers never match.
    """
    year = as_int(year)
    if year is None:
        return None
    for slab in year_slabs or []:
        if not isinstance(slab, dict):
            continue
        start = as_int(slab.get("startYear"))
        end = as_int(slab.get("endYear"))
        if start is None or end is None:
            continue
        if start <= year < end:
            return slab
    return None


def _check_farmer_number(farmer: Dict[str, Any], key: str, where: str, errors: List[str]) -> None:
    value = farmer.get(key)
    if value is None:
        return
    number = as_int(value)
    if number is None:
        errors.append(f"{where}: {key} must be a number")
    elif number < 0:
        errors.append(f"{where}: {key} must be 0 or positive")


def validate_panipatrak(
    panipatrak: Dict[str, Any],
    position: int,
    year_slabs: List[Dict[str, Any]],
) -> List[str]:
    """Validate one farmer registry; ``position`` is 1-based for messages"""
    errors: List[str] = []
    prefix = f"Panipatrak {position}"

    year = panipatrak.get("year")
    if not year:
        errors.append(f"{prefix}: Missing year")
    elif as_int(year) is None:
        errors.append(f"{prefix}: Year {year} is not a number")
    elif find_slab_for_year(year, year_slabs) is None:
        errors.append(f"{prefix}: Year {year} does not fall within any year slab range")

    farmers = panipatrak.get("farmers") or []
    if not isinstance(farmers, list):
        errors.append(f"{prefix}: farmers must be an array")
        return errors
    if not farmers:
        errors.append(f"{prefix}: Must have at least one farmer")

    for j, farmer in enumerate(farmers, start=1):
        where = f"{prefix}, Farmer {j}"
        if not isinstance(farmer, dict):
            errors.append(f"{where}: Must be an object")
            continue
        if not farmer.get("name"):
            errors.append(f"{where}: Missing name")

        if farmer.get("paikyNumber") is not None and farmer.get("ekatrikaranNumber") is not None:
            errors.append(f"{where}: Cannot have both paikyNumber and ekatrikaranNumber")
        _check_farmer_number(farmer, "paikyNumber", where, errors)
        _check_farmer_number(farmer, "ekatrikaranNumber", where, errors)

    return errors
