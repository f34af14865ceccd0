"""Land Record Ingestion Service

Processes one uploaded land record document:

    STRUCTURAL_CHECK -> PARCEL_PERSIST -> NONDHS_PERSIST
    -> YEAR_SLABS_PERSIST -> PANIPATRAKS_PERSIST
    -> DETAILS_LOOP -> SEQUENCE_AND_RESOLVE -> OWNER_PERSIST -> REPORT

Only the structural check and the land record / nondh header writes are
fatal. Every other record is validated and written on its own; a record
that fails is skipped, reported, and the upload continues. Records that
were already written are never rolled back.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lrms.config import Settings, settings as default_settings
from lrms.exceptions import PersistenceError
from lrms.models.ingestion_run import IngestionRun, IngestionStatus
from lrms.models.nondh import NondhStatus, NondhType, SurveyNumberType
from lrms.services.area import parse_area
from lrms.services.error_handling import (
    ErrorCategory,
    RecordType,
    SkippedRecord,
    error_handler,
)
from lrms.services.nondh_validation import (
    as_int,
    blocking_violations,
    find_slab_for_year,
    validate_nondh_detail,
    validate_panipatrak,
    validate_structure,
)
from lrms.services.status_mapping import map_status
from lrms.services.store import LandRecordStore
from lrms.services.validity_chain import resolve_validity, sort_nondhs

logger = logging.getLogger(__name__)

ALT_KRUSHIPANCH = "ALT Krushipanch"


class IngestionStage(str, Enum):
    """Stages at which an upload is abandoned"""
    STRUCTURAL_CHECK = "structural_check"
    PARCEL_PERSIST = "parcel_persist"
    NONDHS_PERSIST = "nondhs_persist"


@dataclass
class IngestionStats:
    nondhs: int = 0
    nondh_details: int = 0
    total_owners: int = 0
    skipped_nondh_details: int = 0
    year_slabs: int = 0
    panipatraks: int = 0
    farmers: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "yearSlabs": self.year_slabs,
            "panipatraks": self.panipatraks,
            "farmers": self.farmers,
            "nondhs": self.nondhs,
            "nondhDetails": self.nondh_details,
            "totalOwners": self.total_owners,
            "skippedNondhDetails": self.skipped_nondh_details,
        }


@dataclass
class IngestionReport:
    """Outcome of one upload, returned to the caller even on partial failure"""
    success: bool
    message: str
    stats: IngestionStats = field(default_factory=IngestionStats)
    land_record_id: Optional[int] = None
    skipped: List[SkippedRecord] = field(default_factory=list)
    structural_errors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    failed_stage: Optional[IngestionStage] = None
    validity: Dict[str, bool] = field(default_factory=dict)

    @property
    def errors(self) -> List[str]:
        """One line per skipped nondh detail"""
        return [s.message() for s in self.skipped if s.record_type == RecordType.NONDH_DETAIL]

    @property
    def warnings(self) -> List[str]:
        """One line per other skipped record (year slabs, panipatraks, owners)"""
        return [s.message() for s in self.skipped if s.record_type != RecordType.NONDH_DETAIL]

    @property
    def status(self) -> IngestionStatus:
        if not self.success:
            return IngestionStatus.FAILED
        if self.skipped:
            return IngestionStatus.PARTIAL
        return IngestionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            result: Dict[str, Any] = {
                "success": False,
                "message": self.message,
                "landRecordId": self.land_record_id,
            }
            if self.structural_errors:
                result["errors"] = list(self.structural_errors)
            if self.error:
                result["error"] = self.error
            if self.failed_stage:
                result["stage"] = self.failed_stage.value
            return result

        result = {
            "success": True,
            "message": self.message,
            "stats": self.stats.to_dict(),
            "landRecordId": self.land_record_id,
        }
        if self.errors:
            result["errors"] = self.errors
        if self.warnings:
            result["warnings"] = self.warnings
        return result


@dataclass
class _PersistedDetail:
    row: Dict[str, Any]
    source: Dict[str, Any]
    nondh_number: str
    status: NondhStatus


def parse_date(value: Any) -> Optional[date]:
    """Parse a ddmmyyyy string; None when absent or not a calendar date"""
    if not value:
        return None
    text = str(value)
    if len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%d%m%Y").date()
    except ValueError:
        logger.warning(f"Ignoring date {text!r}: not a valid ddmmyyyy date")
        return None


def _yes_no(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _as_list(value: Any) -> List[Any]:
    """Nested uploaded arrays; anything that is not a list holds no entries"""
    if isinstance(value, list):
        return value
    if value:
        logger.warning(f"Expected an array, got {type(value).__name__}")
    return []


class LandRecordIngestionService:
    """Runs the ingestion pipeline against a LandRecordStore"""

    def __init__(self, store: LandRecordStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    async def process_upload(self, document: Any) -> IngestionReport:
        """Ingest one uploaded document and return the report"""
        structural_errors = validate_structure(document)
        if structural_errors:
            logger.warning(f"Rejected upload with {len(structural_errors)} structural errors")
            return IngestionReport(
                success=False,
                message="Invalid JSON structure",
                structural_errors=structural_errors,
                failed_stage=IngestionStage.STRUCTURAL_CHECK,
            )

        basic_info = document["basicInfo"]
        try:
            land_record = await self.store.insert_parcel(self._land_record_row(basic_info))
        except PersistenceError as e:
            logger.error(f"Failed to save land record: {e.message}")
            return IngestionReport(
                success=False,
                message="Upload failed",
                error=f"Failed to save land record: {e.message}",
                failed_stage=IngestionStage.PARCEL_PERSIST,
            )

        land_record_id = land_record["id"]
        logger.info(
            f"Created land record {land_record_id} for "
            f"{basic_info['village']}, {basic_info['taluka']}, {basic_info['district']}"
        )

        try:
            saved_nondhs = await self.store.insert_nondhs(
                land_record_id, [self._nondh_row(n) for n in document.get("nondhs") or []]
            )
        except PersistenceError as e:
            logger.error(f"Failed to save nondhs for land record {land_record_id}: {e.message}")
            return IngestionReport(
                success=False,
                message="Upload failed",
                land_record_id=land_record_id,
                error=f"Failed to save nondhs: {e.message}",
                failed_stage=IngestionStage.NONDHS_PERSIST,
            )

        report = IngestionReport(
            success=True,
            message="Land record uploaded and processed successfully",
            land_record_id=land_record_id,
        )
        report.stats.nondhs = len(saved_nondhs)

        slab_ids = await self._persist_year_slabs(land_record_id, document.get("yearSlabs") or [], report)
        await self._persist_panipatraks(
            land_record_id, document.get("panipatraks") or [], document.get("yearSlabs") or [], slab_ids, report
        )

        persisted = await self._persist_details(document.get("nondhDetails") or [], saved_nondhs, report)

        # Every detail attempt has finished; the chain needs the complete set
        ordered = sort_nondhs(saved_nondhs)
        report.validity = resolve_validity(ordered, {d.nondh_number: d.status for d in persisted})

        for detail in persisted:
            is_valid = report.validity.get(detail.nondh_number, True)
            report.stats.total_owners += await self._persist_owners(detail, is_valid, report)

        skipped_details = report.stats.skipped_nondh_details
        logger.info(
            f"Land record {land_record_id}: {report.stats.nondhs} nondhs, "
            f"{report.stats.nondh_details} details, {report.stats.total_owners} owners, "
            f"{skipped_details} details skipped"
        )
        return report

    # Row builders

    def _land_record_row(self, basic_info: Dict[str, Any]) -> Dict[str, Any]:
        area_value, area_unit = parse_area(basic_info.get("area"))
        block_no = basic_info.get("blockNo") or None
        re_survey_no = basic_info.get("reSurveyNo") or None
        return {
            "district": basic_info["district"],
            "taluka": basic_info["taluka"],
            "village": basic_info["village"],
            "block_no": block_no,
            "re_survey_no": re_survey_no,
            "is_promulgation": bool(basic_info.get("isPromulgation", False)),
            "s_no_type": (SurveyNumberType.BLOCK_NO if block_no else SurveyNumberType.RE_SURVEY_NO).value,
            "s_no": str(block_no or re_survey_no),
            "area_value": area_value,
            "area_unit": area_unit,
            "json_uploaded": True,
            "status": "draft",
            "current_step": 1,
        }

    def _nondh_row(self, nondh: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "number": str(nondh.get("number", "")),
            "s_no_type": nondh.get("sNoType") or nondh.get("s_no_type") or SurveyNumberType.S_NO.value,
            "affected_s_nos": list(nondh.get("affectedSNos") or []),
            "doc_upload_url": nondh.get("docUploadUrl"),
        }

    def _detail_row(self, nondh_id: str, detail: Dict[str, Any], status: NondhStatus) -> Dict[str, Any]:
        sentinel = self.settings.INVALID_REASON_SENTINEL
        is_hukam = detail.get("type") == NondhType.HUKAM.value

        affected = None
        if detail.get("affectedNondhDetails"):
            affected = []
            for entry in _as_list(detail["affectedNondhDetails"]):
                if not isinstance(entry, dict):
                    logger.warning(f"Ignoring affectedNondhDetails entry that is not an object: {entry!r}")
                    continue
                entry_status = map_status(entry.get("status"))
                affected.append({
                    "nondhNo": str(entry.get("nondhNo", "")),
                    "status": entry_status.value,
                    "invalidReason": (entry.get("invalidReason") or sentinel)
                    if entry_status == NondhStatus.INVALID else None,
                })

        return {
            "nondh_id": nondh_id,
            "type": detail["type"],
            "date": parse_date(detail.get("date")),
            "sd_date": parse_date(detail.get("sdDate")),
            "hukam_date": parse_date(detail.get("hukamDate")),
            "hukam_type": (detail.get("hukamType") or self.settings.DEFAULT_HUKAM_TYPE) if is_hukam else None,
            "restraining_order": _yes_no(detail.get("restrainingOrder")),
            "amount": detail.get("amount"),
            "vigat": detail["vigat"],
            "tenure": detail.get("tenure") or self.settings.DEFAULT_TENURE,
            "status": status,
            "invalid_reason": (detail.get("invalidReason") or sentinel) if status == NondhStatus.INVALID else None,
            "show_in_output": detail.get("showInOutput") is not False,
            "old_owner": detail.get("oldOwner") or None,
            "affected_nondh_details": affected,
            "ganot": detail.get("ganotType") if detail.get("hukamType") == ALT_KRUSHIPANCH else None,
        }

    # Stages

    async def _persist_year_slabs(
        self,
        land_record_id: int,
        year_slabs: List[Dict[str, Any]],
        report: IngestionReport,
    ) -> Dict[int, int]:
        """Write year slabs; returns uploaded slab index -> persisted id"""
        slab_ids: Dict[int, int] = {}
        for index, slab in enumerate(year_slabs):
            identifier = f"{slab.get('startYear', '?')}-{slab.get('endYear', '?')}"
            raw_start, raw_end = slab.get("startYear"), slab.get("endYear")
            start, end = as_int(raw_start), as_int(raw_end)
            if raw_start is not None and raw_end is not None and (start is None or end is None):
                self._skip(report, RecordType.YEAR_SLAB, identifier, ["startYear and endYear must be numbers"])
                continue
            if start is None or end is None or start >= end:
                self._skip(report, RecordType.YEAR_SLAB, identifier,
                           ["startYear and endYear are required and startYear must be before endYear"])
                continue

            area_value, area_unit = parse_area(slab.get("area"))
            row = {
                "land_record_id": land_record_id,
                "start_year": start,
                "end_year": end,
                "s_no": slab.get("sNo"),
                "s_no_type": slab.get("sNoType"),
                "area_value": area_value,
                "area_unit": area_unit,
                "paiky": bool(slab.get("paiky", False)),
                "paiky_entries": self._slab_entries(slab.get("paikyEntries")),
                "ekatrikaran": bool(slab.get("ekatrikaran", False)),
                "ekatrikaran_entries": self._slab_entries(slab.get("ekatrikaranEntries")),
            }
            try:
                saved = await self.store.insert_year_slab(row)
            except PersistenceError as e:
                self._skip(report, RecordType.YEAR_SLAB, identifier,
                           [f"Database error - {e.message}"], ErrorCategory.DATABASE)
                continue
            slab_ids[index] = saved["id"]
            report.stats.year_slabs += 1
        return slab_ids

    def _slab_entries(self, entries: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        result = []
        for entry in _as_list(entries):
            if not isinstance(entry, dict):
                continue
            area_value, area_unit = parse_area(entry.get("area"))
            result.append({
                "sNo": entry.get("sNo"),
                "sNoType": entry.get("sNoType"),
                "area": {"value": area_value, "unit": area_unit},
            })
        return result

    async def _persist_panipatraks(
        self,
        land_record_id: int,
        panipatraks: List[Dict[str, Any]],
        year_slabs: List[Dict[str, Any]],
        slab_ids: Dict[int, int],
        report: IngestionReport,
    ) -> None:
        for position, panipatrak in enumerate(panipatraks, start=1):
            identifier = str(panipatrak.get("year") or position)
            problems = validate_panipatrak(panipatrak, position, year_slabs)
            if problems:
                self._skip(report, RecordType.PANIPATRAK, identifier, problems)
                continue

            year = as_int(panipatrak["year"])
            slab = find_slab_for_year(year, year_slabs)
            slab_id = slab_ids.get(year_slabs.index(slab))
            if slab_id is None:
                self._skip(report, RecordType.PANIPATRAK, identifier,
                           ["Matching year slab was not saved"], ErrorCategory.MISSING_REFERENCE)
                continue

            farmers = []
            for farmer in panipatrak["farmers"]:
                area_value, area_unit = parse_area(farmer.get("area"))
                farmers.append({
                    "name": farmer["name"],
                    "area_value": area_value,
                    "area_unit": area_unit,
                    "paiky_number": as_int(farmer.get("paikyNumber")),
                    "ekatrikaran_number": as_int(farmer.get("ekatrikaranNumber")),
                })

            try:
                await self.store.insert_panipatrak(
                    {"land_record_id": land_record_id, "year_slab_id": slab_id, "year": year},
                    farmers,
                )
            except PersistenceError as e:
                self._skip(report, RecordType.PANIPATRAK, identifier,
                           [f"Database error - {e.message}"], ErrorCategory.DATABASE)
                continue
            report.stats.panipatraks += 1
            report.stats.farmers += len(farmers)

    async def _persist_details(
        self,
        details: List[Dict[str, Any]],
        saved_nondhs: List[Dict[str, Any]],
        report: IngestionReport,
    ) -> List[_PersistedDetail]:
        persisted: List[_PersistedDetail] = []

        for detail in details:
            identifier = str(detail.get("nondhNumber") or "unknown")

            violations = validate_nondh_detail(detail, len(persisted))
            rejected = blocking_violations(violations)
            if rejected:
                self._skip(report, RecordType.NONDH_DETAIL, identifier, [str(v) for v in rejected])
                continue
            for advisory in violations:
                logger.info(f"Nondh {identifier}: {advisory}; using '{self.settings.INVALID_REASON_SENTINEL}'")

            nondh = next((n for n in saved_nondhs if str(n["number"]) == identifier), None)
            if nondh is None:
                self._skip(report, RecordType.NONDH_DETAIL, identifier,
                           ["No matching nondh found in nondhs array"], ErrorCategory.MISSING_REFERENCE)
                continue

            status = map_status(detail.get("status"))
            try:
                row = await self.store.insert_nondh_detail(self._detail_row(nondh["id"], detail, status))
            except PersistenceError as e:
                self._skip(report, RecordType.NONDH_DETAIL, identifier,
                           [f"Database error - {e.message}"], ErrorCategory.DATABASE)
                continue

            persisted.append(_PersistedDetail(row=row, source=detail, nondh_number=identifier, status=status))

        report.stats.nondh_details = len(persisted)
        return persisted

    async def _persist_owners(self, detail: _PersistedDetail, is_valid: bool, report: IngestionReport) -> int:
        inserted = 0
        owners = _as_list(detail.source.get("owners")) + _as_list(detail.source.get("newOwners"))

        for owner in owners:
            if not isinstance(owner, dict):
                self._skip(report, RecordType.OWNER, f"of nondh {detail.nondh_number}",
                           ["Owner entry must be an object"])
                continue
            name = str(owner.get("name") or "").strip()
            if not name:
                self._skip(report, RecordType.OWNER, f"of nondh {detail.nondh_number}",
                           ["Missing name"])
                continue

            area_value, area_unit = parse_area(owner.get("area"))
            try:
                await self.store.insert_owner_relation({
                    "nondh_detail_id": detail.row["id"],
                    "owner_name": name,
                    "square_meters": area_value,
                    "area_unit": area_unit,
                    "survey_number": owner.get("surveyNumber") or None,
                    "survey_number_type": owner.get("surveyNumberType") or None,
                    "is_valid": is_valid,
                })
            except PersistenceError as e:
                self._skip(report, RecordType.OWNER, f"{name} of nondh {detail.nondh_number}",
                           [f"Database error - {e.message}"], ErrorCategory.DATABASE)
                continue
            inserted += 1

        return inserted

    def _skip(
        self,
        report: IngestionReport,
        record_type: RecordType,
        identifier: str,
        reasons: List[str],
        category: ErrorCategory = ErrorCategory.VALIDATION,
    ) -> None:
        skipped = SkippedRecord(record_type=record_type, identifier=identifier, reasons=reasons, category=category)
        report.skipped.append(skipped)
        if record_type == RecordType.NONDH_DETAIL:
            report.stats.skipped_nondh_details += 1
        logger.warning(f"Skipped {skipped.message()}")


async def save_ingestion_run(
    session: AsyncSession,
    report: IngestionReport,
    source: str = "api",
    original_filename: Optional[str] = None,
    task_id: Optional[str] = None,
    run: Optional[IngestionRun] = None,
) -> IngestionRun:
    """Record the outcome of an upload, completing ``run`` when one was opened"""
    error_log = [error_handler.create_error_entry(s) for s in report.skipped]
    if not report.success:
        if report.structural_errors:
            category = ErrorCategory.STRUCTURE
        else:
            category = error_handler.categorize_error(report.error or "")
        for message in report.structural_errors or [report.error or report.message]:
            error_log.append({
                "timestamp": datetime.utcnow().isoformat(),
                "record_type": "upload",
                "category": category.value,
                "stage": report.failed_stage.value if report.failed_stage else None,
                "message": message,
            })

    if run is None:
        run = IngestionRun(source=source, original_filename=original_filename)
        session.add(run)

    if task_id:
        run.task_id = task_id
    run.status = report.status
    run.message = report.message
    run.land_record_id = report.land_record_id
    run.stats = {}
    if report.success:
        run.stats = {**report.stats.to_dict(), "skipped": error_handler.summarize(report.skipped)}
    run.error_log = error_log
    run.completed_at = datetime.utcnow()

    await session.commit()
    await session.refresh(run)
    return run
