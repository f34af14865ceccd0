"""Land record upload and lookup router"""
from fastapi import APIRouter, Body, Depends, HTTPException, status, UploadFile, File
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import date as DateType, datetime
import json
import logging
import os

from lrms.config import settings
from lrms.database import get_db
from lrms.exceptions import NotFoundError
from lrms.models.ingestion_run import IngestionRun, IngestionStatus
from lrms.models.land_record import LandRecord
from lrms.models.nondh import Nondh, NondhDetail, NondhStatus, SurveyNumberType
from lrms.services.area import ACRE, GUNTHA, from_square_meters
from lrms.services.ingestion import IngestionReport, LandRecordIngestionService, save_ingestion_run
from lrms.services.store import InMemoryLandRecordStore, SqlAlchemyLandRecordStore, row_to_dict
from lrms.services.survey_reference import primary_kind, sort_references
from lrms.services.validity_chain import resolve_validity, sort_nondhs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/land-records", tags=["Land Records"])


class OwnerRelationResponse(BaseModel):
    """Owner relation response"""
    id: int
    owner_name: str
    square_meters: float
    area_unit: str
    survey_number: Optional[str]
    survey_number_type: Optional[str]
    is_valid: bool

    class Config:
        from_attributes = True


class NondhDetailResponse(BaseModel):
    """Nondh detail response"""
    id: int
    type: str
    date: Optional[DateType]
    vigat: Optional[str]
    tenure: Optional[str]
    status: NondhStatus
    invalid_reason: Optional[str]
    show_in_output: bool
    old_owner: Optional[str]
    sd_date: Optional[DateType]
    amount: Optional[float]
    hukam_date: Optional[DateType]
    hukam_type: Optional[str]
    restraining_order: Optional[str]
    ganot: Optional[str]
    affected_nondh_details: Optional[List[Dict[str, Any]]]
    owners: List[OwnerRelationResponse]


class NondhResponse(BaseModel):
    """Nondh response with its resolved validity"""
    id: str
    number: str
    primary_s_no_type: SurveyNumberType
    affected_s_nos: List[Any]
    doc_upload_url: Optional[str]
    is_valid: bool
    details: List[NondhDetailResponse]


class LandRecordResponse(BaseModel):
    """Land record with nondhs in sequence order"""
    id: int
    district: str
    taluka: str
    village: str
    block_no: Optional[str]
    re_survey_no: Optional[str]
    s_no_type: str
    s_no: str
    area_value: float
    area_unit: str
    area_acres: float
    area_gunthas: float
    is_promulgation: bool
    status: str
    created_at: datetime
    nondhs: List[NondhResponse]


class IngestionRunResponse(BaseModel):
    """Ingestion run response"""
    id: int
    source: str
    original_filename: Optional[str]
    task_id: Optional[str]
    status: IngestionStatus
    message: Optional[str]
    land_record_id: Optional[int]
    stats: Dict[str, Any]
    error_log: List[Dict[str, Any]]
    created_at: datetime
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


def get_ingestion_service(db: AsyncSession = Depends(get_db)) -> LandRecordIngestionService:
    """Ingestion service writing through the request's database session"""
    return LandRecordIngestionService(SqlAlchemyLandRecordStore(db))


def report_status_code(report: IngestionReport) -> int:
    """HTTP status for an ingestion report"""
    if report.success:
        return status.HTTP_200_OK
    if report.structural_errors:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def report_response(report: IngestionReport, run: IngestionRun) -> JSONResponse:
    """HTTP response for an ingestion report"""
    content = report.to_dict()
    content["ingestionRunId"] = run.id
    return JSONResponse(status_code=report_status_code(report), content=content)


def validate_upload_file(file: UploadFile, file_size: int) -> None:
    """Validate uploaded file type and size"""
    # Check file size
    if file_size > settings.max_upload_size_bytes:
        max_mb = settings.MAX_UPLOAD_SIZE_MB
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {max_mb}MB"
        )

    # Check file extension
    file_ext = ""
    if file.filename:
        file_ext = os.path.splitext(file.filename)[1].lower()

    if file_ext not in settings.allowed_extensions_list:
        allowed = ", ".join(settings.allowed_extensions_list)
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"File type not allowed. Allowed extensions: {allowed}"
        )


def decode_upload(content: bytes) -> Any:
    """Parse uploaded JSON bytes"""
    try:
        return json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File is not valid JSON: {e}"
        )


@router.post("/upload")
async def upload_land_record(
    document: Any = Body(...),
    service: LandRecordIngestionService = Depends(get_ingestion_service),
    db: AsyncSession = Depends(get_db)
):
    """Upload a land record JSON document.

    Nondh details that fail validation are skipped and listed under
    ``errors``; the rest of the upload is still saved.
    """
    report = await service.process_upload(document)
    run = await save_ingestion_run(db, report, source="api")
    return report_response(report, run)


@router.post("/upload-file")
async def upload_land_record_file(
    file: UploadFile = File(...),
    service: LandRecordIngestionService = Depends(get_ingestion_service),
    db: AsyncSession = Depends(get_db)
):
    """Upload a land record as a .json file"""
    # Read and validate file
    content = await file.read()
    validate_upload_file(file, len(content))
    document = decode_upload(content)

    # Ingest and record the run
    report = await service.process_upload(document)
    run = await save_ingestion_run(db, report, source="file", original_filename=file.filename)
    return report_response(report, run)


@router.post("/validate")
async def validate_land_record(document: Any = Body(...)):
    """Dry run of an upload: the full report, nothing is saved"""
    report = await LandRecordIngestionService(InMemoryLandRecordStore()).process_upload(document)
    content = report.to_dict()
    content["dryRun"] = True
    content["landRecordId"] = None
    if report.success:
        content["validity"] = report.validity
    return JSONResponse(status_code=report_status_code(report), content=content)


@router.post("/upload-async", status_code=status.HTTP_202_ACCEPTED)
async def upload_land_record_async(
    document: Any = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """Queue a land record upload for background ingestion"""
    # Create ingestion run record
    run = IngestionRun(source="task", status=IngestionStatus.PROCESSING)
    db.add(run)
    await db.commit()
    await db.refresh(run)

    # Queue Celery task for ingestion
    try:
        from tasks.ingestion_tasks import ingest_land_record

        task = ingest_land_record.apply_async(args=[document, run.id], queue="ingestion")
        logger.info(f"Queued ingestion task {task.id} for run {run.id}")
    except Exception as e:
        logger.error(f"Failed to queue ingestion task: {e}")
        run.status = IngestionStatus.FAILED
        run.message = "Failed to queue ingestion"
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start ingestion"
        )

    run.task_id = task.id
    await db.commit()

    return {"message": "Ingestion queued", "ingestion_run_id": run.id, "task_id": task.id}


@router.get("/ingestions/{run_id}", response_model=IngestionRunResponse)
async def get_ingestion_run(
    run_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get the outcome of an upload"""
    run = await db.get(IngestionRun, run_id)
    if not run:
        raise NotFoundError("Ingestion run not found", details={"run_id": run_id})
    return IngestionRunResponse.model_validate(run)


@router.get("/{land_record_id}", response_model=LandRecordResponse)
async def get_land_record(
    land_record_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get a land record with its nondhs in sequence order and their validity"""
    result = await db.execute(
        select(LandRecord)
        .where(LandRecord.id == land_record_id)
        .options(
            selectinload(LandRecord.nondhs)
            .selectinload(Nondh.details)
            .selectinload(NondhDetail.owner_relations)
        )
    )
    record = result.scalar_one_or_none()

    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Land record not found"
        )

    # Sequence nondhs and resolve validity
    nondhs_by_id = {nondh.id: nondh for nondh in record.nondhs}
    ordered = sort_nondhs([row_to_dict(nondh) for nondh in record.nondhs])

    statuses = {}
    for nondh in record.nondhs:
        if nondh.details:
            # The latest detail recorded for a number wins, as during upload
            statuses[nondh.number] = max(nondh.details, key=lambda d: d.id).status
    validity = resolve_validity(ordered, statuses)

    # Build response in sequence order
    nondhs = []
    for row in ordered:
        nondh = nondhs_by_id[row["id"]]
        details = []
        for detail in sorted(nondh.details, key=lambda d: d.id):
            data = row_to_dict(detail)
            data["owners"] = [
                OwnerRelationResponse.model_validate(owner)
                for owner in sorted(detail.owner_relations, key=lambda o: o.id)
            ]
            details.append(NondhDetailResponse(**data))

        nondhs.append(NondhResponse(
            id=nondh.id,
            number=nondh.number,
            primary_s_no_type=primary_kind(nondh.affected_s_nos),
            affected_s_nos=sort_references(nondh.affected_s_nos),
            doc_upload_url=nondh.doc_upload_url,
            is_valid=validity.get(nondh.number, True),
            details=details,
        ))

    area_value = record.area_value or 0
    return LandRecordResponse(
        id=record.id,
        district=record.district,
        taluka=record.taluka,
        village=record.village,
        block_no=record.block_no,
        re_survey_no=record.re_survey_no,
        s_no_type=record.s_no_type,
        s_no=record.s_no,
        area_value=area_value,
        area_unit=record.area_unit,
        area_acres=round(from_square_meters(area_value, ACRE), 4),
        area_gunthas=round(from_square_meters(area_value, GUNTHA), 2),
        is_promulgation=bool(record.is_promulgation),
        status=record.status,
        created_at=record.created_at,
        nondhs=nondhs,
    )
