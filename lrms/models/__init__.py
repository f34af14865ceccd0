"""Database models package"""
from lrms.models.land_record import LandRecord, YearSlab, Panipatrak, PanipatrakFarmer
from lrms.models.nondh import (
    Nondh,
    NondhDetail,
    NondhOwnerRelation,
    NondhType,
    NondhStatus,
    TenureType,
    SurveyNumberType,
)
from lrms.models.ingestion_run import IngestionRun, IngestionStatus

__all__ = [
    "LandRecord",
    "YearSlab",
    "Panipatrak",
    "PanipatrakFarmer",
    "Nondh",
    "NondhDetail",
    "NondhOwnerRelation",
    "NondhType",
    "NondhStatus",
    "TenureType",
    "SurveyNumberType",
    "IngestionRun",
    "IngestionStatus",
]
