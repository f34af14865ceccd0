"""Services package"""
from lrms.services.ingestion import LandRecordIngestionService, IngestionReport
from lrms.services.store import LandRecordStore, SqlAlchemyLandRecordStore, InMemoryLandRecordStore

__all__ = [
    "LandRecordIngestionService",
    "IngestionReport",
    "LandRecordStore",
    "SqlAlchemyLandRecordStore",
    "InMemoryLandRecordStore",
]
