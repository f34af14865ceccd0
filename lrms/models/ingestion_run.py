"""Ingestion run model for auditing JSON uploads"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey, Enum
from datetime import datetime
from lrms.database import Base
import enum


class IngestionStatus(str, enum.Enum):
    """Status of an upload"""
    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL = "partial"  # Some nondh details were skipped
    FAILED = "failed"


class IngestionRun(Base):
    """One JSON upload and its outcome"""
    __tablename__ = "ingestion_runs"

    id = Column(Integer, primary_key=True, index=True)

    # Upload info
    source = Column(String(50), default="api")  # api, file, task
    original_filename = Column(String(255), nullable=True)
    task_id = Column(String(100), nullable=True, index=True)

    # Outcome
    status = Column(Enum(IngestionStatus), default=IngestionStatus.PROCESSING)
    message = Column(Text, nullable=True)
    land_record_id = Column(Integer, ForeignKey("land_records.id"), nullable=True)

    # Statistics
    stats = Column(JSON, default=dict)

    # Error tracking
    error_log = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
