"""
Test the background ingestion task in eager mode (no broker required).
"""
import os

# Set up eager mode before importing celery
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "True"

import pytest
from unittest.mock import patch
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from lrms.database import Base, build_engine
from lrms.models import IngestionRun, IngestionStatus, LandRecord
from tasks.celery_app import celery_app
from tasks.ingestion_tasks import ingest_land_record, run_async

# Configure eager mode
celery_app.conf.update(
    task_always_eager=True,
    task_eager_propagates=True,
)


@pytest.fixture
def task_database(tmp_path):
    """File-backed database the task can reach from its own event loop"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    run_async(create_tables())

    with patch("tasks.ingestion_tasks.engine", engine), \
            patch("tasks.ingestion_tasks.async_session_maker", session_maker):
        yield engine, session_maker


def query(task_database, statement):
    engine, session_maker = task_database

    async def execute():
        async with session_maker() as session:
            result = (await session.execute(statement)).scalars().all()
        await engine.dispose()
        return result

    return run_async(execute())


def open_run(task_database):
    engine, session_maker = task_database

    async def create():
        async with session_maker() as session:
            run = IngestionRun(source="task", status=IngestionStatus.PROCESSING)
            session.add(run)
            await session.commit()
            run_id = run.id
        await engine.dispose()
        return run_id

    return run_async(create())


class TestIngestLandRecordTask:
    """Tests for ingest_land_record"""

    def test_ingests_document(self, task_database, sample_document):
        result = ingest_land_record.delay(sample_document).get()

        assert result["success"] is True
        assert result["stats"]["nondhDetails"] == 3
        assert query(task_database, select(func.count()).select_from(LandRecord)) == [1]

        (run,) = query(task_database, select(IngestionRun))
        assert run.id == result["ingestionRunId"]
        assert run.source == "task"
        assert run.status == IngestionStatus.COMPLETED

    def test_completes_opened_run(self, task_database, sample_document):
        run_id = open_run(task_database)

        result = ingest_land_record.delay(sample_document, run_id).get()

        assert result["ingestionRunId"] == run_id
        (run,) = query(task_database, select(IngestionRun))
        assert run.status == IngestionStatus.COMPLETED
        assert run.task_id is not None
        assert run.land_record_id == result["landRecordId"]

    def test_failed_upload_is_recorded(self, task_database):
        result = ingest_land_record.delay({"basicInfo": {}}).get()

        assert result["success"] is False
        assert result["message"] == "Invalid JSON structure"
        (run,) = query(task_database, select(IngestionRun))
        assert run.status == IngestionStatus.FAILED
        assert run.error_log[0]["category"] == "structure"

    def test_routed_to_ingestion_queue(self):
        assert ingest_land_record.name == "tasks.ingestion_tasks.ingest_land_record"
        assert celery_app.conf.task_routes["tasks.ingestion_tasks.*"] == {"queue": "ingestion"}
