"""Tests for the SQLAlchemy land record store"""
import pytest
from sqlalchemy import func, select

from lrms.exceptions import PersistenceError
from lrms.models import (
    IngestionRun,
    IngestionStatus,
    LandRecord,
    NondhDetail,
    NondhOwnerRelation,
    NondhStatus,
    PanipatrakFarmer,
)
from lrms.services.ingestion import LandRecordIngestionService, save_ingestion_run
from lrms.services.store import SqlAlchemyLandRecordStore


PARCEL = {
    "district": "Surat",
    "taluka": "Choryasi",
    "village": "Bhatha",
    "block_no": "124",
    "s_no_type": "block_no",
    "s_no": "124",
    "area_value": 1000,
    "area_unit": "sq_m",
}


async def count_rows(session, model):
    return await session.scalar(select(func.count()).select_from(model))


class TestSqlAlchemyStore:
    """Tests for individual inserts"""

    @pytest.mark.asyncio
    async def test_insert_parcel_returns_id(self, db_session):
        store = SqlAlchemyLandRecordStore(db_session)

        record = await store.insert_parcel(PARCEL)

        assert isinstance(record["id"], int)
        assert record["village"] == "Bhatha"
        assert record["created_at"] is not None

    @pytest.mark.asyncio
    async def test_nondh_ids_are_uuids(self, db_session):
        store = SqlAlchemyLandRecordStore(db_session)
        record = await store.insert_parcel(PARCEL)

        nondhs = await store.insert_nondhs(record["id"], [
            {"number": "1", "affected_s_nos": [{"number": "124", "type": "s_no"}]},
            {"number": "2", "affected_s_nos": []},
        ])

        assert [n["number"] for n in nondhs] == ["1", "2"]
        assert all(len(n["id"]) == 36 for n in nondhs)
        assert nondhs[0]["affected_s_nos"] == [{"number": "124", "type": "s_no"}]

    @pytest.mark.asyncio
    async def test_no_nondhs(self, db_session):
        store = SqlAlchemyLandRecordStore(db_session)
        assert await store.insert_nondhs(1, []) == []

    @pytest.mark.asyncio
    async def test_failed_insert_raises_and_keeps_earlier_rows(self, db_session):
        store = SqlAlchemyLandRecordStore(db_session)
        await store.insert_parcel(PARCEL)

        with pytest.raises(PersistenceError) as exc_info:
            await store.insert_parcel({**PARCEL, "district": None})

        assert exc_info.value.table == "land_records"
        assert exc_info.value.details == {"table": "land_records"}
        assert "NOT NULL" in exc_info.value.message
        assert await count_rows(db_session, LandRecord) == 1

    @pytest.mark.asyncio
    async def test_insert_panipatrak_with_farmers(self, db_session):
        store = SqlAlchemyLandRecordStore(db_session)
        record = await store.insert_parcel(PARCEL)
        slab = await store.insert_year_slab({"land_record_id": record["id"], "start_year": 2000, "end_year": 2010})

        panipatrak = await store.insert_panipatrak(
            {"land_record_id": record["id"], "year_slab_id": slab["id"], "year": 2004},
            [{"name": "A", "area_value": 10, "area_unit": "sq_m"}, {"name": "B", "paiky_number": 2}],
        )

        assert panipatrak["farmers"] == 2
        assert await count_rows(db_session, PanipatrakFarmer) == 2


class TestIngestionWithDatabase:
    """End-to-end ingestion against SQLite"""

    @pytest.mark.asyncio
    async def test_upload_persists_everything(self, db_session, sample_document):
        report = await LandRecordIngestionService(SqlAlchemyLandRecordStore(db_session)).process_upload(
            sample_document
        )

        assert report.success is True
        assert await count_rows(db_session, LandRecord) == 1
        assert await count_rows(db_session, NondhDetail) == 3
        assert await count_rows(db_session, NondhOwnerRelation) == 3

        result = await db_session.execute(
            select(NondhDetail.status).where(NondhDetail.vigat == "Sale cancelled by order")
        )
        assert result.scalar_one() == NondhStatus.INVALID

        result = await db_session.execute(
            select(NondhOwnerRelation.owner_name).where(NondhOwnerRelation.is_valid.is_(True))
        )
        assert result.scalars().all() == ["Ramesh Patel"]

    @pytest.mark.asyncio
    async def test_ingestion_run_recorded(self, db_session, sample_document):
        sample_document["nondhDetails"][0]["vigat"] = ""
        report = await LandRecordIngestionService(SqlAlchemyLandRecordStore(db_session)).process_upload(
            sample_document
        )

        run = await save_ingestion_run(db_session, report, source="file", original_filename="bhatha.json")

        assert run.id is not None
        assert run.status == IngestionStatus.PARTIAL
        assert run.land_record_id == report.land_record_id
        assert run.original_filename == "bhatha.json"
        assert run.stats["nondhDetails"] == 2
        assert run.stats["skipped"]["by_record_type"] == {"nondh_detail": 1}
        assert run.error_log[0]["message"] == "Nondh 1: Missing vigat"
        assert run.completed_at is not None

    @pytest.mark.asyncio
    async def test_failed_run_recorded(self, db_session):
        report = await LandRecordIngestionService(SqlAlchemyLandRecordStore(db_session)).process_upload([])

        run = await save_ingestion_run(db_session, report)

        assert run.status == IngestionStatus.FAILED
        assert run.stats == {}
        assert run.error_log[0]["category"] == "structure"
        assert run.error_log[0]["stage"] == "structural_check"
        assert run.error_log[0]["message"] == "Upload must be a JSON object"

    @pytest.mark.asyncio
    async def test_opened_run_is_completed(self, db_session, sample_document):
        run = IngestionRun(source="task", status=IngestionStatus.PROCESSING)
        db_session.add(run)
        await db_session.commit()

        report = await LandRecordIngestionService(SqlAlchemyLandRecordStore(db_session)).process_upload(
            sample_document
        )
        saved = await save_ingestion_run(db_session, report, task_id="task-1", run=run)

        assert saved.id == run.id
        assert saved.task_id == "task-1"
        assert saved.status == IngestionStatus.COMPLETED
        assert await count_rows(db_session, IngestionRun) == 1
