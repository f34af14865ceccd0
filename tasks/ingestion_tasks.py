"""Background land record ingestion tasks"""
from tasks.celery_app import celery_app
from typing import Any, Dict, Optional
import asyncio
import logging

from lrms.database import engine, async_session_maker
from lrms.models.ingestion_run import IngestionRun
from lrms.services.ingestion import LandRecordIngestionService, save_ingestion_run
from lrms.services.store import SqlAlchemyLandRecordStore

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async coroutine in sync context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _ingest(document: Dict[str, Any], run_id: Optional[int], task_id: Optional[str]) -> Dict[str, Any]:
    try:
        async with async_session_maker() as session:
            store = SqlAlchemyLandRecordStore(session)
            report = await LandRecordIngestionService(store).process_upload(document)

            run = await session.get(IngestionRun, run_id) if run_id else None
            run = await save_ingestion_run(session, report, source="task", task_id=task_id, run=run)

            result = report.to_dict()
            result["ingestionRunId"] = run.id
            return result
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()


@celery_app.task(bind=True)
def ingest_land_record(self, document: Dict[str, Any], run_id: Optional[int] = None):
    """
    Ingest an uploaded land record document in the background.

    The report is returned as the task result and recorded on the
    ingestion run created when the upload was accepted.
    """
    logger.info(f"Starting background ingestion (task {self.request.id}, run {run_id})")
    result = run_async(_ingest(document, run_id, self.request.id))

    if result["success"]:
        stats = result["stats"]
        logger.info(
            f"Background ingestion finished for land record {result['landRecordId']}: "
            f"{stats['nondhDetails']} details, {stats['skippedNondhDetails']} skipped"
        )
    else:
        logger.error(f"Background ingestion failed: {result.get('error') or result['message']}")

    return result
