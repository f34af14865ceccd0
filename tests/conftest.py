"""Shared fixtures: in-memory database, HTTP client and sample uploads"""
import os

# Set up test environment BEFORE importing anything that uses settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "True"

import copy

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import lrms.models  # noqa: F401
from lrms.database import Base, build_engine, get_db


SAMPLE_DOCUMENT = {
    "basicInfo": {
        "district": "Surat",
        "taluka": "Choryasi",
        "village": "Bhatha",
        "blockNo": "124",
        "reSurveyNo": "",
        "isPromulgation": False,
        "area": {"acre": 1, "guntha": 20},
    },
    "yearSlabs": [
        {
            "startYear": 1990,
            "endYear": 2005,
            "sNo": "124",
            "sNoType": "block_no",
            "area": {"sqm": 6070},
        },
        {
            "startYear": 2005,
            "endYear": 2024,
            "sNo": "124/1",
            "sNoType": "re_survey_no",
            "area": {"acre": 1, "guntha": 0},
            "paiky": True,
            "paikyEntries": [
                {"sNo": "124/1/A", "sNoType": "re_survey_no", "area": {"sqm": 2000}},
            ],
        },
    ],
    "panipatraks": [
        {
            "year": 2010,
            "farmers": [
                {"name": "Ramesh Patel", "area": {"sqm": 3000}, "paikyNumber": 1},
                {"name": "Suresh Patel", "area": {"sqm": 3070}},
            ],
        },
    ],
    "nondhs": [
        {"number": "1", "affectedSNos": [{"number": "124", "type": "s_no"}]},
        {"number": "2", "affectedSNos": [{"number": "124", "type": "s_no"}]},
        {"number": "3", "affectedSNos": [{"number": "124", "type": "s_no"}]},
    ],
    "nondhDetails": [
        {
            "nondhNumber": "1",
            "type": "Kabjedaar",
            "date": "15011990",
            "vigat": "Original holder recorded",
            "status": "Pramaanik",
            "owners": [{"name": "Ramesh Patel", "area": {"acre": 1, "guntha": 20}}],
        },
        {
            "nondhNumber": "2",
            "type": "Vechand",
            "date": "01062001",
            "vigat": "Sale to Suresh Patel",
            "status": "Pramaanik",
            "sdDate": "25052001",
            "amount": 150000,
            "oldOwner": "Ramesh Patel",
            "newOwners": [{"name": "Suresh Patel", "area": {"sqm": 6070}}],
        },
        {
            "nondhNumber": "3",
            "type": "Hukam",
            "date": "10102010",
            "vigat": "Sale cancelled by order",
            "status": "Radd",
            "invalidReason": "Sale found void",
            "hukamDate": "05102010",
            "owners": [{"name": "Ramesh Patel", "area": {"sqm": 6070}}],
        },
    ],
}


@pytest.fixture
def sample_document():
    """A complete, valid upload (fresh copy per test)"""
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest_asyncio.fixture
async def engine():
    """Async in-memory SQLite engine shared by every session of a test"""
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client against the app, with get_db bound to the test database"""
    from lrms.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
