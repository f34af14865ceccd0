"""Land record persistence

The ingestion pipeline writes through the LandRecordStore interface. Every
insert either returns the created row as a dict (including its generated
``id``) or raises PersistenceError. Writes are committed one at a time, so
a failing insert never undoes rows written before it.
"""

import logging
from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lrms.exceptions import PersistenceError
from lrms.models.land_record import LandRecord, YearSlab, Panipatrak, PanipatrakFarmer
from lrms.models.nondh import Nondh, NondhDetail, NondhOwnerRelation, generate_nondh_id

logger = logging.getLogger(__name__)


def row_to_dict(row) -> Dict[str, Any]:
    """Column values of an ORM row"""
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class LandRecordStore(ABC):
    """Persistence capability used by the ingestion pipeline"""

    @abstractmethod
    async def insert_parcel(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a land record"""

    @abstractmethod
    async def insert_nondhs(self, land_record_id: int, nondhs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert all nondh headers of a land record"""

    @abstractmethod
    async def insert_nondh_detail(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one nondh detail"""

    @abstractmethod
    async def insert_owner_relation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one owner relation"""

    @abstractmethod
    async def insert_year_slab(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one year slab"""

    @abstractmethod
    async def insert_panipatrak(self, data: Dict[str, Any], farmers: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Insert one panipatrak with its farmers"""


class SqlAlchemyLandRecordStore(LandRecordStore):
    """LandRecordStore backed by an async SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _insert(self, table: str, rows: List[Any]) -> List[Any]:
        self.session.add_all(rows)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Insert into {table} failed: {e}")
            raise PersistenceError(str(e.__cause__ or e), table=table) from e

        for row in rows:
            await self.session.refresh(row)
        return rows

    async def insert_parcel(self, data: Dict[str, Any]) -> Dict[str, Any]:
        (record,) = await self._insert("land_records", [LandRecord(**data)])
        return row_to_dict(record)

    async def insert_nondhs(self, land_record_id: int, nondhs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not nondhs:
            return []
        rows = [Nondh(land_record_id=land_record_id, **data) for data in nondhs]
        rows = await self._insert("nondhs", rows)
        return [row_to_dict(row) for row in rows]

    async def insert_nondh_detail(self, data: Dict[str, Any]) -> Dict[str, Any]:
        (detail,) = await self._insert("nondh_details", [NondhDetail(**data)])
        return row_to_dict(detail)

    async def insert_owner_relation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        (relation,) = await self._insert("nondh_owner_relations", [NondhOwnerRelation(**data)])
        return row_to_dict(relation)

    async def insert_year_slab(self, data: Dict[str, Any]) -> Dict[str, Any]:
        (slab,) = await self._insert("year_slabs", [YearSlab(**data)])
        return row_to_dict(slab)

    async def insert_panipatrak(self, data: Dict[str, Any], farmers: List[Dict[str, Any]]) -> Dict[str, Any]:
        panipatrak = Panipatrak(**data)
        panipatrak.farmers = [PanipatrakFarmer(**farmer) for farmer in farmers]
        (panipatrak,) = await self._insert("panipatraks", [panipatrak])
        result = row_to_dict(panipatrak)
        result["farmers"] = len(farmers)
        return result


class InMemoryLandRecordStore(LandRecordStore):
    """LandRecordStore that keeps rows in dicts.

    Used for dry-run validation of uploads; nothing is written to the database.
    """

    def __init__(self):
        self._ids = count(1)
        self.land_records: List[Dict[str, Any]] = []
        self.nondhs: List[Dict[str, Any]] = []
        self.nondh_details: List[Dict[str, Any]] = []
        self.owner_relations: List[Dict[str, Any]] = []
        self.year_slabs: List[Dict[str, Any]] = []
        self.panipatraks: List[Dict[str, Any]] = []

    def _add(self, table: List[Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(data)
        row.setdefault("id", next(self._ids))
        table.append(row)
        return dict(row)

    async def insert_parcel(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._add(self.land_records, data)

    async def insert_nondhs(self, land_record_id: int, nondhs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            self._add(self.nondhs, {"id": generate_nondh_id(), "land_record_id": land_record_id, **data})
            for data in nondhs
        ]

    async def insert_nondh_detail(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._add(self.nondh_details, data)

    async def insert_owner_relation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._add(self.owner_relations, data)

    async def insert_year_slab(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._add(self.year_slabs, data)

    async def insert_panipatrak(self, data: Dict[str, Any], farmers: List[Dict[str, Any]]) -> Dict[str, Any]:
        row = self._add(self.panipatraks, {**data, "farmers": [dict(f) for f in farmers]})
        row["farmers"] = len(farmers)
        return row
