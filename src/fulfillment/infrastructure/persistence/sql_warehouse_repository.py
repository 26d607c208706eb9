"""SQLAlchemy-backed implementation of WarehouseRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.domain.repository.warehouse_repository import WarehouseRepository
from fulfillment.infrastructure.persistence.tables import WarehouseRow


class SqlWarehouseRepository(WarehouseRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def exists(self, warehouse_id: int) -> bool:
        stmt = select(WarehouseRow.id).where(WarehouseRow.id == warehouse_id)
        return self._session.execute(stmt).first() is not None

    def add(self, code: str, name: str) -> int:
        """Register a warehouse (seeding and tests); returns its id."""
        row = WarehouseRow(code=code, name=name)
        self._session.add(row)
        self._session.flush()
        return row.id
