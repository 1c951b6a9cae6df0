"""
Inventory Repository Implementation

Every mutation here is a single conditional UPDATE whose affected-row count
tells the caller whether the guard held. Nothing reads a row and writes it
back in a second round trip.
"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from reservation_service.database import db
from reservation_service.models import InventoryRecord
from reservation_service.utils.time_utils import utcnow
from .base import InventoryRepositoryInterface


class InventoryRepository(InventoryRepositoryInterface):
    """Concrete implementation of the inventory ledger repository"""

    def get_by_id(self, record_id: int, fresh: bool = False) -> Optional[InventoryRecord]:
        """Get inventory record by ID, optionally bypassing the identity map"""
        query = InventoryRecord.query
        if fresh:
            query = query.populate_existing()
        return query.filter_by(id=record_id).first()

    def get_by_product_and_warehouse(self, product_id: int, warehouse_id: str) -> Optional[InventoryRecord]:
        """Get inventory record for a product/warehouse pair"""
        return InventoryRecord.query.populate_existing().filter_by(
            product_id=product_id, warehouse_id=warehouse_id
        ).first()

    def create(self, record: InventoryRecord) -> InventoryRecord:
        """Insert a new inventory record"""
        try:
            db.session.add(record)
            db.session.commit()
            return record
        except IntegrityError:
            db.session.rollback()
            raise ValueError(
                f"Inventory record for product {record.product_id} in warehouse {record.warehouse_id} already exists"
            )

    def _execute(self, stmt, commit: bool = True) -> bool:
        try:
            result = db.session.execute(stmt.execution_options(synchronize_session=False))
            if commit:
                db.session.commit()
            return result.rowcount == 1
        except Exception:
            db.session.rollback()
            raise

    def compare_and_reserve(self, record_id: int, expected_version: int, quantity: int) -> bool:
        """Hold quantity if the version matches and enough stock is available"""
        stmt = (
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record_id,
                InventoryRecord.version == expected_version,
                InventoryRecord.quantity_on_hand - InventoryRecord.quantity_reserved >= quantity,
            )
            .values(
                quantity_reserved=InventoryRecord.quantity_reserved + quantity,
                version=InventoryRecord.version + 1,
                updated_at=utcnow(),
            )
        )
        return self._execute(stmt)

    def release_reserved(self, record_id: int, quantity: int, commit: bool = True) -> bool:
        """Return held quantity to availability"""
        stmt = (
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record_id,
                InventoryRecord.quantity_reserved >= quantity,
            )
            .values(
                quantity_reserved=InventoryRecord.quantity_reserved - quantity,
                version=InventoryRecord.version + 1,
                updated_at=utcnow(),
            )
        )
        return self._execute(stmt, commit)

    def consume_reserved(self, record_id: int, quantity: int, commit: bool = True) -> bool:
        """Turn held quantity into a completed sale"""
        stmt = (
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record_id,
                InventoryRecord.quantity_reserved >= quantity,
                InventoryRecord.quantity_on_hand >= quantity,
            )
            .values(
                quantity_on_hand=InventoryRecord.quantity_on_hand - quantity,
                quantity_reserved=InventoryRecord.quantity_reserved - quantity,
                version=InventoryRecord.version + 1,
                updated_at=utcnow(),
            )
        )
        return self._execute(stmt, commit)

    def compare_and_adjust(self, record_id: int, expected_version: int, delta: int) -> bool:
        """Change on-hand stock if the version matches and holds stay covered"""
        stmt = (
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record_id,
                InventoryRecord.version == expected_version,
                InventoryRecord.quantity_on_hand + delta >= InventoryRecord.quantity_reserved,
            )
            .values(
                quantity_on_hand=InventoryRecord.quantity_on_hand + delta,
                version=InventoryRecord.version + 1,
                updated_at=utcnow(),
            )
        )
        return self._execute(stmt)
