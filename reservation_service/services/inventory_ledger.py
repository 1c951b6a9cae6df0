"""
Inventory Ledger - single source of truth for available stock

Mutations go through the repository's conditional updates. A write whose
guard fails leaves the row untouched; the ledger then re-reads the row to
tell a version conflict apart from a genuine shortage.
"""

import logging
import time
from typing import Tuple

from sqlalchemy.exc import SQLAlchemyError

from reservation_service.exceptions import (
    ConcurrentModification, InsufficientStock, LedgerError, StorageError
)
from reservation_service.models import InventoryRecord, StockMovementType
from reservation_service.repositories import InventoryRepository
from reservation_service.services.movement_log import MovementLog
from reservation_service.utils.app_config import get_setting

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Optimistically-locked stock bookkeeping per product/warehouse"""

    def __init__(self, inventory_repo: InventoryRepository = None, movement_log: MovementLog = None,
                 max_attempts: int = None, backoff_seconds: float = None):
        self.inventory_repo = inventory_repo or InventoryRepository()
        self.movement_log = movement_log or MovementLog()
        self.max_attempts = max_attempts or get_setting('LEDGER_MAX_ATTEMPTS', 3)
        if backoff_seconds is None:
            backoff_seconds = get_setting('LEDGER_RETRY_BACKOFF_SECONDS', 0.05)
        self.backoff_seconds = backoff_seconds

    def get_or_create(self, product_id: int, warehouse_id: str) -> Tuple[InventoryRecord, bool]:
        """
        Return the record for a product/warehouse pair, creating an empty one if absent.

        Returns:
            (record, created) - created is True when this call inserted the row
        """
        record = self.inventory_repo.get_by_product_and_warehouse(product_id, warehouse_id)
        if record:
            return record, False

        try:
            record = self.inventory_repo.create(InventoryRecord(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity_on_hand=0,
                quantity_reserved=0,
                version=0,
                pieces_per_box=1,
                sqm_per_box=1
            ))
            logger.info(f"Created empty inventory record for product {product_id} in warehouse {warehouse_id}")
            return record, True
        except ValueError:
            # Lost an insert race; the other writer's row is the record
            record = self.inventory_repo.get_by_product_and_warehouse(product_id, warehouse_id)
            if record is None:
                raise StorageError(f"Inventory record for product {product_id} vanished after insert conflict")
            return record, False

    def get(self, record_id: int) -> InventoryRecord:
        record = self.inventory_repo.get_by_id(record_id, fresh=True)
        if record is None:
            raise LedgerError(f"Inventory record {record_id} not found")
        return record

    def try_reserve(self, record_id: int, expected_version: int, quantity: int) -> InventoryRecord:
        """
        Atomically hold quantity against a record at an expected version.

        Raises:
            ConcurrentModification: the stored version no longer matches
            InsufficientStock: not enough available stock at that version
        """
        if quantity <= 0:
            raise ValueError("Reservation quantity must be positive")

        if self.inventory_repo.compare_and_reserve(record_id, expected_version, quantity):
            return self.get(record_id)

        current = self.get(record_id)
        if current.version != expected_version:
            raise ConcurrentModification(record_id, expected_version)
        raise InsufficientStock(available=current.quantity_available, requested=quantity)

    def reserve(self, record_id: int, quantity: int) -> InventoryRecord:
        """Hold quantity, retrying version conflicts a bounded number of times"""
        last_conflict = None
        for attempt in range(1, self.max_attempts + 1):
            record = self.get(record_id)
            if record.quantity_available < quantity:
                raise InsufficientStock(available=record.quantity_available, requested=quantity)
            try:
                return self.try_reserve(record_id, record.version, quantity)
            except ConcurrentModification as e:
                last_conflict = e
                logger.info(
                    f"Version conflict on inventory {record_id} (attempt {attempt}/{self.max_attempts})"
                )
                if attempt < self.max_attempts and self.backoff_seconds:
                    time.sleep(self.backoff_seconds * attempt)

        raise ConcurrentModification(record_id, last_conflict.expected_version, attempts=self.max_attempts)

    def release(self, record_id: int, quantity: int, commit: bool = True) -> InventoryRecord:
        """Return held quantity to availability"""
        if quantity <= 0:
            raise ValueError("Release quantity must be positive")
        try:
            released = self.inventory_repo.release_reserved(record_id, quantity, commit=commit)
        except SQLAlchemyError as e:
            logger.error(f"Storage error releasing {quantity} on inventory {record_id}: {e}")
            raise StorageError()
        if not released:
            raise LedgerError(f"Cannot release {quantity} from inventory {record_id}: not that much reserved")
        return self.get(record_id)

    def fulfill(self, record_id: int, quantity: int, commit: bool = True) -> InventoryRecord:
        """Convert a hold into a completed sale"""
        if quantity <= 0:
            raise ValueError("Fulfillment quantity must be positive")
        try:
            consumed = self.inventory_repo.consume_reserved(record_id, quantity, commit=commit)
        except SQLAlchemyError as e:
            logger.error(f"Storage error fulfilling {quantity} on inventory {record_id}: {e}")
            raise StorageError()
        if not consumed:
            raise LedgerError(f"Cannot fulfill {quantity} from inventory {record_id}: not that much reserved")
        return self.get(record_id)

    def adjust(self, product_id: int, warehouse_id: str, delta: int, performed_by: str = None,
               reason: str = None) -> InventoryRecord:
        """
        Admin stock adjustment of on-hand quantity (bypasses reservations).

        Bumps the version like every other mutation so in-flight reservations
        against the old stock level retry against the new one.
        """
        if delta == 0:
            raise ValueError("Adjustment must change the on-hand quantity")

        record, _ = self.get_or_create(product_id, warehouse_id)
        for attempt in range(1, self.max_attempts + 1):
            record = self.get(record.id)
            if record.quantity_on_hand + delta < record.quantity_reserved:
                raise InsufficientStock(available=record.quantity_available, requested=-delta)
            if self.inventory_repo.compare_and_adjust(record.id, record.version, delta):
                updated = self.get(record.id)
                self.movement_log.record(
                    StockMovementType.ADJUSTMENT,
                    delta,
                    product_id=product_id,
                    from_warehouse_id=warehouse_id if delta < 0 else None,
                    to_warehouse_id=warehouse_id if delta > 0 else None,
                    performed_by=performed_by,
                    reason=reason or 'Manual stock adjustment',
                    reference=str(record.id)
                )
                logger.info(
                    f"Adjusted inventory {record.id} by {delta} (on hand now {updated.quantity_on_hand})"
                )
                return updated
            logger.info(f"Version conflict adjusting inventory {record.id} (attempt {attempt}/{self.max_attempts})")
            if attempt < self.max_attempts and self.backoff_seconds:
                time.sleep(self.backoff_seconds * attempt)

        raise ConcurrentModification(record.id, record.version, attempts=self.max_attempts)
