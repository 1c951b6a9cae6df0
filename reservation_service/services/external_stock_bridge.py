"""
External Stock Bridge - mirrors reservations to the ERP

Each logical attempt is identified by a deterministic idempotency key. A
local shadow row keyed by it is written before the ERP is called, so a
retried attempt either replays the recorded outcome or re-sends the same
key, never a fresh one.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from reservation_service.clients import ErpClient, ErpResult
from reservation_service.models import (
    ExternalReservation, ExternalReservationStatus, MovementStatus, StockMovementType
)
from reservation_service.repositories import ExternalReservationRepository
from reservation_service.services.movement_log import MovementLog
from reservation_service.utils.app_config import get_setting
from reservation_service.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

IDEMPOTENCY_NAMESPACE = uuid.UUID('6f1c1f9e-8a39-4a53-9b3e-1d1f0d2c7a11')


def build_idempotency_key(user_id: str, sku: str, attempt: str) -> str:
    """Deterministic key for one (user, sku, logical attempt)"""
    return str(uuid.uuid5(IDEMPOTENCY_NAMESPACE, f"{user_id}:{sku}:{attempt}"))


class ExternalStockBridge:
    """Reserves ERP stock behind local shadow records"""

    def __init__(self, erp_client: ErpClient = None, shadow_repo: ExternalReservationRepository = None,
                 movement_log: MovementLog = None, max_attempts: int = None, clock=utcnow):
        self.erp_client = erp_client or ErpClient()
        self.shadow_repo = shadow_repo or ExternalReservationRepository()
        self.movement_log = movement_log or MovementLog()
        self.max_attempts = max_attempts or get_setting('ERP_MAX_ATTEMPTS', 2)
        self.clock = clock

    @property
    def is_enabled(self) -> bool:
        return self.erp_client.is_configured

    @property
    def default_location(self) -> str:
        return get_setting('ERP_DEFAULT_LOCATION', 'MAIN')

    def reserve_external(self, sku: str, quantity: int, location: str, idempotency_key: str,
                         user_id: str, session_id: str = None, order_id: str = None) -> Dict[str, Any]:
        """
        Reserve stock in the ERP for one SKU.

        Never raises for ERP-side failures: the outcome is returned as a dict
        with ``success`` and, on failure, ``error_code``/``error_message``.
        """
        location = location or self.default_location

        existing = self.shadow_repo.get_by_key(idempotency_key)
        if existing is not None and (existing.sku != sku or existing.quantity != quantity):
            logger.warning(
                f"Idempotency key {idempotency_key} was used for {existing.quantity} x {existing.sku}, "
                f"refusing {quantity} x {sku}"
            )
            return {
                'success': False,
                'reservation_key': idempotency_key,
                'sku': sku,
                'erp_reservation_id': None,
                'available_quantity': None,
                'error_code': 'IDEMPOTENCY_CONFLICT',
                'error_message': 'Idempotency key already used for a different reservation',
                'replayed': False
            }
        if existing is not None and existing.status != ExternalReservationStatus.PENDING:
            logger.info(f"Replaying recorded ERP outcome for key {idempotency_key} ({existing.status.value})")
            return self._shadow_result(existing, replayed=True)

        if existing is None:
            now = self.clock()
            shadow = self.shadow_repo.create(ExternalReservation(
                reservation_key=idempotency_key,
                user_id=user_id,
                session_id=session_id,
                sku=sku,
                location_code=location,
                quantity=quantity,
                status=ExternalReservationStatus.PENDING,
                expires_at=now + timedelta(minutes=self.erp_client.ttl_minutes),
                created_at=now
            ))
            if shadow is None:
                # Another caller inserted the same key between our read and insert
                existing = self.shadow_repo.get_by_key(idempotency_key)
                if existing is not None and existing.status != ExternalReservationStatus.PENDING:
                    return self._shadow_result(existing, replayed=True)

        result = self._call_erp(sku, quantity, location, idempotency_key)
        now = self.clock()

        if result.success:
            transitioned = self.shadow_repo.transition(
                idempotency_key,
                ExternalReservationStatus.RESERVED,
                erp_reservation_id=result.reservation_id,
                available_quantity=result.available_quantity,
                reserved_at=now
            )
        else:
            transitioned = self.shadow_repo.transition(
                idempotency_key,
                ExternalReservationStatus.RELEASED,
                error_code=result.error_code,
                error_message=result.error_message
            )

        if not transitioned:
            # A concurrent attempt with the same key settled the shadow first
            settled = self.shadow_repo.get_by_key(idempotency_key)
            return self._shadow_result(settled, replayed=True)

        self._log_attempt(result, sku, quantity, idempotency_key, user_id, order_id)

        if result.success:
            logger.info(f"ERP reserved {quantity} x {sku} at {location} (erp id {result.reservation_id})")
        else:
            logger.warning(f"ERP reservation failed for {sku}: {result.error_code} {result.error_message}")

        return {
            'success': result.success,
            'reservation_key': idempotency_key,
            'sku': sku,
            'erp_reservation_id': result.reservation_id,
            'available_quantity': result.available_quantity,
            'error_code': result.error_code,
            'error_message': result.error_message,
            'replayed': False
        }

    def _call_erp(self, sku: str, quantity: int, location: str, idempotency_key: str) -> ErpResult:
        """Call the ERP, retrying network failures with the same key"""
        result = None
        for attempt in range(1, self.max_attempts + 1):
            result = self.erp_client.reserve_stock(sku, quantity, location, idempotency_key)
            if result.success or result.error_code != 'NETWORK_ERROR':
                return result
            logger.info(f"ERP network failure for key {idempotency_key} (attempt {attempt}/{self.max_attempts})")
        return result

    def _log_attempt(self, result: ErpResult, sku, quantity, idempotency_key, user_id, order_id):
        # Not tied to a product; the local hold already has its own reservation movement
        if result.success:
            reason = f"ERP reservation {result.reservation_id} for SKU {sku}"
        else:
            reason = f"ERP reservation failed for SKU {sku}: {result.error_code} {result.error_message}"
        self.movement_log.record(
            StockMovementType.RESERVATION,
            -quantity,
            order_id=order_id,
            performed_by=user_id,
            reason=reason,
            status=MovementStatus.COMPLETED if result.success else MovementStatus.FAILED,
            reference=idempotency_key
        )

    def _shadow_result(self, shadow: ExternalReservation, replayed: bool) -> Dict[str, Any]:
        return {
            'success': shadow.status == ExternalReservationStatus.RESERVED,
            'reservation_key': shadow.reservation_key,
            'sku': shadow.sku,
            'erp_reservation_id': shadow.erp_reservation_id,
            'available_quantity': shadow.available_quantity,
            'error_code': shadow.error_code,
            'error_message': shadow.error_message,
            'replayed': replayed
        }

    def get_stock_level(self, sku: str, location: str = None) -> Optional[int]:
        """Ask the ERP for the available quantity of a SKU"""
        return self.erp_client.get_stock_level(sku, location or self.default_location)

    def release_stale_pending(self) -> int:
        """Settle pending shadows whose ERP call never completed"""
        now = self.clock()
        released = 0
        for shadow in self.shadow_repo.get_stale_pending(now):
            if self.shadow_repo.transition(
                shadow.reservation_key,
                ExternalReservationStatus.RELEASED,
                error_code='TIMEOUT',
                error_message='ERP reservation did not complete before expiry'
            ):
                released += 1
                logger.info(f"Released stale pending ERP shadow {shadow.reservation_key}")
        return released
