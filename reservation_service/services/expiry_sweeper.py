"""
Expiry Sweeper - returns stock held by reservations whose time has run out
"""

import enum
import logging
import threading
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from reservation_service.exceptions import ReservationError
from reservation_service.models import ReservationStatus
from reservation_service.repositories import ReservationRepository
from reservation_service.services.external_stock_bridge import ExternalStockBridge
from reservation_service.services.reservation_manager import EXPIRED_REASON, ReservationManager
from reservation_service.utils.time_utils import utcnow, to_utc_z

logger = logging.getLogger(__name__)


class SweeperState(enum.Enum):
    IDLE = 'idle'
    SWEEPING = 'sweeping'


class ExpirySweeper:
    """Expires overdue active reservations, one at a time and independently"""

    def __init__(self, manager: ReservationManager = None, reservation_repo: ReservationRepository = None,
                 bridge: ExternalStockBridge = None, clock=utcnow, batch_size: int = 500):
        self.manager = manager or ReservationManager(clock=clock)
        self.reservation_repo = reservation_repo or self.manager.reservation_repo
        self.bridge = bridge or self.manager.bridge
        self.clock = clock
        self.batch_size = batch_size
        self.state = SweeperState.IDLE
        self._lock = threading.Lock()

    def sweep(self) -> Dict[str, Any]:
        """
        Run one sweep.

        A sweep already in progress makes this call return immediately with
        ``skipped`` set.
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Sweep already in progress, skipping")
            return {'skipped': True, 'expired_count': 0, 'failed_count': 0}

        self.state = SweeperState.SWEEPING
        try:
            return self._sweep()
        finally:
            self.state = SweeperState.IDLE
            self._lock.release()

    def _sweep(self) -> Dict[str, Any]:
        now = self.clock()
        expired = self.reservation_repo.get_expired_active(now, limit=self.batch_size)
        expired_count = 0
        failed = []

        for reservation in expired:
            try:
                if self.manager.settle(reservation, ReservationStatus.EXPIRED, performed_by='system',
                                       reason=EXPIRED_REASON):
                    expired_count += 1
                    logger.info(f"Expired reservation {reservation.id}")
                else:
                    logger.debug(f"Reservation {reservation.id} was already settled")
            except (ReservationError, SQLAlchemyError) as e:
                logger.error(f"Error processing expired reservation {reservation.id}: {e}")
                failed.append(reservation.id)

        stale_erp = self.bridge.release_stale_pending()

        if expired or stale_erp:
            logger.info(
                f"Sweep finished: {expired_count} expired, {len(failed)} failed, "
                f"{stale_erp} stale ERP reservations released"
            )
        return {
            'skipped': False,
            'expired_count': expired_count,
            'failed_count': len(failed),
            'failed_ids': failed,
            'stale_erp_released': stale_erp,
            'processed_at': to_utc_z(now)
        }
