"""
External Reservation Repository Implementation
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from reservation_service.database import db
from reservation_service.models import ExternalReservation, ExternalReservationStatus
from .base import ExternalReservationRepositoryInterface


class ExternalReservationRepository(ExternalReservationRepositoryInterface):
    """Concrete implementation of ERP shadow repository"""

    def get_by_key(self, reservation_key: str) -> Optional[ExternalReservation]:
        """Get shadow by idempotency key"""
        return ExternalReservation.query.populate_existing().filter_by(reservation_key=reservation_key).first()

    def create(self, shadow: ExternalReservation) -> Optional[ExternalReservation]:
        """Insert a pending shadow; None when the key is already taken"""
        try:
            db.session.add(shadow)
            db.session.commit()
            return shadow
        except IntegrityError:
            db.session.rollback()
            return None

    def transition(self, reservation_key: str, to_status: ExternalReservationStatus, **fields) -> bool:
        """Leave the pending state exactly once"""
        stmt = (
            update(ExternalReservation)
            .where(
                ExternalReservation.reservation_key == reservation_key,
                ExternalReservation.status == ExternalReservationStatus.PENDING,
            )
            .values(status=to_status, **fields)
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.session.execute(stmt)
            db.session.commit()
            return result.rowcount == 1
        except Exception:
            db.session.rollback()
            raise

    def get_stale_pending(self, now: datetime) -> List[ExternalReservation]:
        """Get pending shadows past their expiry"""
        return ExternalReservation.query.filter(
            ExternalReservation.status == ExternalReservationStatus.PENDING,
            ExternalReservation.expires_at < now
        ).all()
