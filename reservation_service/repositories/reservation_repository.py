"""
Reservation Repository Implementation
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, update

from reservation_service.database import db
from reservation_service.models import Reservation, ReservationStatus
from .base import ReservationRepositoryInterface


class ReservationRepository(ReservationRepositoryInterface):
    """Concrete implementation of reservation repository"""

    def create(self, reservation: Reservation) -> Reservation:
        """Create new reservation"""
        try:
            db.session.add(reservation)
            db.session.commit()
            return reservation
        except Exception:
            db.session.rollback()
            raise

    def get_by_id(self, reservation_id: str) -> Optional[Reservation]:
        """Get reservation by ID"""
        return Reservation.query.populate_existing().filter_by(id=reservation_id).first()

    def delete(self, reservation_id: str) -> bool:
        """Hard-delete a reservation row (compensation for a half-applied reserve)"""
        try:
            count = Reservation.query.filter_by(id=reservation_id).delete()
            db.session.commit()
            return count == 1
        except Exception:
            db.session.rollback()
            raise

    def transition_status(self, reservation_id: str, from_status: ReservationStatus,
                          to_status: ReservationStatus, at: datetime, commit: bool = True) -> bool:
        """
        Move a reservation between statuses only if it is still in from_status.

        With ``commit=False`` the change joins the caller's transaction.
        """
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id, Reservation.status == from_status)
            .values(
                status=to_status,
                released_at=None if to_status == ReservationStatus.ACTIVE else at,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.session.execute(stmt)
            if commit:
                db.session.commit()
            return result.rowcount == 1
        except Exception:
            db.session.rollback()
            raise

    def get_expired_active(self, now: datetime, limit: int = 500) -> List[Reservation]:
        """Get active reservations whose hold time has elapsed"""
        return Reservation.query.populate_existing().filter(
            and_(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.expires_at < now
            )
        ).order_by(Reservation.expires_at).limit(limit).all()

    def get_active_by_order(self, order_id: str) -> List[Reservation]:
        """Get active reservations for an order"""
        return Reservation.query.filter_by(order_id=order_id, status=ReservationStatus.ACTIVE).all()

    def get_active_by_cart(self, cart_session_id: str) -> List[Reservation]:
        """Get active reservations for a cart session"""
        return Reservation.query.filter_by(cart_session_id=cart_session_id, status=ReservationStatus.ACTIVE).all()

    def search(self, **kwargs) -> Tuple[List[Reservation], int]:
        """Search reservations with filters"""
        query = Reservation.query

        if kwargs.get('user_id'):
            query = query.filter(Reservation.user_id == kwargs['user_id'])

        if kwargs.get('order_id'):
            query = query.filter(Reservation.order_id == kwargs['order_id'])

        if kwargs.get('cart_session_id'):
            query = query.filter(Reservation.cart_session_id == kwargs['cart_session_id'])

        if kwargs.get('product_id'):
            query = query.filter(Reservation.product_id == kwargs['product_id'])

        if kwargs.get('status'):
            query = query.filter(Reservation.status == ReservationStatus(kwargs['status']))

        total = query.count()
        page = kwargs.get('page', 1)
        per_page = kwargs.get('per_page', 20)

        items = query.order_by(Reservation.created_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        ).items
        return items, total
