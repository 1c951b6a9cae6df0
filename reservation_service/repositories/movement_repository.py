"""
Stock Movement Repository Implementation
"""

from typing import List

from reservation_service.database import db
from reservation_service.models import StockMovement
from .base import MovementRepositoryInterface


class MovementRepository(MovementRepositoryInterface):
    """Append-only access to stock movements"""

    def create(self, movement: StockMovement, commit: bool = True) -> StockMovement:
        """Append a movement"""
        try:
            db.session.add(movement)
            if commit:
                db.session.commit()
            else:
                db.session.flush()
            return movement
        except Exception:
            db.session.rollback()
            raise

    def list(self, product_id: int = None, order_id: str = None, limit: int = 100) -> List[StockMovement]:
        """Get movements, newest first"""
        query = StockMovement.query
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        if order_id:
            query = query.filter(StockMovement.order_id == order_id)
        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()
