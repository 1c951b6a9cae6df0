"""
Stock Movement Model
"""

from sqlalchemy import event

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z
from .enums import StockMovementType, MovementStatus


class StockMovement(db.Model):
    """Append-only audit entry for every quantity-affecting event"""
    __tablename__ = 'stock_movements'

    id = db.Column(db.Integer, primary_key=True)
    movement_type = db.Column(db.Enum(StockMovementType), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)
    from_warehouse_id = db.Column(db.String(36), nullable=True)
    to_warehouse_id = db.Column(db.String(36), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    order_id = db.Column(db.String(64), nullable=True, index=True)
    performed_by = db.Column(db.String(64), default='system', nullable=False)
    reason = db.Column(db.Text, nullable=True)
    status = db.Column(db.Enum(MovementStatus), default=MovementStatus.COMPLETED, nullable=False)
    reference = db.Column(db.String(255), nullable=True, index=True)  # Reservation ID, idempotency key, etc.
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f'<StockMovement {self.movement_type.value} {self.quantity}>'

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'movement_type': self.movement_type.value,
            'product_id': self.product_id,
            'from_warehouse_id': self.from_warehouse_id,
            'to_warehouse_id': self.to_warehouse_id,
            'quantity': self.quantity,
            'order_id': self.order_id,
            'performed_by': self.performed_by,
            'reason': self.reason,
            'status': self.status.value,
            'reference': self.reference,
            'created_at': to_utc_z(self.created_at)
        }


@event.listens_for(StockMovement, 'before_update')
def _reject_movement_update(mapper, connection, target):
    raise ValueError(f"Stock movement {target.id} is append-only and cannot be updated")


@event.listens_for(StockMovement, 'before_delete')
def _reject_movement_delete(mapper, connection, target):
    raise ValueError(f"Stock movement {target.id} is append-only and cannot be deleted")
