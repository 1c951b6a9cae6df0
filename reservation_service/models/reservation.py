"""
Reservation Model
"""

import uuid

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z
from .enums import ReservationStatus


class Reservation(db.Model):
    """Time-bounded hold on stock for a cart or order"""
    __tablename__ = 'stock_reservations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    inventory_id = db.Column(db.Integer, db.ForeignKey('inventory.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    warehouse_id = db.Column(db.String(36), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    order_id = db.Column(db.String(64), nullable=True, index=True)
    cart_session_id = db.Column(db.String(64), nullable=True, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    erp_sku = db.Column(db.String(100), nullable=True)
    status = db.Column(db.Enum(ReservationStatus), default=ReservationStatus.ACTIVE, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    released_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f'<Reservation {self.id} {self.status.value if self.status else None}>'

    def is_expired(self, now=None):
        """Check if the hold time has elapsed"""
        return (now or utcnow()) > self.expires_at

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'inventory_id': self.inventory_id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'quantity': self.quantity,
            'order_id': self.order_id,
            'cart_session_id': self.cart_session_id,
            'user_id': self.user_id,
            'erp_sku': self.erp_sku,
            'status': self.status.value,
            'expires_at': to_utc_z(self.expires_at),
            'released_at': to_utc_z(self.released_at),
            'created_at': to_utc_z(self.created_at),
            'updated_at': to_utc_z(self.updated_at)
        }
