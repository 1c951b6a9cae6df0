"""
External (ERP) Reservation Shadow Model
"""

import uuid

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z
from .enums import ExternalReservationStatus


class ExternalReservation(db.Model):
    """Local shadow of a reservation attempt mirrored to the ERP"""
    __tablename__ = 'erp_reservations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reservation_key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    session_id = db.Column(db.String(64), nullable=True)
    sku = db.Column(db.String(100), nullable=False, index=True)
    location_code = db.Column(db.String(50), nullable=False, default='MAIN')
    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.Enum(ExternalReservationStatus), default=ExternalReservationStatus.PENDING,
                       nullable=False, index=True)
    erp_reservation_id = db.Column(db.String(100), nullable=True)
    available_quantity = db.Column(db.Integer, nullable=True)
    error_code = db.Column(db.String(50), nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    reserved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f'<ExternalReservation {self.reservation_key} {self.status.value if self.status else None}>'

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'reservation_key': self.reservation_key,
            'user_id': self.user_id,
            'session_id': self.session_id,
            'sku': self.sku,
            'location_code': self.location_code,
            'quantity': self.quantity,
            'status': self.status.value,
            'erp_reservation_id': self.erp_reservation_id,
            'available_quantity': self.available_quantity,
            'error_code': self.error_code,
            'error_message': self.error_message,
            'expires_at': to_utc_z(self.expires_at),
            'reserved_at': to_utc_z(self.reserved_at),
            'created_at': to_utc_z(self.created_at)
        }
