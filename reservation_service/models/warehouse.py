"""
Warehouse Model
"""

import uuid

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z


class Warehouse(db.Model):
    """Stock location that inventory records belong to"""
    __tablename__ = 'warehouses'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_default = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f'<Warehouse {self.code}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'is_default': self.is_default,
            'created_at': to_utc_z(self.created_at)
        }
