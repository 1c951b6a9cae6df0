"""
Inventory Record Model
"""

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z


class InventoryRecord(db.Model):
    """Per (product, warehouse) stock ledger row guarded by a version counter"""
    __tablename__ = 'inventory'
    __table_args__ = (
        db.UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_product_warehouse'),
        db.CheckConstraint('quantity_reserved >= 0', name='ck_inventory_reserved_non_negative'),
        db.CheckConstraint('quantity_reserved <= quantity_on_hand', name='ck_inventory_reserved_le_on_hand'),
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    warehouse_id = db.Column(db.String(36), nullable=False, index=True)
    quantity_on_hand = db.Column(db.Integer, default=0, nullable=False)
    quantity_reserved = db.Column(db.Integer, default=0, nullable=False)
    version = db.Column(db.Integer, default=0, nullable=False)
    pieces_per_box = db.Column(db.Integer, default=1, nullable=False)
    sqm_per_box = db.Column(db.Numeric(10, 4), default=1, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    reservations = db.relationship('Reservation', backref='inventory_record', lazy=True)

    def __repr__(self):
        return f'<InventoryRecord product={self.product_id} warehouse={self.warehouse_id} v{self.version}>'

    @property
    def quantity_available(self):
        """On-hand stock not held by active reservations"""
        return max((self.quantity_on_hand or 0) - (self.quantity_reserved or 0), 0)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'quantity_on_hand': self.quantity_on_hand,
            'quantity_reserved': self.quantity_reserved,
            'quantity_available': self.quantity_available,
            'version': self.version,
            'pieces_per_box': self.pieces_per_box,
            'sqm_per_box': float(self.sqm_per_box) if self.sqm_per_box is not None else None,
            'created_at': to_utc_z(self.created_at),
            'updated_at': to_utc_z(self.updated_at)
        }
