"""
Warehouse Repository Implementation
"""

from typing import Optional

from reservation_service.models import Warehouse
from .base import WarehouseRepositoryInterface


class WarehouseRepository(WarehouseRepositoryInterface):
    """Read access to warehouses"""

    def get_default(self) -> Optional[Warehouse]:
        """Get the warehouse flagged as default"""
        return Warehouse.query.filter_by(is_default=True).order_by(Warehouse.created_at).first()
