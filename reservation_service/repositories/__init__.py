"""
Repositories package - Data access layer for the reservation service
"""

# Import interfaces
from .base import (
    WarehouseRepositoryInterface,
    InventoryRepositoryInterface,
    ReservationRepositoryInterface,
    MovementRepositoryInterface,
    ExternalReservationRepositoryInterface
)

# Import concrete implementations
from .warehouse_repository import WarehouseRepository
from .inventory_repository import InventoryRepository
from .reservation_repository import ReservationRepository
from .movement_repository import MovementRepository
from .external_reservation_repository import ExternalReservationRepository

# Export all interfaces and implementations
__all__ = [
    'WarehouseRepositoryInterface',
    'InventoryRepositoryInterface',
    'ReservationRepositoryInterface',
    'MovementRepositoryInterface',
    'ExternalReservationRepositoryInterface',
    'WarehouseRepository',
    'InventoryRepository',
    'ReservationRepository',
    'MovementRepository',
    'ExternalReservationRepository'
]
