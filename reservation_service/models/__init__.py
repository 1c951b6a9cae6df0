"""
Models package - Database models for the reservation service
"""

# Import database instance
from reservation_service.database import db

# Import enums first
from .enums import ReservationStatus, StockMovementType, MovementStatus, ExternalReservationStatus

# Import models
from .warehouse import Warehouse
from .inventory_record import InventoryRecord
from .reservation import Reservation
from .stock_movement import StockMovement
from .external_reservation import ExternalReservation

# Export all models and enums
__all__ = [
    'db',
    'ReservationStatus',
    'StockMovementType',
    'MovementStatus',
    'ExternalReservationStatus',
    'Warehouse',
    'InventoryRecord',
    'Reservation',
    'StockMovement',
    'ExternalReservation'
]
