"""
Model Enums
"""

from enum import Enum


class ReservationStatus(Enum):
    ACTIVE = "active"
    RELEASED = "released"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"


class StockMovementType(Enum):
    RESERVATION = "reservation"
    RELEASE = "release"
    ADJUSTMENT = "adjustment"
    FULFILLMENT = "fulfillment"


class MovementStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class ExternalReservationStatus(Enum):
    PENDING = "pending"
    RESERVED = "reserved"
    RELEASED = "released"
