"""
Base Repository Interface - Abstract base classes
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from reservation_service.models import (
    InventoryRecord, Reservation, StockMovement, ExternalReservation, Warehouse,
    ReservationStatus, ExternalReservationStatus
)


class WarehouseRepositoryInterface(ABC):
    """Abstract base class for warehouse repository"""

    @abstractmethod
    def get_default(self) -> Optional[Warehouse]:
        pass


class InventoryRepositoryInterface(ABC):
    """Abstract base class for the inventory ledger repository"""

    @abstractmethod
    def get_by_id(self, record_id: int, fresh: bool = False) -> Optional[InventoryRecord]:
        pass

    @abstractmethod
    def get_by_product_and_warehouse(self, product_id: int, warehouse_id: str) -> Optional[InventoryRecord]:
        pass

    @abstractmethod
    def create(self, record: InventoryRecord) -> InventoryRecord:
        pass

    @abstractmethod
    def compare_and_reserve(self, record_id: int, expected_version: int, quantity: int) -> bool:
        pass

    @abstractmethod
    def release_reserved(self, record_id: int, quantity: int, commit: bool = True) -> bool:
        pass

    @abstractmethod
    def consume_reserved(self, record_id: int, quantity: int, commit: bool = True) -> bool:
        pass

    @abstractmethod
    def compare_and_adjust(self, record_id: int, expected_version: int, delta: int) -> bool:
        pass


class ReservationRepositoryInterface(ABC):
    """Abstract base class for reservation repository"""

    @abstractmethod
    def create(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    def get_by_id(self, reservation_id: str) -> Optional[Reservation]:
        pass

    @abstractmethod
    def delete(self, reservation_id: str) -> bool:
        pass

    @abstractmethod
    def transition_status(self, reservation_id: str, from_status: ReservationStatus,
                          to_status: ReservationStatus, at: datetime, commit: bool = True) -> bool:
        pass

    @abstractmethod
    def get_expired_active(self, now: datetime, limit: int = 500) -> List[Reservation]:
        pass

    @abstractmethod
    def search(self, **kwargs) -> Tuple[List[Reservation], int]:
        pass


class MovementRepositoryInterface(ABC):
    """Abstract base class for the append-only movement log"""

    @abstractmethod
    def create(self, movement: StockMovement, commit: bool = True) -> StockMovement:
        pass

    @abstractmethod
    def list(self, product_id: int = None, order_id: str = None, limit: int = 100) -> List[StockMovement]:
        pass


class ExternalReservationRepositoryInterface(ABC):
    """Abstract base class for ERP reservation shadows"""

    @abstractmethod
    def get_by_key(self, reservation_key: str) -> Optional[ExternalReservation]:
        pass

    @abstractmethod
    def create(self, shadow: ExternalReservation) -> Optional[ExternalReservation]:
        pass

    @abstractmethod
    def transition(self, reservation_key: str, to_status: ExternalReservationStatus, **fields) -> bool:
        pass

    @abstractmethod
    def get_stale_pending(self, now: datetime) -> List[ExternalReservation]:
        pass
