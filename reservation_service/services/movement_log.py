"""
Movement Log - append-only audit trail of quantity-affecting events
"""

import logging
from typing import Any, Dict, List, Optional

from reservation_service.models import StockMovement, StockMovementType, MovementStatus
from reservation_service.repositories import MovementRepository

logger = logging.getLogger(__name__)

# Sign each movement type's quantity must carry
_SIGN_RULES = {
    StockMovementType.RESERVATION: lambda q: q < 0,
    StockMovementType.FULFILLMENT: lambda q: q < 0,
    StockMovementType.RELEASE: lambda q: q > 0,
    StockMovementType.ADJUSTMENT: lambda q: q != 0,
}


class MovementLog:
    """Records and lists stock movements"""

    def __init__(self, movement_repo: MovementRepository = None):
        self.movement_repo = movement_repo or MovementRepository()

    def record(self, movement_type: StockMovementType, quantity: int, product_id: Optional[int] = None,
               from_warehouse_id: str = None, to_warehouse_id: str = None, order_id: str = None,
               performed_by: str = None, reason: str = None,
               status: MovementStatus = MovementStatus.COMPLETED, reference: str = None,
               commit: bool = True) -> StockMovement:
        """Append one movement after checking its quantity sign"""
        if not _SIGN_RULES[movement_type](quantity):
            raise ValueError(
                f"Quantity {quantity} has the wrong sign for a {movement_type.value} movement"
            )

        movement = StockMovement(
            movement_type=movement_type,
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            order_id=order_id,
            performed_by=performed_by or 'system',
            reason=reason,
            status=status,
            reference=reference
        )
        movement = self.movement_repo.create(movement, commit=commit)
        logger.debug(f"Recorded {movement_type.value} movement of {quantity} for product {product_id}")
        return movement

    def list(self, product_id: int = None, order_id: str = None, limit: int = 100) -> List[Dict[str, Any]]:
        """List movements newest first"""
        return [m.to_dict() for m in self.movement_repo.list(product_id=product_id, order_id=order_id, limit=limit)]
