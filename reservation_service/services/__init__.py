"""
Services package - Business logic layer
"""

from .movement_log import MovementLog
from .inventory_ledger import InventoryLedger
from .external_stock_bridge import ExternalStockBridge, build_idempotency_key
from .reservation_manager import ReservationManager, status_code_for
from .expiry_sweeper import ExpirySweeper, SweeperState

__all__ = [
    'MovementLog',
    'InventoryLedger',
    'ExternalStockBridge',
    'build_idempotency_key',
    'ReservationManager',
    'status_code_for',
    'ExpirySweeper',
    'SweeperState'
]
