"""
Reservation Manager - multi-item stock reservations with per-item outcomes

A request is a series of independent item attempts. One item failing never
aborts the others; each failure is reported alongside the successes.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from reservation_service.database import db
from reservation_service.exceptions import (
    ExternalServiceError, InvalidRequest, NoWarehouseResolved, ProductNotStocked,
    ReservationError, ReservationNotFound, StorageError
)
from reservation_service.models import Reservation, ReservationStatus, StockMovementType
from reservation_service.repositories import ReservationRepository, WarehouseRepository
from reservation_service.services.external_stock_bridge import ExternalStockBridge, build_idempotency_key
from reservation_service.services.inventory_ledger import InventoryLedger
from reservation_service.services.movement_log import MovementLog
from reservation_service.utils.app_config import get_setting
from reservation_service.utils.schemas import ReservationRequestSchema
from reservation_service.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

RESERVED_REASON = 'Stock reserved for order'
RELEASED_REASON = 'Reservation released'
EXPIRED_REASON = 'Reservation expired'
FULFILLED_REASON = 'Reservation fulfilled'
ERP_FAILED_REASON = 'External reservation failed'
ROLLED_BACK_REASON = 'Reservation rolled back after storage error'

reservation_request_schema = ReservationRequestSchema()


def status_code_for(result: Dict[str, Any]) -> int:
    """HTTP status for a reservation result: 200 when nothing failed, else 207"""
    return 200 if not result.get('failures') else 207


class ReservationManager:
    """Orchestrates reservations across the ledger, the movement log and the ERP"""

    def __init__(self, ledger: InventoryLedger = None, reservation_repo: ReservationRepository = None,
                 warehouse_repo: WarehouseRepository = None, movement_log: MovementLog = None,
                 bridge: ExternalStockBridge = None, clock=utcnow, ttl_minutes: int = None,
                 erp_sync_mandatory: bool = None):
        self.movement_log = movement_log or MovementLog()
        self.ledger = ledger or InventoryLedger(movement_log=self.movement_log)
        self.reservation_repo = reservation_repo or ReservationRepository()
        self.warehouse_repo = warehouse_repo or WarehouseRepository()
        self.bridge = bridge or ExternalStockBridge(movement_log=self.movement_log)
        self.clock = clock
        self.ttl_minutes = ttl_minutes or get_setting('RESERVATION_TTL_MINUTES', 15)
        if erp_sync_mandatory is None:
            erp_sync_mandatory = get_setting('ERP_SYNC_MANDATORY', True)
        self.erp_sync_mandatory = erp_sync_mandatory

    def validate(self, payload: Optional[Dict[str, Any]], user_id: str = None) -> Dict[str, Any]:
        """
        Validate a reservation request before any storage access.

        Raises:
            InvalidRequest: missing items, non-positive quantities or no caller identity
        """
        if not isinstance(payload, dict):
            raise InvalidRequest('Request body must be a JSON object')
        try:
            data = reservation_request_schema.load(payload)
        except ValidationError as e:
            raise InvalidRequest('Request data validation failed', details=e.messages)

        data['user_id'] = data.get('user_id') or user_id
        if not data['user_id']:
            raise InvalidRequest('user_id is required', details={'user_id': ['Missing data for required field.']})
        return data

    def reserve(self, payload: Dict[str, Any], user_id: str = None) -> Dict[str, Any]:
        """
        Reserve every item of a request independently.

        Returns:
            {'success': bool, 'reservations': [...], 'failures': [...]}
        """
        data = self.validate(payload, user_id)
        duration = data.get('duration_minutes') or self.ttl_minutes

        reservations = []
        failures = []
        for item in data['items']:
            product_id = item['product_id']
            warehouse_id = None
            try:
                warehouse_id = self._resolve_warehouse(item.get('warehouse_id'))
                reservations.append(self._reserve_item(item, warehouse_id, data, duration))
            except ReservationError as e:
                extra = {'warehouse_id': warehouse_id} if warehouse_id else {}
                if item.get('erp_sku'):
                    extra['erp_sku'] = item['erp_sku']
                logger.info(f"Reservation of product {product_id} failed: {e.code} {e.message}")
                failures.append(e.to_failure(product_id, **extra))
            except SQLAlchemyError as e:
                logger.error(f"Storage error reserving product {product_id}: {e}")
                failures.append(StorageError().to_failure(product_id))

        logger.info(
            f"Reservation request for user {data['user_id']}: "
            f"{len(reservations)} reserved, {len(failures)} failed"
        )
        return {
            'success': not failures,
            'reservations': reservations,
            'failures': failures
        }

    def _resolve_warehouse(self, warehouse_id: Optional[str]) -> str:
        if warehouse_id:
            return warehouse_id
        try:
            default = self.warehouse_repo.get_default()
        except SQLAlchemyError as e:
            logger.error(f"Storage error resolving default warehouse: {e}")
            raise StorageError()
        if default:
            return default.id
        configured = get_setting('DEFAULT_WAREHOUSE_ID')
        if configured:
            return configured
        raise NoWarehouseResolved()

    def _reserve_item(self, item: Dict[str, Any], warehouse_id: str, data: Dict[str, Any],
                      duration: int) -> Dict[str, Any]:
        product_id = item['product_id']
        quantity = item['quantity']

        try:
            record, created = self.ledger.get_or_create(product_id, warehouse_id)
        except SQLAlchemyError as e:
            logger.error(f"Storage error loading inventory for product {product_id}: {e}")
            raise StorageError()
        if created:
            raise ProductNotStocked(requested=quantity)

        expires_at = self.clock() + timedelta(minutes=duration)

        try:
            self.ledger.reserve(record.id, quantity)
        except SQLAlchemyError as e:
            logger.error(f"Storage error reserving product {product_id}: {e}")
            raise StorageError()

        try:
            reservation = self.reservation_repo.create(Reservation(
                inventory_id=record.id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                order_id=data.get('order_id'),
                cart_session_id=data.get('cart_session_id'),
                user_id=data['user_id'],
                erp_sku=item.get('erp_sku'),
                status=ReservationStatus.ACTIVE,
                expires_at=expires_at
            ))
        except SQLAlchemyError as e:
            logger.error(f"Storage error recording reservation for product {product_id}: {e}")
            self._undo_hold(record.id, quantity)
            raise StorageError()

        try:
            self.movement_log.record(
                StockMovementType.RESERVATION,
                -quantity,
                product_id=product_id,
                from_warehouse_id=warehouse_id,
                order_id=data.get('order_id'),
                performed_by=data['user_id'],
                reason=RESERVED_REASON,
                reference=reservation.id
            )
        except SQLAlchemyError as e:
            logger.error(f"Storage error logging reservation {reservation.id}: {e}")
            self._undo_reservation(reservation.id)
            self._undo_hold(record.id, quantity)
            raise StorageError()

        entry = reservation.to_dict()
        if item.get('erp_sku'):
            try:
                entry['erp_sync'] = self._mirror_to_erp(reservation, item, data)
            except SQLAlchemyError as e:
                logger.error(f"Storage error mirroring reservation {reservation.id} to the ERP: {e}")
                db.session.rollback()
                self.settle(reservation, ReservationStatus.RELEASED, performed_by=data['user_id'],
                            reason=ROLLED_BACK_REASON)
                raise StorageError()
        return entry

    def _mirror_to_erp(self, reservation: Reservation, item: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.bridge.is_enabled:
            logger.warning(f"ERP not configured; SKU {item['erp_sku']} reserved locally only")
            return {'success': False, 'skipped': True, 'error_code': 'ERP_NOT_CONFIGURED'}

        # One key per client retry of the same request, else per local reservation
        attempt = data.get('request_id') or reservation.id
        outcome = self.bridge.reserve_external(
            sku=item['erp_sku'],
            quantity=reservation.quantity,
            location=item.get('location_code'),
            idempotency_key=build_idempotency_key(data['user_id'], item['erp_sku'], attempt),
            user_id=data['user_id'],
            session_id=data.get('cart_session_id'),
            order_id=data.get('order_id')
        )
        if outcome['success'] or not self.erp_sync_mandatory:
            return outcome

        self.settle(reservation, ReservationStatus.RELEASED, performed_by=data['user_id'], reason=ERP_FAILED_REASON)
        raise ExternalServiceError(outcome['error_code'], outcome['error_message'])

    def _undo_hold(self, record_id: int, quantity: int):
        try:
            self.ledger.release(record_id, quantity)
        except ReservationError as e:
            logger.error(f"Compensating release of {quantity} on inventory {record_id} failed: {e.message}")

    def _undo_reservation(self, reservation_id: str):
        try:
            self.reservation_repo.delete(reservation_id)
        except SQLAlchemyError as e:
            logger.error(f"Compensating delete of reservation {reservation_id} failed: {e}")

    def settle(self, reservation: Reservation, to_status: ReservationStatus, performed_by: str = None,
               reason: str = None) -> bool:
        """
        Move an active reservation to a final status and settle its ledger hold.

        The conditional status transition, the ledger update and the movement
        are written in one transaction and committed together. The transition
        gates the ledger call, so settling the same reservation twice touches
        the ledger once; if any step fails nothing is committed and the
        reservation stays active.

        Returns:
            True if this call settled the reservation, False if it was no longer active

        Raises:
            LedgerError: the ledger no longer holds the reservation's quantity
            StorageError: a storage failure rolled the settlement back
        """
        reservation_id = reservation.id
        now = self.clock()
        fulfilling = to_status == ReservationStatus.FULFILLED
        try:
            if not self.reservation_repo.transition_status(reservation_id, ReservationStatus.ACTIVE, to_status,
                                                           now, commit=False):
                db.session.rollback()
                return False

            if fulfilling:
                self.ledger.fulfill(reservation.inventory_id, reservation.quantity, commit=False)
            else:
                self.ledger.release(reservation.inventory_id, reservation.quantity, commit=False)

            self.movement_log.record(
                StockMovementType.FULFILLMENT if fulfilling else StockMovementType.RELEASE,
                -reservation.quantity if fulfilling else reservation.quantity,
                product_id=reservation.product_id,
                from_warehouse_id=reservation.warehouse_id if fulfilling else None,
                to_warehouse_id=None if fulfilling else reservation.warehouse_id,
                order_id=reservation.order_id,
                performed_by=performed_by,
                reason=reason,
                reference=reservation_id,
                commit=False
            )
            db.session.commit()
        except ReservationError as e:
            db.session.rollback()
            logger.error(f"Settling reservation {reservation_id} as {to_status.value} failed: {e.message}")
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Storage error settling reservation {reservation_id} as {to_status.value}: {e}")
            raise StorageError()

        logger.info(f"Reservation {reservation_id} is now {to_status.value}")
        return True

    def get_reservation(self, reservation_id: str) -> Dict[str, Any]:
        """Get reservation by ID"""
        reservation = self.reservation_repo.get_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        return reservation.to_dict()

    def _settle_by_id(self, reservation_id: str, to_status: ReservationStatus, performed_by: str,
                      reason: str) -> Dict[str, Any]:
        reservation = self.reservation_repo.get_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")

        if reservation.status == ReservationStatus.ACTIVE and to_status == ReservationStatus.FULFILLED \
                and reservation.is_expired(self.clock()):
            return {
                'success': False,
                'reservation': reservation.to_dict(),
                'message': 'Reservation has expired'
            }

        settled = self.settle(reservation, to_status, performed_by=performed_by, reason=reason)
        reservation = self.reservation_repo.get_by_id(reservation_id)
        return {
            'success': settled,
            'reservation': reservation.to_dict(),
            'message': f"Reservation {to_status.value}" if settled
            else f"Reservation is already {reservation.status.value}"
        }

    def release(self, reservation_id: str, performed_by: str = None, reason: str = None) -> Dict[str, Any]:
        """Cancel an active reservation and return its stock"""
        return self._settle_by_id(reservation_id, ReservationStatus.RELEASED, performed_by, reason or RELEASED_REASON)

    def fulfill(self, reservation_id: str, performed_by: str = None, reason: str = None) -> Dict[str, Any]:
        """Turn an active reservation into a completed sale"""
        return self._settle_by_id(reservation_id, ReservationStatus.FULFILLED, performed_by,
                                  reason or FULFILLED_REASON)

    def _release_all(self, reservations: List[Reservation], performed_by: str, reason: str) -> Dict[str, Any]:
        released = []
        failures = []
        for reservation in reservations:
            try:
                if self.settle(reservation, ReservationStatus.RELEASED, performed_by=performed_by, reason=reason):
                    released.append(reservation.id)
            except (ReservationError, SQLAlchemyError) as e:
                logger.error(f"Failed to release reservation {reservation.id}: {e}")
                failures.append({'reservation_id': reservation.id, 'error': 'Release failed'})
        return {'success': not failures, 'released': released, 'failures': failures}

    def release_for_order(self, order_id: str, performed_by: str = None) -> Dict[str, Any]:
        """Release every active reservation of an order"""
        reservations = self.reservation_repo.get_active_by_order(order_id)
        return self._release_all(reservations, performed_by, f"Order {order_id} cancelled")

    def release_for_cart(self, cart_session_id: str, performed_by: str = None) -> Dict[str, Any]:
        """Release every active reservation of a cart session"""
        reservations = self.reservation_repo.get_active_by_cart(cart_session_id)
        return self._release_all(reservations, performed_by, f"Cart {cart_session_id} released")

    def list_reservations(self, page: int = 1, per_page: int = None, **filters) -> Dict[str, Any]:
        """List reservations with filters and pagination"""
        max_page_size = get_setting('MAX_PAGE_SIZE', 100)
        per_page = min(per_page or get_setting('DEFAULT_PAGE_SIZE', 20), max_page_size)
        items, total = self.reservation_repo.search(page=page, per_page=per_page, **filters)
        return {
            'reservations': [r.to_dict() for r in items],
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': total,
                'pages': (total + per_page - 1) // per_page
            }
        }
