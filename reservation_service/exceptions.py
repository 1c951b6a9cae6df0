"""
Reservation service error taxonomy

Per-item failures carry a stable ``code`` and a human readable ``reason``
so they can be reported item-by-item without aborting a whole request.
"""


class ReservationError(Exception):
    """Base class for reservation service errors"""
    code = 'RESERVATION_ERROR'
    reason = 'Reservation failed'

    def __init__(self, message=None, **context):
        self.message = message or self.reason
        self.context = context
        super().__init__(self.message)

    def to_failure(self, product_id, **extra):
        """Render as a per-item failure entry"""
        failure = {
            'product_id': product_id,
            'reason': self.reason,
            'error_code': self.code,
        }
        if self.message != self.reason:
            failure['error'] = self.message
        failure.update(self.context)
        failure.update(extra)
        return failure


class InvalidRequest(ReservationError):
    """Structurally invalid request, rejected before any storage access"""
    code = 'INVALID_REQUEST'
    reason = 'Invalid request'

    def __init__(self, message=None, details=None):
        super().__init__(message)
        self.details = details or {}


class NoWarehouseResolved(ReservationError):
    code = 'NO_WAREHOUSE'
    reason = 'No warehouse specified and no default warehouse found'


class ProductNotStocked(ReservationError):
    code = 'PRODUCT_NOT_STOCKED'
    reason = 'Product not in stock'

    def __init__(self, requested):
        super().__init__(available=0, requested=requested)


class InsufficientStock(ReservationError):
    code = 'INSUFFICIENT_STOCK'
    reason = 'Insufficient stock'

    def __init__(self, available, requested):
        super().__init__(available=available, requested=requested)
        self.available = available
        self.requested = requested


class ConcurrentModification(ReservationError):
    code = 'CONCURRENT_MODIFICATION'
    reason = 'Inventory update failed - possible concurrent modification'

    def __init__(self, record_id, expected_version, attempts=1):
        super().__init__(
            f"Inventory record {record_id} changed (expected version {expected_version}) "
            f"after {attempts} attempt(s)"
        )
        self.record_id = record_id
        self.expected_version = expected_version
        self.attempts = attempts


class StorageError(ReservationError):
    """Unexpected persistence failure; surfaced with an opaque message"""
    code = 'STORAGE_ERROR'
    reason = 'Reservation failed'

    def __init__(self, message='Storage operation failed'):
        super().__init__(message)


class ExternalServiceError(ReservationError):
    code = 'EXTERNAL_SERVICE_ERROR'
    reason = 'External reservation failed'

    def __init__(self, error_code, error_message):
        super().__init__(error_message, erp_error_code=error_code)
        self.error_code = error_code
        self.error_message = error_message


class ReservationNotFound(ReservationError):
    code = 'NOT_FOUND'
    reason = 'Reservation not found'


class LedgerError(ReservationError):
    """Ledger mutation that would break the reserved <= on_hand invariant"""
    code = 'LEDGER_ERROR'
    reason = 'Inventory ledger update rejected'
