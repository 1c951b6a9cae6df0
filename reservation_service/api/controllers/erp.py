"""
ERP Controller - direct ERP reservations for ERP-managed SKUs
"""

import logging
import uuid

from flask import request
from flask_restx import Namespace, Resource
from marshmallow import ValidationError

from reservation_service.api.middlewares.auth import require_auth, get_current_user
from reservation_service.services import ExternalStockBridge, build_idempotency_key
from reservation_service.utils.schemas import ErpReservationRequestSchema

logger = logging.getLogger(__name__)

erp_ns = Namespace('erp', description='ERP stock operations', path='/erp')

erp_reservation_schema = ErpReservationRequestSchema()


@erp_ns.route('/reservations')
class ErpReservations(Resource):
    @erp_ns.doc('reserve_erp_stock')
    @require_auth
    def post(self):
        """Reserve ERP stock for each item; outcomes are reported per item"""
        try:
            data = erp_reservation_schema.load(request.get_json(silent=True) or {})
        except ValidationError as e:
            return {'success': False, 'error': 'Validation failed', 'details': e.messages}, 400

        try:
            bridge = ExternalStockBridge()
            if not bridge.is_enabled:
                return {'success': False, 'error': 'ERP integration is not configured'}, 503

            user_id = get_current_user()['id']
            # Without a client key every call is a new attempt
            attempt = data.get('idempotency_key') or str(uuid.uuid4())
            results = []
            for item in data['items']:
                results.append(bridge.reserve_external(
                    sku=item['erp_sku'],
                    quantity=item['quantity'],
                    location=item.get('location_code'),
                    idempotency_key=build_idempotency_key(user_id, item['erp_sku'], attempt),
                    user_id=user_id,
                    session_id=data['session_id']
                ))

            success = all(r['success'] for r in results)
            return {'success': success, 'results': results}, 200 if success else 207
        except Exception as e:
            logger.error(f"Error reserving ERP stock: {e}", exc_info=True)
            return {'success': False, 'error': 'Internal server error'}, 500


@erp_ns.route('/stock/<string:sku>')
class ErpStock(Resource):
    @erp_ns.doc('get_erp_stock')
    @require_auth
    def get(self, sku):
        """Get ERP stock level for a SKU"""
        bridge = ExternalStockBridge()
        if not bridge.is_enabled:
            return {'error': 'ERP integration is not configured'}, 503

        location = request.args.get('location')
        available = bridge.get_stock_level(sku, location)
        if available is None:
            return {'error': 'ERP stock level unavailable'}, 502
        return {'sku': sku, 'location': location or bridge.default_location, 'available_quantity': available}, 200
