"""
Inventory Controller - ledger reads, admin adjustments and the movement log
"""

import logging

from flask import request
from flask_restx import Namespace, Resource, fields
from marshmallow import ValidationError

from reservation_service.api.middlewares.auth import require_auth, require_admin, get_current_user
from reservation_service.exceptions import InsufficientStock, ReservationError
from reservation_service.repositories import InventoryRepository
from reservation_service.services import InventoryLedger, MovementLog
from reservation_service.utils.schemas import MovementQuerySchema, StockAdjustmentRequestSchema

logger = logging.getLogger(__name__)

inventory_ns = Namespace('inventory', description='Inventory ledger operations', path='/inventory')

stock_adjustment_schema = StockAdjustmentRequestSchema()
movement_query_schema = MovementQuerySchema()

stock_adjustment_model = inventory_ns.model('StockAdjustment', {
    'product_id': fields.Integer(required=True, description='Product identifier'),
    'warehouse_id': fields.String(required=True, description='Warehouse identifier'),
    'delta': fields.Integer(required=True, description='Signed change to on-hand quantity'),
    'reason': fields.String(description='Reason for the adjustment')
})


@inventory_ns.route('/<int:product_id>/<string:warehouse_id>')
class InventoryRecordResource(Resource):
    @inventory_ns.doc('get_inventory_record')
    @require_auth
    def get(self, product_id, warehouse_id):
        """Get stock levels for a product in a warehouse"""
        try:
            record = InventoryRepository().get_by_product_and_warehouse(product_id, warehouse_id)
            if not record:
                return {'error': 'Inventory record not found'}, 404
            return record.to_dict(), 200
        except Exception as e:
            logger.error(f"Error getting inventory for product {product_id}: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


@inventory_ns.route('/adjust')
class StockAdjustment(Resource):
    @inventory_ns.doc('adjust_stock')
    @inventory_ns.expect(stock_adjustment_model)
    @require_admin
    def post(self):
        """Adjust on-hand stock, bypassing reservations"""
        try:
            data = stock_adjustment_schema.load(request.get_json(silent=True) or {})
            record = InventoryLedger().adjust(
                data['product_id'],
                data['warehouse_id'],
                data['delta'],
                performed_by=get_current_user()['id'],
                reason=data.get('reason')
            )
            return record.to_dict(), 200
        except ValidationError as e:
            return {'error': 'Validation failed', 'details': e.messages}, 400
        except InsufficientStock as e:
            return {
                'error': 'Adjustment would leave less stock than is reserved',
                'available': e.available,
                'requested': e.requested
            }, 409
        except ReservationError as e:
            logger.error(f"Stock adjustment failed: {e.message}")
            return {'error': e.reason, 'error_code': e.code}, 409
        except Exception as e:
            logger.error(f"Error adjusting stock: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


@inventory_ns.route('/movements')
class MovementList(Resource):
    @inventory_ns.doc('list_movements')
    @require_auth
    def get(self):
        """List stock movements, newest first"""
        try:
            params = movement_query_schema.load(request.args.to_dict())
            return {'movements': MovementLog().list(**params)}, 200
        except ValidationError as e:
            return {'error': 'Validation failed', 'details': e.messages}, 400
        except Exception as e:
            logger.error(f"Error listing movements: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500
