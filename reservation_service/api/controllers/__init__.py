"""
Controllers package initialization
"""

from flask import Blueprint
from flask_restx import Api

api_bp = Blueprint('api', __name__)
api = Api(api_bp, version='1.0', title='Stock Reservation API',
          description='Stock reservation, inventory ledger and ERP sync endpoints', doc='/docs/')

from reservation_service.api.controllers.reservations import reservations_ns  # noqa: E402
from reservation_service.api.controllers.inventory import inventory_ns  # noqa: E402
from reservation_service.api.controllers.erp import erp_ns  # noqa: E402

api.add_namespace(reservations_ns)
api.add_namespace(inventory_ns)
api.add_namespace(erp_ns)

__all__ = ['api_bp', 'api']
