from marshmallow import Schema, fields, validate, validates_schema, ValidationError, EXCLUDE

from reservation_service.models import ReservationStatus


class ReservationItemSchema(Schema):
    """Schema for one line item of a reservation request"""
    class Meta:
        unknown = EXCLUDE

    product_id = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    warehouse_id = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=36))
    erp_sku = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=100))
    location_code = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=50))


class ReservationRequestSchema(Schema):
    """Schema for creating reservations"""
    class Meta:
        unknown = EXCLUDE

    items = fields.List(fields.Nested(ReservationItemSchema), required=True,
                        validate=validate.Length(min=1, error='At least one item is required'))
    order_id = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=64))
    cart_session_id = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=64))
    user_id = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=64))
    request_id = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=64))
    duration_minutes = fields.Int(allow_none=True, load_default=None, strict=True,
                                  validate=validate.Range(min=1))


class ReservationActionSchema(Schema):
    """Schema for release/fulfill calls"""
    class Meta:
        unknown = EXCLUDE

    reason = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=500))


class ReservationSearchSchema(Schema):
    """Schema for reservation list filters"""
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str()
    order_id = fields.Str()
    cart_session_id = fields.Str()
    product_id = fields.Int()
    status = fields.Str(validate=validate.OneOf([s.value for s in ReservationStatus]))
    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Int(load_default=20, validate=validate.Range(min=1))


class StockAdjustmentRequestSchema(Schema):
    """Schema for admin stock adjustments"""
    class Meta:
        unknown = EXCLUDE

    product_id = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    warehouse_id = fields.Str(required=True, validate=validate.Length(min=1, max=36))
    delta = fields.Int(required=True, strict=True)
    reason = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=500))

    @validates_schema
    def validate_delta(self, data, **kwargs):
        if data.get('delta') == 0:
            raise ValidationError('Adjustment must change the on-hand quantity', 'delta')


class MovementQuerySchema(Schema):
    """Schema for movement log queries"""
    class Meta:
        unknown = EXCLUDE

    product_id = fields.Int()
    order_id = fields.Str()
    limit = fields.Int(load_default=100, validate=validate.Range(min=1, max=1000))


class ErpReservationItemSchema(Schema):
    """Schema for one ERP-managed line item"""
    class Meta:
        unknown = EXCLUDE

    erp_sku = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    location_code = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=50))


class ErpReservationRequestSchema(Schema):
    """Schema for direct ERP reservation requests"""
    class Meta:
        unknown = EXCLUDE

    session_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    items = fields.List(fields.Nested(ErpReservationItemSchema), required=True,
                        validate=validate.Length(min=1, error='At least one item is required'))
    idempotency_key = fields.Str(allow_none=True, load_default=None, validate=validate.Length(min=1, max=64))
