from decimal import Decimal

from app import ma
from models.payment import Payment, PaymentStatus, PaymentMethod
from marshmallow import EXCLUDE, fields, validate

class EventSummarySchema(ma.Schema):
    id = fields.Integer()
    title = fields.String()
    date = fields.Date()
    total_value = fields.Decimal(places=2, as_string=True)
    status = fields.Function(lambda event: event.status.value)
    guests_count = fields.Integer()

class PaymentSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Payment
        load_instance = False
        include_fk = True
        dump_only = ("id", "created_at", "updated_at")
        unknown = EXCLUDE

    status = fields.Enum(PaymentStatus, by_value=True, load_default=PaymentStatus.PENDING)
    payment_method = fields.Enum(PaymentMethod, by_value=True, required=True)

    # Provide validation for fields
    event_id = fields.Integer(required=True)
    amount = fields.Decimal(required=True, places=2, as_string=True,
                            validate=validate.Range(min=Decimal('0.01'), error='Amount must be greater than zero'))
    payment_date = fields.Date(allow_none=True)
    due_date = fields.Date(allow_none=True)
    notes = fields.String(allow_none=True)

    event = fields.Nested(EventSummarySchema, dump_only=True)
    client = fields.Method('get_client', dump_only=True)

    def get_client(self, payment):
        client = payment.event.client if payment.event else None
        if client is None:
            return None
        return {'id': client.id, 'name': client.name, 'phone': client.phone, 'email': client.email}

class EventPaymentSchema(ma.Schema):
    id = fields.Integer()
    amount = fields.Decimal(places=2, as_string=True)
    payment_date = fields.Date(allow_none=True)
    payment_method = fields.Enum(PaymentMethod, by_value=True)
    status = fields.Enum(PaymentStatus, by_value=True)
    due_date = fields.Date(allow_none=True)
    notes = fields.String(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
