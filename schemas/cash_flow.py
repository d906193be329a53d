from app import ma
from models.cash_flow import CashFlowEntry, CashFlowType, ReferenceType
from marshmallow import fields

class CashFlowEntrySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = CashFlowEntry
        load_instance = False

    type = fields.Enum(CashFlowType, by_value=True)
    reference_type = fields.Enum(ReferenceType, by_value=True, allow_none=True)
    amount = fields.Decimal(places=2, as_string=True)
