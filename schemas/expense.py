from decimal import Decimal

from app import ma
from models.expense import Expense
from marshmallow import EXCLUDE, fields, validate

class ExpenseSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Expense
        load_instance = False
        dump_only = ("id", "receipt_path", "created_at", "updated_at")
        unknown = EXCLUDE

    # Provide validation for fields
    title = fields.String(required=True, validate=validate.Length(min=2, max=100))
    description = fields.String(allow_none=True)
    amount = fields.Decimal(required=True, places=2, as_string=True,
                            validate=validate.Range(min=Decimal('0.01'), error='Amount must be greater than zero'))
    category = fields.String(required=True, validate=validate.Length(min=1, max=50))
    expense_date = fields.Date(required=True)
