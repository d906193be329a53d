import datetime
import enum
from app import db

class CashFlowType(enum.Enum):
    INCOME = 'income'
    EXPENSE = 'expense'

class ReferenceType(enum.Enum):
    PAYMENT = 'payment'
    EXPENSE = 'expense'

class CashFlowEntry(db.Model):
    __tablename__ = 'cash_flow'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.Enum(CashFlowType), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    description = db.Column(db.String(200), nullable=False)
    # Payment or expense id; no FK because the target table depends on reference_type
    reference_id = db.Column(db.Integer, index=True)
    reference_type = db.Column(db.Enum(ReferenceType))
    transaction_date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f'<CashFlowEntry {self.id} - {self.type.value} {self.amount}>'
