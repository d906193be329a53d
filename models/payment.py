import datetime
import enum
from app import db

class PaymentStatus(enum.Enum):
    PENDING = 'pending'
    PAID = 'paid'
    OVERDUE = 'overdue'

class PaymentMethod(enum.Enum):
    CASH = 'cash'
    CARD = 'card'
    PIX = 'pix'
    TRANSFER = 'transfer'

class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_date = db.Column(db.Date)  # Actual payment date
    payment_method = db.Column(db.Enum(PaymentMethod), nullable=False)
    status = db.Column(db.Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    due_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow,
                          onupdate=datetime.datetime.utcnow)

    # Relationships
    event = db.relationship('Event', back_populates='payments')

    def __repr__(self):
        return f'<Payment {self.id} - {self.amount} - {self.status.value}>'
