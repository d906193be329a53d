import datetime
import enum
from app import db

class EventStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'

class Event(db.Model):
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM, zero-padded
    end_time = db.Column(db.String(5), nullable=False)
    guests_count = db.Column(db.Integer, nullable=False)
    package_type = db.Column(db.String(50), nullable=False)
    total_value = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.Enum(EventStatus), nullable=False, default=EventStatus.PENDING)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow,
                          onupdate=datetime.datetime.utcnow)

    # Relationships
    client = db.relationship('Client', back_populates='events')
    payments = db.relationship('Payment', back_populates='event', order_by='Payment.due_date')
    documents = db.relationship('Document', back_populates='event')

    def __repr__(self):
        return f'<Event {self.title} - {self.date} {self.start_time}-{self.end_time}>'
