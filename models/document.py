import datetime
from app import db

class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), index=True)
    filename = db.Column(db.String(255), nullable=False)  # Stored (unique) name
    original_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(100), nullable=False)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=datetime.datetime.utcnow)

    # Relationships
    client = db.relationship('Client', back_populates='documents')
    event = db.relationship('Event', back_populates='documents')
    uploader = db.relationship('User')

    def __repr__(self):
        return f'<Document {self.original_name} ({self.mime_type})>'
