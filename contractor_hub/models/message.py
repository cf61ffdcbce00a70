# contractor_hub/models/message.py

from datetime import datetime
from .base import db, iso

MESSAGE_TYPES = ('message', 'email', 'sms')
MESSAGE_DIRECTIONS = ('inbound', 'outbound')

class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    contact_id = db.Column(db.Integer, db.ForeignKey('contacts.id'), nullable=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id', ondelete='SET NULL'), nullable=True)
    subject = db.Column(db.String(255))
    body = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default='message')
    direction = db.Column(db.String(20), nullable=False, default='inbound')
    read_status = db.Column(db.Boolean, default=False)
    delivered = db.Column(db.Boolean, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'contact_id': self.contact_id,
            'job_id': self.job_id,
            'subject': self.subject,
            'body': self.body,
            'type': self.type,
            'direction': self.direction,
            'read_status': bool(self.read_status),
            'delivered': self.delivered,
            'created_at': iso(self.created_at)
        }
