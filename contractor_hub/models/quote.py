# contractor_hub/models/quote.py

from datetime import datetime
from .base import db, iso

QUOTE_STATUSES = ('draft', 'sent', 'approved', 'expired')
FLOORING_TYPES = ('hardwood', 'laminate', 'vinyl', 'tile', 'carpet', 'other')
FLOORING_SERVICES = ('installation', 'removal', 'subfloor_prep', 'trim_work', 'staining', 'sealing', 'repair')

class Quote(db.Model):
    __tablename__ = 'quotes'

    id = db.Column(db.Integer, primary_key=True)
    contact_id = db.Column(db.Integer, db.ForeignKey('contacts.id'), nullable=False)
    total = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(20), nullable=False, default='draft')
    valid_until = db.Column(db.DateTime, nullable=True)

    # Send / approval metadata
    sent_at = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    signature = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    items = db.relationship('QuoteItem', backref='quote', lazy='dynamic', cascade="all, delete-orphan")
    contracts = db.relationship('Contract', backref='quote', lazy='dynamic', cascade="all, delete-orphan")

    def is_past_valid_until(self, now=None):
        now = now or datetime.utcnow()
        return self.valid_until is not None and now > self.valid_until

    def to_dict(self):
        return {
            'id': self.id,
            'contact_id': self.contact_id,
            'total': self.total,
            'status': self.status,
            'valid_until': iso(self.valid_until),
            'sent_at': iso(self.sent_at),
            'approved_at': iso(self.approved_at),
            'signed': self.signature is not None,
            'created_at': iso(self.created_at)
        }


class QuoteItem(db.Model):
    __tablename__ = 'quote_items'

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey('quotes.id'), nullable=False)
    description = db.Column(db.String(200), nullable=False)
    sqft = db.Column(db.Float)
    unit_price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    material_type = db.Column(db.String(20))
    service_type = db.Column(db.String(20))
    room_name = db.Column(db.String(100))
    width = db.Column(db.Float)
    length = db.Column(db.Float)
    notes = db.Column(db.Text)

    @property
    def line_total(self):
        return round((self.unit_price or 0) * (self.quantity or 0), 2)

    def to_dict(self):
        return {
            'id': self.id,
            'quote_id': self.quote_id,
            'description': self.description,
            'sqft': self.sqft,
            'unit_price': self.unit_price,
            'quantity': self.quantity,
            'line_total': self.line_total,
            'material_type': self.material_type,
            'service_type': self.service_type,
            'room_name': self.room_name,
            'width': self.width,
            'length': self.length,
            'notes': self.notes
        }
