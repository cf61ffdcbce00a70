# contractor_hub/models/contact.py

from .base import db, iso
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

CONTACT_TYPES = ('lead', 'customer', 'supplier')

class Contact(db.Model):
    __tablename__ = 'contacts'

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(120))
    first_name = db.Column(db.String(64))
    last_name = db.Column(db.String(64))
    email = db.Column(db.String(120), unique=True, nullable=True)
    phone = db.Column(db.String(20))
    type = db.Column(db.String(20), nullable=False, default='lead')

    # Portal access
    portal_enabled = db.Column(db.Boolean, default=False)
    portal_password = db.Column(db.String(255))
    portal_last_login = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    quotes = db.relationship('Quote', backref='contact', lazy='dynamic', cascade="all, delete-orphan")
    messages = db.relationship('Message', backref='contact', lazy='dynamic', cascade="all, delete-orphan")

    def set_portal_password(self, password):
        self.portal_password = generate_password_hash(password)

    def check_portal_password(self, password):
        if not self.portal_password:
            return False
        return check_password_hash(self.portal_password, password)

    @property
    def display_name(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.company_name or self.email or f"Contact {self.id}"

    def to_dict(self):
        # portal_password never leaves the server
        return {
            'id': self.id,
            'company_name': self.company_name,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'type': self.type,
            'portal_enabled': bool(self.portal_enabled),
            'portal_last_login': iso(self.portal_last_login),
            'created_at': iso(self.created_at)
        }

    def __repr__(self):
        return f'<Contact id={self.id} email={self.email}>'
