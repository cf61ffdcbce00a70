# contractor_hub/models/user.py

from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .base import db, iso

# Office and field crews share one account table; only admins manage accounts
STAFF_ROLES = ('admin', 'office', 'field', 'staff')


class User(UserMixin, db.Model):
    """A staff account for the internal hub. Clients use Contact portal logins instead."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), index=True, unique=True, nullable=False)
    email = db.Column(db.String(120), index=True, unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(64))
    last_name = db.Column(db.String(64))
    role = db.Column(db.String(20), default='staff', nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def display_name(self):
        """Name shown on notes, uploads and logs; falls back to the username"""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.username

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    def record_login(self, when=None):
        self.last_login = when or datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'display_name': self.display_name,
            'role': self.role,
            'is_admin': self.is_admin,
            'is_active': bool(self.is_active),
            'last_login': iso(self.last_login),
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'
