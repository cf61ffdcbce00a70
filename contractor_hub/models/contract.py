# contractor_hub/models/contract.py

from datetime import datetime
from .base import db, iso

CONTRACT_STATUSES = ('pending', 'active', 'complete')
INVOICE_STATUSES = ('draft', 'sent', 'paid', 'overdue')

class Contract(db.Model):
    __tablename__ = 'contracts'

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey('quotes.id'), nullable=False)
    signed_url = db.Column(db.String(500))
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    invoices = db.relationship('Invoice', backref='contract', lazy='dynamic', cascade="all, delete-orphan")
    jobs = db.relationship('Job', backref='contract', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'quote_id': self.quote_id,
            'signed_url': self.signed_url,
            'status': self.status,
            'created_at': iso(self.created_at)
        }


class Invoice(db.Model):
    __tablename__ = 'invoices'

    id = db.Column(db.Integer, primary_key=True)
    contract_id = db.Column(db.Integer, db.ForeignKey('contracts.id'), nullable=False)
    amount_due = db.Column(db.Float, nullable=False)
    due_date = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='draft')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'contract_id': self.contract_id,
            'amount_due': self.amount_due,
            'due_date': iso(self.due_date),
            'status': self.status,
            'created_at': iso(self.created_at)
        }
