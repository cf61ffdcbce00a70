# contractor_hub/models/job.py

from datetime import datetime
from .base import db, iso

class Job(db.Model):
    __tablename__ = 'jobs'

    id = db.Column(db.Integer, primary_key=True)
    # A job can be opened before its paperwork exists
    contract_id = db.Column(db.Integer, db.ForeignKey('contracts.id'), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    site_address = db.Column(db.String(255))
    stage = db.Column(db.String(30), nullable=False, default='planning')
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)

    # Flooring specifics
    total_sqft = db.Column(db.Float)
    primary_flooring_type = db.Column(db.String(20))
    requires_subfloor_prep = db.Column(db.Boolean, default=False)
    has_existing_flooring_removal = db.Column(db.Boolean, default=False)
    special_instructions = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    files = db.relationship('JobFile', backref='job', lazy='dynamic', cascade="all, delete-orphan")
    notes = db.relationship('Note', backref='job', lazy='dynamic', cascade="all, delete-orphan")
    portal_tokens = db.relationship('PortalToken', backref='job', lazy='dynamic', cascade="all, delete-orphan")
    # Messages outlive the job; their job_id is cleared
    messages = db.relationship('Message', backref='job')

    def to_dict(self):
        return {
            'id': self.id,
            'contract_id': self.contract_id,
            'title': self.title,
            'site_address': self.site_address,
            'stage': self.stage,
            'start_date': iso(self.start_date),
            'end_date': iso(self.end_date),
            'total_sqft': self.total_sqft,
            'primary_flooring_type': self.primary_flooring_type,
            'requires_subfloor_prep': bool(self.requires_subfloor_prep),
            'has_existing_flooring_removal': bool(self.has_existing_flooring_removal),
            'special_instructions': self.special_instructions,
            'created_at': iso(self.created_at)
        }


class Note(db.Model):
    __tablename__ = 'notes'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    created_by = db.Column(db.String(64))
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'created_by': self.created_by,
            'content': self.content,
            'created_at': iso(self.created_at)
        }


class PortalToken(db.Model):
    __tablename__ = 'portal_tokens'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'token': self.token,
            'portal_url': f"/portal/{self.token}",
            'expires_at': iso(self.expires_at),
            'created_at': iso(self.created_at)
        }
