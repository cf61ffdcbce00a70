# contractor_hub/models/job_file.py

from datetime import datetime
from .base import db, iso

class JobFile(db.Model):
    __tablename__ = 'files'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    filesize = db.Column(db.Integer)
    mimetype = db.Column(db.String(100))
    label = db.Column(db.String(255))
    uploaded_by = db.Column(db.String(64))
    storage_key = db.Column(db.String(500))
    thumbnail_url = db.Column(db.String(500))
    thumbnail_key = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'url': self.url,
            'filename': self.filename,
            'filesize': self.filesize,
            'mimetype': self.mimetype,
            'label': self.label or self.filename,
            'uploaded_by': self.uploaded_by,
            'storage_key': self.storage_key,
            'thumbnail_url': self.thumbnail_url,
            'thumbnail_key': self.thumbnail_key,
            'created_at': iso(self.created_at)
        }

    def storage_keys(self):
        """Keys of every stored object behind this record"""
        return [key for key in (self.storage_key, self.thumbnail_key) if key]
