# contractor_hub/models/base.py

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def iso(value):
    """ISO-8601 string for a date/datetime column, None when unset"""
    return value.isoformat() if value else None
