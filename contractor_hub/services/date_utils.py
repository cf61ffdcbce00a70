# contractor_hub/services/date_utils.py
import os
import re
import pytz
import logging
from datetime import datetime, date

logger = logging.getLogger(__name__)

# Stored datetimes are naive UTC; display happens in the business timezone
SERVER_TIMEZONE = pytz.timezone(os.environ.get('TIMEZONE', 'America/New_York'))


def parse_request_datetime(value):
    """
    Parse a date/datetime sent by a client into a naive UTC datetime.

    Accepts ISO strings with or without an offset ("2024-05-21T10:00:00Z",
    "2024-05-21T10:00:00") and plain dates ("2024-05-21"). Empty values give
    None; anything unparseable raises ValueError.
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        date_str = value.strip()
        try:
            if re.match(r'^\d{4}-\d{2}-\d{2}$', date_str):
                year, month, day = map(int, date_str.split('-'))
                return datetime(year, month, day)
            if date_str.endswith('Z'):
                date_str = date_str[:-1] + '+00:00'
            dt = datetime.fromisoformat(date_str)
        except ValueError as e:
            logger.error(f"Error parsing date '{value}': {str(e)}")
            raise ValueError(f"Invalid date format: {value}")
    else:
        raise ValueError(f"Invalid date value: {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(pytz.utc).replace(tzinfo=None)
    return dt


def to_local(dt):
    """Convert a stored naive UTC datetime to the business timezone"""
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(SERVER_TIMEZONE)


def format_long_date(value):
    """
    'May 21, 2024' style label used by the portal views; None when unset.

    Job and invoice dates are calendar dates, so the stored date is shown
    without a timezone shift.
    """
    if not value:
        return None
    if isinstance(value, str):
        value = parse_request_datetime(value)
    if isinstance(value, datetime):
        value = value.date()
    return f"{value:%B} {value.day}, {value.year}"
