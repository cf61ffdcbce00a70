# contractor_hub/models/__init__.py

from .base import db

# --- Model Import Order ---
# Parents before children so relationship strings resolve on first mapper use.

# 1. Foundational Models
from .user import User
from .contact import Contact

# 2. Sales pipeline
from .quote import Quote, QuoteItem
from .contract import Contract, Invoice

# 3. Delivery
from .job import Job, Note, PortalToken
from .job_file import JobFile
from .message import Message

__all__ = [
    'db',
    'User',
    'Contact',
    'Quote',
    'QuoteItem',
    'Contract',
    'Invoice',
    'Job',
    'Note',
    'PortalToken',
    'JobFile',
    'Message',
]
