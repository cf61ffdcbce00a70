# contractor_hub/services/portal.py
"""
Portal token resolution and the job aggregate the client portal renders.

The aggregate walks job -> contract -> quote -> contact. Each link is
optional; a missing link leaves that field and everything reached only
through it as None.
"""

import re
import secrets
import logging
from datetime import datetime, timedelta

from ..models import db, Job, JobFile, Contract, Invoice, Quote, PortalToken

logger = logging.getLogger(__name__)

PORTAL_FIELDS = ('contact', 'job', 'files', 'invoices', 'contract', 'quote')

# Portal paths a token would shadow
RESERVED_TOKENS = frozenset({'me', 'jobs', 'login', 'logout', 'enable', 'disable', 'tokens'})
TOKEN_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


class PortalAccessError(Exception):
    """A portal token that cannot be used; carries the HTTP status to return"""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def resolve_token(token_value, now=None):
    """Return the Job a portal token grants access to or raise PortalAccessError"""
    portal_token = PortalToken.query.filter_by(token=token_value).first()
    if not portal_token:
        raise PortalAccessError('Portal token not found or expired', 404)

    if portal_token.is_expired(now):
        logger.info(f"Expired portal token used for job {portal_token.job_id}")
        raise PortalAccessError('Portal token has expired', 401)

    job = db.session.get(Job, portal_token.job_id)
    if not job:
        raise PortalAccessError('Job not found', 404)
    return job


def build_portal_payload(job):
    contract = job.contract
    quote = contract.quote if contract else None
    contact = quote.contact if quote else None

    files = job.files.order_by(JobFile.created_at.desc(), JobFile.id.desc()).all()
    invoices = contract.invoices.order_by(Invoice.id).all() if contract else []

    return {
        'contact': contact.to_dict() if contact else None,
        'job': job.to_dict(),
        'files': [f.to_dict() for f in files],
        'invoices': [i.to_dict() for i in invoices],
        'contract': contract.to_dict() if contract else None,
        'quote': quote.to_dict() if quote else None,
    }


def jobs_for_contact(contact_id):
    """Jobs reachable from a contact's quotes through their contracts"""
    return (
        Job.query
        .join(Contract, Job.contract_id == Contract.id)
        .join(Quote, Contract.quote_id == Quote.id)
        .filter(Quote.contact_id == contact_id)
        .order_by(Job.created_at.desc())
        .all()
    )


def issue_portal_token(job, token_value=None, ttl_days=30):
    """
    Create a PortalToken for a job; a random token is generated when none is given.

    ttl_days=None never expires and ttl_days=0 expires immediately.
    """
    portal_token = PortalToken(
        job_id=job.id,
        token=token_value or secrets.token_urlsafe(32),
        expires_at=datetime.utcnow() + timedelta(days=ttl_days) if ttl_days is not None else None,
    )
    db.session.add(portal_token)
    return portal_token


def validate_token_value(token_value):
    """Error message for a staff-supplied token that cannot be used in a portal URL, else None"""
    if not TOKEN_PATTERN.fullmatch(token_value):
        return 'Token may only contain letters, digits, "-" and "_"'
    if token_value.lower() in RESERVED_TOKENS:
        return f"'{token_value}' is reserved"
    return None
