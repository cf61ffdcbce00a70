# contractor_hub/client/portal.py
"""
Client side of the job portal.

PortalAuthGate verifies the token in a portal link once per page load and
hands back a PortalData record. PortalPage turns that record into the four
views the portal shows: overview, timeline, documents and photos. A page
that failed verification exposes only its error state.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .api import ApiClient, ApiError
from ..services.date_utils import format_long_date
from ..services.stages import build_timeline, collapsed_timeline, stage_label, stage_progress

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "Invalid portal URL"
INVALID_TOKEN_MESSAGE = "This portal link is invalid or has expired."
LOAD_ERROR_MESSAGE = "There was an error loading the portal data."


@dataclass
class PortalData:
    """Everything the portal shows for one job. Any link may be missing."""
    contact: Optional[Dict[str, Any]] = None
    job: Optional[Dict[str, Any]] = None
    files: List[Dict[str, Any]] = field(default_factory=list)
    invoices: List[Dict[str, Any]] = field(default_factory=list)
    contract: Optional[Dict[str, Any]] = None
    quote: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "PortalData":
        payload = payload or {}
        return cls(
            contact=payload.get('contact'),
            job=payload.get('job'),
            files=list(payload.get('files') or []),
            invoices=list(payload.get('invoices') or []),
            contract=payload.get('contract'),
            quote=payload.get('quote'),
        )

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


@dataclass
class PortalResult:
    success: bool
    data: Optional[PortalData] = None
    error: Optional[str] = None
    status: Optional[int] = None


class PortalAuthGate:
    """One-shot verification of a portal token; no retry, no refresh"""

    def __init__(self, api: ApiClient):
        self.api = api

    def verify(self, token: Optional[str]) -> PortalResult:
        if not token or not token.strip():
            return PortalResult(success=False, error=INVALID_URL_MESSAGE)

        try:
            payload = self.api.get(f"/api/portal/{quote(token.strip(), safe='')}")
        except ApiError as e:
            logger.error(f"Verify portal token error: {e}")
            if e.status is None:
                return PortalResult(success=False, error=LOAD_ERROR_MESSAGE)
            return PortalResult(success=False, error=INVALID_TOKEN_MESSAGE, status=e.status)

        return PortalResult(success=True, data=PortalData.from_payload(payload))


def format_file_size(size: Optional[int]) -> str:
    if size is None:
        return ""
    if size < 1024:
        return f"{size} B"
    if size < 1048576:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1048576:.1f} MB"


def _is_image(file: Dict[str, Any]) -> bool:
    return (file.get('mimetype') or '').startswith('image/')


def _format_label(mimetype: Optional[str]) -> str:
    if not mimetype:
        return ""
    subtype = mimetype.split('/', 1)[1] if '/' in mimetype else ''
    return subtype.upper() or mimetype


class PortalPage:
    """View models for a portal page. Call load() once with the link's token."""

    def __init__(self, gate: PortalAuthGate):
        self.gate = gate
        self.token: Optional[str] = None
        self.data: Optional[PortalData] = None
        self.error: Optional[str] = None

    def load(self, token: Optional[str]) -> "PortalPage":
        result = self.gate.verify(token)
        self.token = token.strip() if token else None
        if result.success:
            self.data = result.data
            self.error = None
        else:
            self.data = None
            self.error = result.error
        return self

    @property
    def state(self) -> str:
        if self.error:
            return 'error'
        if self.data is None:
            return 'loading'
        return 'ready'

    def overview(self) -> Optional[Dict[str, Any]]:
        if self.state != 'ready' or not self.data.job:
            return None
        job = self.data.job
        contact = self.data.contact
        return {
            'title': job.get('title'),
            'site_address': job.get('site_address'),
            'stage': job.get('stage'),
            'stage_label': stage_label(job.get('stage')),
            'progress': stage_progress(job.get('stage')),
            'start_date': format_long_date(job.get('start_date')),
            'end_date': format_long_date(job.get('end_date')),
            'client_name': _contact_name(contact) if contact else None,
            'quote_total': self.data.quote.get('total') if self.data.quote else None,
            'contract_status': self.data.contract.get('status') if self.data.contract else None,
        }

    def timeline(self, collapsed: bool = False) -> List[Dict[str, Any]]:
        if self.state != 'ready' or not self.data.job:
            return []
        events = build_timeline(self.data.job)
        for event in events:
            event['date_label'] = format_long_date(event['date'])
        return collapsed_timeline(events) if collapsed else events

    def documents(self) -> List[Dict[str, Any]]:
        """Contract and quote first, then non-image files, then invoices"""
        if self.state != 'ready':
            return []
        data = self.data
        documents = []
        if data.contract:
            documents.append({
                'id': 'contract',
                'type': 'Contract',
                'name': 'Project Contract',
                'format': 'PDF',
                'url': data.contract.get('signed_url'),
                'date': data.contract.get('created_at'),
                'status': None,
            })
        if data.quote:
            documents.append({
                'id': 'quote',
                'type': 'Quote',
                'name': 'Project Quote',
                'format': 'PDF',
                'url': f"/api/portal/{quote(self.token, safe='')}/quote.pdf",
                'date': data.quote.get('created_at'),
                'status': None,
            })
        for file in data.files:
            if _is_image(file):
                continue
            documents.append({
                'id': file.get('id'),
                'type': 'File',
                'name': file.get('label') or file.get('filename'),
                'format': _format_label(file.get('mimetype')),
                'size': format_file_size(file.get('filesize')),
                'url': file.get('url'),
                'date': file.get('created_at'),
                'status': None,
            })
        for invoice in data.invoices:
            documents.append({
                'id': invoice.get('id'),
                'type': 'Invoice',
                'name': f"Invoice #{invoice.get('id')}",
                'format': 'PDF',
                'amount_due': invoice.get('amount_due'),
                'due_date': invoice.get('due_date'),
                'date': invoice.get('created_at'),
                'status': invoice.get('status'),
                'payable': invoice.get('status') == 'sent',
            })
        return documents

    def photos(self) -> List[Dict[str, Any]]:
        if self.state != 'ready':
            return []
        return [
            {
                'id': file.get('id'),
                'src': file.get('thumbnail_url') or file.get('url'),
                'full_url': file.get('url'),
                'alt': file.get('label') or file.get('filename'),
            }
            for file in self.data.files if _is_image(file)
        ]

    def render(self) -> Dict[str, Any]:
        """Whole-page model; an error page carries no job data"""
        if self.state == 'error':
            return {'state': 'error', 'error': self.error, 'home_url': '/'}
        if self.state == 'loading':
            return {'state': 'loading'}
        return {
            'state': 'ready',
            'overview': self.overview(),
            'timeline': self.timeline(collapsed=True),
            'documents': self.documents(),
            'photos': self.photos(),
            'contact': self.data.contact,
        }


def _contact_name(contact: Dict[str, Any]) -> Optional[str]:
    name = f"{contact.get('first_name') or ''} {contact.get('last_name') or ''}".strip()
    return name or contact.get('company_name') or contact.get('email')


class PortalAccount:
    """Email/password portal session for a contact"""

    def __init__(self, api: ApiClient):
        self.api = api

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self.api.post("/api/portal/login", {'email': email, 'password': password})['user']

    def me(self) -> Optional[Dict[str, Any]]:
        """Current portal identity, or None when not logged in"""
        try:
            return self.api.get("/api/portal/me")
        except ApiError as e:
            if e.status == 401:
                return None
            raise

    def jobs(self) -> List[Dict[str, Any]]:
        return self.api.get("/api/portal/jobs")

    def logout(self) -> None:
        self.api.post("/api/portal/logout")
