"""
Client-side flows for the Contractor Hub API: portal verification and views,
file attachment, the message composer and quote actions.
"""

from .api import ApiClient, ApiError
from .cache import ResponseCache
from .notices import Notice
from .portal import PortalAccount, PortalAuthGate, PortalData, PortalPage, PortalResult
from .files import FileUploadFlow
from .composer import MessageComposer
from .quotes import QuoteActions, generate_portal_link

__all__ = [
    'ApiClient',
    'ApiError',
    'ResponseCache',
    'Notice',
    'PortalAccount',
    'PortalAuthGate',
    'PortalData',
    'PortalPage',
    'PortalResult',
    'FileUploadFlow',
    'MessageComposer',
    'QuoteActions',
    'generate_portal_link',
]
