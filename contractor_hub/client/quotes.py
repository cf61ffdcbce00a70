# contractor_hub/client/quotes.py
import logging
from typing import List, Optional

from .api import ApiClient, ApiError
from .cache import ResponseCache
from .notices import Notice

logger = logging.getLogger(__name__)


class QuoteActions:
    def __init__(self, api: ApiClient, cache: ResponseCache):
        self.api = api
        self.cache = cache
        self.notices: List[Notice] = []

    def _invalidate(self, quote_id: int) -> None:
        self.cache.invalidate(f"/api/quotes/{quote_id}")
        self.cache.invalidate("/api/quotes")

    def load_details(self, quote_id: int) -> dict:
        """Quote with its items and contact; the contact is None when it cannot be loaded"""
        quote = self.cache.read(f"/api/quotes/{quote_id}")
        items = self.cache.read(f"/api/quotes/{quote_id}/items")
        contact = None
        if quote.get('contact_id'):
            try:
                contact = self.cache.read(f"/api/contacts/{quote['contact_id']}")
            except ApiError as e:
                logger.error(f"Failed to load contact for quote {quote_id}: {e}")
        return {'quote': quote, 'items': items, 'contact': contact}

    def send(self, quote_id: int) -> Optional[dict]:
        try:
            result = self.api.post(f"/api/quotes/{quote_id}/send")
        except ApiError as e:
            logger.error(f"Failed to send quote {quote_id}: {e}")
            self.notices.append(Notice("Error sending quote", e.message, "destructive"))
            return None

        self._invalidate(quote_id)
        description = "The quote was emailed to the client." if result.get('email_sent') else "The quote was marked as sent."
        self.notices.append(Notice("Quote sent", description))
        return result

    def approve(self, quote_id: int, signature: str) -> Optional[dict]:
        if not signature or not signature.strip():
            self.notices.append(Notice("Signature required", "Please sign to approve the quote.", "destructive"))
            return None

        try:
            result = self.api.post(f"/api/quotes/{quote_id}/approve", {'signature': signature})
        except ApiError as e:
            logger.error(f"Failed to approve quote {quote_id}: {e}")
            self.notices.append(Notice("Error approving quote", e.message, "destructive"))
            return None

        self._invalidate(quote_id)
        self.cache.invalidate(f"/api/quotes/{quote_id}/contract")
        self.notices.append(Notice("Quote approved", "A contract has been created for this quote."))
        return result


def generate_portal_link(api: ApiClient, job_id: int, origin: str = "") -> Optional[str]:
    """Issue a portal token for a job and return the shareable URL"""
    try:
        token = api.post("/api/portal/tokens", {'job_id': job_id})
    except ApiError as e:
        logger.error(f"Generate portal token error: {e}")
        return None
    return f"{origin.rstrip('/')}{token['portal_url']}"
