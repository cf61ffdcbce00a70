# contractor_hub/client/composer.py
import logging
from typing import List, Optional

from .api import ApiClient, ApiError
from .cache import ResponseCache
from .notices import Notice

logger = logging.getLogger(__name__)


class MessageComposer:
    """
    Message and email composer for one contact.

    Plain messages need a body; emails need a body, a subject and a contact
    with an email address. Validation failures add a Notice and send nothing.
    """

    def __init__(self, api: ApiClient, cache: ResponseCache, contact_id: int,
                 contact_email: Optional[str] = None, contact_name: str = "the recipient"):
        self.api = api
        self.cache = cache
        self.contact_id = contact_id
        self.contact_email = contact_email
        self.contact_name = contact_name
        self.message = ""
        self.subject = ""
        self.email_dialog_open = False
        self.notices: List[Notice] = []

    def _notify_error(self, title: str, description: str) -> None:
        self.notices.append(Notice(title, description, "destructive"))

    def send_message(self) -> Optional[dict]:
        if not self.message.strip():
            return None
        return self._send({
            'contact_id': self.contact_id,
            'body': self.message,
            'direction': 'outbound',
            'type': 'message',
        })

    def open_email_dialog(self) -> bool:
        if not self.contact_email:
            self._notify_error("Cannot send email", "This contact does not have an email address.")
            return False
        self.email_dialog_open = True
        return True

    def close_email_dialog(self) -> None:
        self.email_dialog_open = False

    def send_email(self) -> Optional[dict]:
        if not self.contact_email:
            self._notify_error("Cannot send email", "This contact does not have an email address.")
            return None
        if not self.message.strip():
            self._notify_error("Email body is empty", "Please enter a message to send.")
            return None
        if not self.subject.strip():
            self._notify_error("Subject is empty", "Please enter an email subject.")
            return None

        return self._send({
            'contact_id': self.contact_id,
            'subject': self.subject,
            'body': self.message,
            'direction': 'outbound',
            'type': 'email',
        })

    def handle_key(self, key: str, primary_modifier: bool = False) -> bool:
        """Ctrl/Cmd+Enter submits whichever path is active; True when handled"""
        if not (primary_modifier and key == 'Enter'):
            return False
        if self.email_dialog_open:
            self.send_email()
        else:
            self.send_message()
        return True

    def _send(self, payload: dict) -> Optional[dict]:
        try:
            message = self.api.post("/api/messages", payload)
        except ApiError as e:
            logger.error(f"Failed to send message: {e}")
            self._notify_error("Error sending message", "There was a problem sending your message. Please try again.")
            return None

        self.cache.invalidate(f"/api/contacts/{self.contact_id}/messages")
        self.cache.invalidate("/api/messages")
        self.message = ""
        self.subject = ""
        self.email_dialog_open = False
        self.notices.append(Notice("Message sent", f"Your message has been sent to {self.contact_name}."))
        return message
