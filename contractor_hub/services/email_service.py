# contractor_hub/services/email_service.py
# Outbound email over SMTP

import smtplib
import logging
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)


class EmailService:
    """
    Sends plain-text email through an SMTP relay.

    send() never raises: it returns (success, message) so callers can record
    a delivery result next to whatever they persisted.
    """

    def __init__(self, host=None, port=587, user=None, password=None, sender=None, timeout=30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config.get('SMTP_HOST'),
            port=config.get('SMTP_PORT', 587),
            user=config.get('SMTP_USER'),
            password=config.get('SMTP_PASSWORD'),
            sender=config.get('MAIL_FROM'),
        )

    @property
    def configured(self):
        return bool(self.host)

    def build_message(self, to, subject, text):
        msg = MIMEText(text, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = self.sender or self.user or ''
        msg['To'] = to
        return msg

    def send(self, to, subject, text):
        if not to:
            return False, 'No recipient address'
        if not self.configured:
            logger.warning(f"SMTP not configured - email to {to} not sent")
            return False, 'Email service not configured'

        msg = self.build_message(to, subject, text)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email to {to} failed: {str(e)}")
            return False, f'Email failed: {str(e)}'

        logger.info(f"Email sent to {to}: {subject}")
        return True, 'Email sent'


def get_email_service(app):
    """The app's EmailService, created on first use"""
    service = app.extensions.get('email_service')
    if service is None:
        service = EmailService.from_config(app.config)
        app.extensions['email_service'] = service
    return service
