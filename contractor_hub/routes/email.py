# contractor_hub/routes/email.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
import logging

from ..services.email_service import get_email_service

email_bp = Blueprint('email', __name__)
logger = logging.getLogger(__name__)


@email_bp.route('/test-email', methods=['POST'])
@login_required
def send_test_email():
    """Send a test message to check SMTP settings"""
    data = request.get_json(silent=True) or {}
    to = (data.get('to') or current_user.email or '').strip()
    if not to:
        return jsonify({'error': 'Recipient address is required'}), 400

    company = current_app.config.get('COMPANY_NAME', 'Contractor Hub')
    success, detail = get_email_service(current_app).send(
        to,
        f"{company} test email",
        f"This is a test email from {company}. If you received it, email delivery is working."
    )
    if not success:
        logger.warning(f"Test email to {to} failed: {detail}")
        return jsonify({'success': False, 'error': detail}), 502

    return jsonify({'success': True, 'message': detail, 'sent_to': to})
