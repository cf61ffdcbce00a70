# contractor_hub/routes/messages.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required
import logging

from ..models import db, Contact, Job, Message
from ..models.message import MESSAGE_TYPES, MESSAGE_DIRECTIONS
from ..services.email_service import get_email_service

messages_bp = Blueprint('messages', __name__)
logger = logging.getLogger(__name__)


@messages_bp.route('', methods=['GET'])
@login_required
def get_messages():
    """All messages, newest first; filter with ?contact_id=, ?type= or ?unread=1"""
    try:
        query = Message.query
        contact_id = request.args.get('contact_id', type=int)
        if contact_id:
            query = query.filter_by(contact_id=contact_id)
        message_type = request.args.get('type')
        if message_type:
            query = query.filter_by(type=message_type)
        if request.args.get('unread') in ('1', 'true'):
            query = query.filter_by(read_status=False)

        messages = query.order_by(Message.created_at.desc(), Message.id.desc()).all()
        return jsonify([m.to_dict() for m in messages])
    except Exception as e:
        logger.error(f"Error retrieving messages: {str(e)}")
        return jsonify({'error': 'Failed to retrieve messages'}), 500


@messages_bp.route('', methods=['POST'])
@login_required
def create_message():
    """
    Store a message. Outbound emails are then delivered to the contact and
    the result recorded in 'delivered'.
    """
    try:
        data = request.get_json(silent=True) or {}

        body = (data.get('body') or '').strip()
        if not body:
            return jsonify({'error': 'Message body is required'}), 400

        message_type = data.get('type', 'message')
        if message_type not in MESSAGE_TYPES:
            return jsonify({'error': f"Type must be one of: {', '.join(MESSAGE_TYPES)}"}), 400

        direction = data.get('direction', 'outbound')
        if direction not in MESSAGE_DIRECTIONS:
            return jsonify({'error': f"Direction must be one of: {', '.join(MESSAGE_DIRECTIONS)}"}), 400

        contact = None
        if data.get('contact_id'):
            contact = db.session.get(Contact, data['contact_id'])
            if not contact:
                return jsonify({'error': 'Contact not found'}), 404

        if data.get('job_id') and not db.session.get(Job, data['job_id']):
            return jsonify({'error': 'Job not found'}), 404

        subject = (data.get('subject') or '').strip() or None
        if message_type == 'email':
            if not subject:
                return jsonify({'error': 'Email subject is required'}), 400
            if direction == 'outbound' and not (contact and contact.email):
                return jsonify({'error': 'Contact has no email address'}), 400

        message = Message(
            contact_id=contact.id if contact else None,
            job_id=data.get('job_id') or None,
            subject=subject,
            body=body,
            type=message_type,
            direction=direction,
            # Our own outbound messages start out read
            read_status=direction == 'outbound'
        )
        db.session.add(message)
        db.session.commit()

        if message_type == 'email' and direction == 'outbound':
            delivered, detail = get_email_service(current_app).send(contact.email, subject, body)
            message.delivered = delivered
            db.session.commit()
            if not delivered:
                logger.warning(f"Message {message.id} stored but email not delivered: {detail}")

        logger.info(f"Created {direction} {message_type} {message.id} for contact {message.contact_id}")
        return jsonify(message.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating message: {str(e)}")
        return jsonify({'error': f'Failed to create message: {str(e)}'}), 500


@messages_bp.route('/<int:message_id>/read', methods=['PUT'])
@login_required
def mark_message_read(message_id):
    try:
        message = db.session.get(Message, message_id)
        if not message:
            return jsonify({'error': f'Message {message_id} not found'}), 404
        data = request.get_json(silent=True) or {}
        message.read_status = bool(data.get('read_status', True))
        db.session.commit()
        return jsonify(message.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating message {message_id}: {str(e)}")
        return jsonify({'error': 'Failed to update message'}), 500


@messages_bp.route('/<int:message_id>', methods=['DELETE'])
@login_required
def delete_message(message_id):
    try:
        message = db.session.get(Message, message_id)
        if not message:
            return jsonify({'error': f'Message {message_id} not found'}), 404
        db.session.delete(message)
        db.session.commit()
        return jsonify({'success': True, 'message': f'Message {message_id} deleted successfully'})
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting message {message_id}: {str(e)}")
        return jsonify({'error': 'Failed to delete message'}), 500
