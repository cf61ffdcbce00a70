# contractor_hub/routes/contacts.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
from sqlalchemy.exc import IntegrityError
import logging
import re

from ..models import db, Contact, Message
from ..models.contact import CONTACT_TYPES

contacts_bp = Blueprint('contacts', __name__)
logger = logging.getLogger(__name__)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _clean(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


def _contact_not_found(contact_id):
    return jsonify({'error': f'Contact {contact_id} not found'}), 404


@contacts_bp.route('', methods=['GET'])
@login_required
def get_contacts():
    """Get all contacts, optionally filtered by ?type="""
    try:
        query = Contact.query
        contact_type = request.args.get('type')
        if contact_type:
            query = query.filter_by(type=contact_type)
        contacts = query.order_by(Contact.created_at.desc()).all()
        return jsonify([c.to_dict() for c in contacts])
    except Exception as e:
        logger.error(f"Error retrieving contacts: {str(e)}")
        return jsonify({'error': 'Failed to retrieve contacts'}), 500


@contacts_bp.route('', methods=['POST'])
@login_required
def create_contact():
    """Create a new contact"""
    try:
        data = request.get_json(silent=True) or {}

        email = _clean(data.get('email'))
        if email and not re.match(EMAIL_PATTERN, email):
            return jsonify({'error': 'Please enter a valid email address'}), 400

        contact_type = data.get('type', 'lead')
        if contact_type not in CONTACT_TYPES:
            return jsonify({'error': f"Type must be one of: {', '.join(CONTACT_TYPES)}"}), 400

        first_name = _clean(data.get('first_name'))
        last_name = _clean(data.get('last_name'))
        company_name = _clean(data.get('company_name'))
        if not (first_name or last_name or company_name):
            return jsonify({'error': 'A name or company name is required'}), 400

        contact = Contact(
            company_name=company_name,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=_clean(data.get('phone')),
            type=contact_type
        )

        db.session.add(contact)
        db.session.commit()

        logger.info(f"Created contact {contact.id}")
        return jsonify(contact.to_dict()), 201

    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A contact with this email already exists'}), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating contact: {str(e)}")
        return jsonify({'error': f'Failed to create contact: {str(e)}'}), 500


@contacts_bp.route('/<int:contact_id>', methods=['GET'])
@login_required
def get_contact(contact_id):
    """Get a specific contact"""
    try:
        contact = db.session.get(Contact, contact_id)
        if not contact:
            return _contact_not_found(contact_id)
        return jsonify(contact.to_dict())
    except Exception as e:
        logger.error(f"Error retrieving contact {contact_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve contact'}), 500


@contacts_bp.route('/<int:contact_id>', methods=['PUT'])
@login_required
def update_contact(contact_id):
    """Update a contact"""
    try:
        contact = db.session.get(Contact, contact_id)
        if not contact:
            return _contact_not_found(contact_id)
        data = request.get_json(silent=True) or {}

        if 'email' in data:
            email = _clean(data['email'])
            if email and not re.match(EMAIL_PATTERN, email):
                return jsonify({'error': 'Please enter a valid email address'}), 400
            contact.email = email

        if 'type' in data:
            if data['type'] not in CONTACT_TYPES:
                return jsonify({'error': f"Type must be one of: {', '.join(CONTACT_TYPES)}"}), 400
            contact.type = data['type']

        for field in ('company_name', 'first_name', 'last_name', 'phone'):
            if field in data:
                setattr(contact, field, _clean(data[field]))

        db.session.commit()
        return jsonify(contact.to_dict())

    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A contact with this email already exists'}), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating contact {contact_id}: {str(e)}")
        return jsonify({'error': f'Failed to update contact: {str(e)}'}), 500


@contacts_bp.route('/<int:contact_id>', methods=['DELETE'])
@login_required
def delete_contact(contact_id):
    """Delete a contact and its quotes and messages"""
    try:
        contact = db.session.get(Contact, contact_id)
        if not contact:
            return _contact_not_found(contact_id)
        db.session.delete(contact)
        db.session.commit()

        return jsonify({
            'success': True,
            'message': f'Contact {contact_id} and all related records deleted successfully'
        })

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting contact {contact_id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': f'Failed to delete contact: {str(e)}'
        }), 500


@contacts_bp.route('/<int:contact_id>/messages', methods=['GET'])
@login_required
def get_contact_messages(contact_id):
    """Conversation with a contact, oldest first"""
    try:
        contact = db.session.get(Contact, contact_id)
        if not contact:
            return _contact_not_found(contact_id)
        messages = contact.messages.order_by(Message.created_at.asc(), Message.id.asc()).all()
        return jsonify([m.to_dict() for m in messages])
    except Exception as e:
        logger.error(f"Error retrieving messages for contact {contact_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve messages'}), 500


@contacts_bp.route('/<int:contact_id>/quotes', methods=['GET'])
@login_required
def get_contact_quotes(contact_id):
    try:
        contact = db.session.get(Contact, contact_id)
        if not contact:
            return _contact_not_found(contact_id)
        return jsonify([q.to_dict() for q in contact.quotes.all()])
    except Exception as e:
        logger.error(f"Error retrieving quotes for contact {contact_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve quotes'}), 500
