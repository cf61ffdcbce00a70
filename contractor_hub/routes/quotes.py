# contractor_hub/routes/quotes.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from datetime import datetime
import logging

from ..models import db, Contact, Quote, QuoteItem, Contract
from ..models.quote import QUOTE_STATUSES
from ..services.date_utils import parse_request_datetime, format_long_date, to_local
from ..services.email_service import get_email_service
from ..services.documents import quote_pdf_response
from ..middleware.auth import current_portal_user

quotes_bp = Blueprint('quotes', __name__)
logger = logging.getLogger(__name__)

# Status changes allowed through a plain update; send and approve have their own endpoints
_UPDATE_TRANSITIONS = {
    'draft': ('draft', 'expired'),
    'sent': ('sent', 'expired'),
    'approved': ('approved',),
    'expired': ('expired',),
}


def _quote_not_found(quote_id):
    return jsonify({'error': f'Quote {quote_id} not found'}), 404


def build_quote_item(quote_id, data):
    """
    QuoteItem from request data. Raises ValueError with a user-facing message
    when a required field is missing or a number is malformed.
    """
    description = (data.get('description') or '').strip()
    if not description:
        raise ValueError('Item description is required')
    if data.get('unit_price') in (None, ''):
        raise ValueError('Item unit_price is required')

    try:
        unit_price = float(data['unit_price'])
        quantity = int(data.get('quantity', 1))
        sqft = float(data['sqft']) if data.get('sqft') not in (None, '') else None
        width = float(data['width']) if data.get('width') not in (None, '') else None
        length = float(data['length']) if data.get('length') not in (None, '') else None
    except (TypeError, ValueError):
        raise ValueError('Item numbers must be numeric')

    if quantity < 1:
        raise ValueError('Item quantity must be at least 1')

    # Derive square footage from room dimensions when not given
    if sqft is None and width and length:
        sqft = round(width * length, 2)

    return QuoteItem(
        quote_id=quote_id,
        description=description,
        sqft=sqft,
        unit_price=unit_price,
        quantity=quantity,
        material_type=data.get('material_type'),
        service_type=data.get('service_type'),
        room_name=data.get('room_name'),
        width=width,
        length=length,
        notes=data.get('notes')
    )


def recalculate_total(quote):
    items = quote.items.all()
    if items:
        quote.total = round(sum(item.line_total for item in items), 2)


def quote_email_text(quote, contact):
    company = current_app.config.get('COMPANY_NAME', 'Contractor Hub')
    lines = [
        f"Hello {contact.display_name},",
        "",
        f"Your quote #{quote.id} from {company} is ready for review.",
        f"Total: ${quote.total:,.2f}",
    ]
    if quote.sent_at:
        lines.append(f"Sent: {to_local(quote.sent_at):%B %d, %Y %I:%M %p %Z}")
    if quote.valid_until:
        lines.append(f"Valid until: {format_long_date(quote.valid_until)}")
    lines.append("")
    for item in quote.items.all():
        lines.append(f"  - {item.description}: {item.quantity} x ${item.unit_price:,.2f}")
    lines.extend(["", "Thank you,", company])
    return "\n".join(lines)


@quotes_bp.route('', methods=['GET'])
@login_required
def get_quotes():
    """Get all quotes, optionally filtered by ?status= and ?contact_id="""
    try:
        query = Quote.query
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        contact_id = request.args.get('contact_id', type=int)
        if contact_id:
            query = query.filter_by(contact_id=contact_id)

        result = []
        for quote in query.order_by(Quote.created_at.desc()).all():
            quote_data = quote.to_dict()
            quote_data['contact_name'] = quote.contact.display_name if quote.contact else None
            result.append(quote_data)
        return jsonify(result)
    except Exception as e:
        logger.error(f"Error retrieving quotes: {str(e)}")
        return jsonify({'error': 'Failed to retrieve quotes'}), 500


@quotes_bp.route('', methods=['POST'])
@login_required
def create_quote():
    """Create a draft quote, optionally with its items"""
    try:
        data = request.get_json(silent=True) or {}

        if not data.get('contact_id'):
            return jsonify({'error': 'Contact ID is required'}), 400

        contact = db.session.get(Contact, data['contact_id'])
        if not contact:
            return jsonify({'error': 'Contact not found'}), 404

        try:
            valid_until = parse_request_datetime(data.get('valid_until'))
            total = float(data.get('total') or 0)
        except (TypeError, ValueError) as e:
            return jsonify({'error': str(e)}), 400

        quote = Quote(
            contact_id=contact.id,
            total=total,
            status='draft',
            valid_until=valid_until
        )
        db.session.add(quote)
        db.session.flush()

        for item_data in data.get('items') or []:
            try:
                db.session.add(build_quote_item(quote.id, item_data))
            except ValueError as e:
                db.session.rollback()
                return jsonify({'error': str(e)}), 400

        db.session.flush()
        recalculate_total(quote)
        db.session.commit()

        logger.info(f"Created quote {quote.id} for contact {contact.id}")
        return jsonify(quote.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating quote: {str(e)}")
        return jsonify({'error': f'Failed to create quote: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>', methods=['GET'])
@login_required
def get_quote(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        return jsonify(quote.to_dict())
    except Exception as e:
        logger.error(f"Error retrieving quote {quote_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve quote'}), 500


@quotes_bp.route('/<int:quote_id>', methods=['PUT'])
@login_required
def update_quote(quote_id):
    """Update total, validity or expire a quote"""
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        data = request.get_json(silent=True) or {}

        if 'status' in data:
            new_status = data['status']
            if new_status not in QUOTE_STATUSES:
                return jsonify({'error': f"Status must be one of: {', '.join(QUOTE_STATUSES)}"}), 400
            if new_status not in _UPDATE_TRANSITIONS[quote.status]:
                return jsonify({
                    'error': f"Cannot change quote status from '{quote.status}' to '{new_status}'"
                }), 409
            quote.status = new_status

        try:
            if 'valid_until' in data:
                quote.valid_until = parse_request_datetime(data['valid_until'])
            if 'total' in data:
                quote.total = float(data['total'] or 0)
        except (TypeError, ValueError) as e:
            db.session.rollback()
            return jsonify({'error': str(e)}), 400

        db.session.commit()
        return jsonify(quote.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating quote {quote_id}: {str(e)}")
        return jsonify({'error': f'Failed to update quote: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>', methods=['DELETE'])
@login_required
def delete_quote(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        if quote.status == 'approved':
            return jsonify({'error': 'Approved quotes cannot be deleted'}), 409
        db.session.delete(quote)
        db.session.commit()
        return jsonify({'success': True, 'message': f'Quote {quote_id} deleted successfully'})
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting quote {quote_id}: {str(e)}")
        return jsonify({'error': f'Failed to delete quote: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>/items', methods=['GET'])
@login_required
def get_quote_items(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        return jsonify([item.to_dict() for item in quote.items.order_by(QuoteItem.id).all()])
    except Exception as e:
        logger.error(f"Error retrieving items for quote {quote_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve quote items'}), 500


@quotes_bp.route('/<int:quote_id>/items', methods=['POST'])
@login_required
def add_quote_item(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        if quote.status not in ('draft', 'sent'):
            return jsonify({'error': f"Cannot add items to a quote that is {quote.status}"}), 409

        try:
            item = build_quote_item(quote.id, request.get_json(silent=True) or {})
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        db.session.add(item)
        db.session.flush()
        recalculate_total(quote)
        db.session.commit()
        return jsonify(item.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error adding item to quote {quote_id}: {str(e)}")
        return jsonify({'error': f'Failed to add quote item: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>/send', methods=['POST'])
@login_required
def send_quote(quote_id):
    """
    Mark a quote as sent and email it to the contact.

    Draft and already-sent quotes may be sent (a resend refreshes sent_at).
    Approved or expired quotes return 409.
    """
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        if quote.status not in ('draft', 'sent'):
            return jsonify({'error': f"Cannot send a quote that is {quote.status}"}), 409

        quote.status = 'sent'
        quote.sent_at = datetime.utcnow()
        db.session.commit()

        email_sent = False
        contact = quote.contact
        if contact and contact.email:
            email_sent, detail = get_email_service(current_app).send(
                contact.email,
                f"Your quote #{quote.id} from {current_app.config.get('COMPANY_NAME', 'Contractor Hub')}",
                quote_email_text(quote, contact)
            )
            if not email_sent:
                logger.warning(f"Quote {quote.id} marked sent but email not delivered: {detail}")

        logger.info(f"Quote {quote.id} sent")
        return jsonify({'quote': quote.to_dict(), 'email_sent': email_sent})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error sending quote {quote_id}: {str(e)}")
        return jsonify({'error': f'Failed to send quote: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>/approve', methods=['POST'])
def approve_quote(quote_id):
    """
    Approve a sent quote with the client's signature.

    Creates a pending Contract for the quote. Staff may approve any quote;
    a portal session may approve only quotes addressed to its own contact.
    """
    portal_user = current_portal_user()
    if not current_user.is_authenticated and not portal_user:
        logger.warning(f"Unauthenticated approval attempt for quote {quote_id}")
        return jsonify({'error': 'Authentication required'}), 401

    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)

        if not current_user.is_authenticated and portal_user['id'] != quote.contact_id:
            logger.warning(f"Portal contact {portal_user['id']} tried to approve quote {quote.id}")
            return jsonify({'error': 'Not allowed to approve this quote'}), 403

        data = request.get_json(silent=True) or {}
        signature = (data.get('signature') or '').strip()
        if not signature:
            return jsonify({'error': 'Signature is required'}), 400

        if quote.status != 'sent':
            return jsonify({'error': f"Only sent quotes can be approved (quote is {quote.status})"}), 409

        if quote.is_past_valid_until():
            quote.status = 'expired'
            db.session.commit()
            logger.info(f"Quote {quote.id} expired before approval")
            return jsonify({'error': 'Quote has expired'}), 409

        quote.status = 'approved'
        quote.signature = signature
        quote.approved_at = datetime.utcnow()

        contract = Contract(quote_id=quote.id, status='pending')
        db.session.add(contract)
        db.session.commit()

        logger.info(f"Quote {quote.id} approved, contract {contract.id} created")
        return jsonify({'quote': quote.to_dict(), 'contract': contract.to_dict()})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error approving quote {quote_id}: {str(e)}")
        return jsonify({'error': f'Failed to approve quote: {str(e)}'}), 500


@quotes_bp.route('/<int:quote_id>/contract', methods=['GET'])
@login_required
def get_quote_contract(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        contract = quote.contracts.order_by(Contract.created_at.desc(), Contract.id.desc()).first()
        if not contract:
            return jsonify({'error': f'No contract for quote {quote_id}'}), 404
        return jsonify(contract.to_dict())
    except Exception as e:
        logger.error(f"Error retrieving contract for quote {quote_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve contract'}), 500


@quotes_bp.route('/<int:quote_id>/pdf', methods=['GET'])
@login_required
def get_quote_pdf(quote_id):
    try:
        quote = db.session.get(Quote, quote_id)
        if not quote:
            return _quote_not_found(quote_id)
        return quote_pdf_response(quote, current_app.config.get('COMPANY_NAME', 'Contractor Hub'))
    except Exception as e:
        logger.error(f"Error generating PDF for quote {quote_id}: {str(e)}")
        return jsonify({'error': 'Failed to generate quote PDF'}), 500
