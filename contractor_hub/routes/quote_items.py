# contractor_hub/routes/quote_items.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
import logging

from ..models import db, QuoteItem
from .quotes import recalculate_total

quote_items_bp = Blueprint('quote_items', __name__)
logger = logging.getLogger(__name__)

NUMERIC_FIELDS = {'unit_price': float, 'quantity': int, 'sqft': float, 'width': float, 'length': float}
TEXT_FIELDS = ('description', 'material_type', 'service_type', 'room_name', 'notes')


@quote_items_bp.route('/<int:item_id>', methods=['PUT'])
@login_required
def update_quote_item(item_id):
    """Update a line of a quote that has not been approved"""
    try:
        item = db.session.get(QuoteItem, item_id)
        if not item:
            return jsonify({'error': f'Quote item {item_id} not found'}), 404
        if item.quote.status not in ('draft', 'sent'):
            return jsonify({'error': f"Cannot edit items of a quote that is {item.quote.status}"}), 409

        data = request.get_json(silent=True) or {}

        if 'description' in data and not (data['description'] or '').strip():
            return jsonify({'error': 'Item description is required'}), 400

        for field in TEXT_FIELDS:
            if field in data:
                value = data[field]
                setattr(item, field, value.strip() if isinstance(value, str) else value)

        for field, cast in NUMERIC_FIELDS.items():
            if field in data:
                if data[field] in (None, ''):
                    if field in ('unit_price', 'quantity'):
                        return jsonify({'error': f'Item {field} is required'}), 400
                    setattr(item, field, None)
                    continue
                try:
                    setattr(item, field, cast(data[field]))
                except (TypeError, ValueError):
                    db.session.rollback()
                    return jsonify({'error': f'Item {field} must be numeric'}), 400

        db.session.flush()
        recalculate_total(item.quote)
        db.session.commit()

        return jsonify(item.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating quote item {item_id}: {str(e)}")
        return jsonify({'error': 'Failed to update quote item'}), 500


@quote_items_bp.route('/<int:item_id>', methods=['DELETE'])
@login_required
def delete_quote_item(item_id):
    try:
        item = db.session.get(QuoteItem, item_id)
        if not item:
            return jsonify({'error': f'Quote item {item_id} not found'}), 404
        quote = item.quote
        if quote.status not in ('draft', 'sent'):
            return jsonify({'error': f"Cannot edit items of a quote that is {quote.status}"}), 409

        db.session.delete(item)
        db.session.flush()
        recalculate_total(quote)
        db.session.commit()

        return jsonify({'success': True, 'message': f'Quote item {item_id} deleted successfully'})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting quote item {item_id}: {str(e)}")
        return jsonify({'error': 'Failed to delete quote item'}), 500
