# contractor_hub/routes/invoices.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
import logging

from ..models import db, Contract, Invoice
from ..models.contract import INVOICE_STATUSES
from ..services.date_utils import parse_request_datetime

invoices_bp = Blueprint('invoices', __name__)
logger = logging.getLogger(__name__)


@invoices_bp.route('', methods=['GET'])
@login_required
def get_invoices():
    try:
        query = Invoice.query
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        contract_id = request.args.get('contract_id', type=int)
        if contract_id:
            query = query.filter_by(contract_id=contract_id)
        return jsonify([i.to_dict() for i in query.order_by(Invoice.created_at.desc()).all()])
    except Exception as e:
        logger.error(f"Error retrieving invoices: {str(e)}")
        return jsonify({'error': 'Failed to retrieve invoices'}), 500


@invoices_bp.route('', methods=['POST'])
@login_required
def create_invoice():
    try:
        data = request.get_json(silent=True) or {}
        if not data.get('contract_id'):
            return jsonify({'error': 'Contract ID is required'}), 400

        contract = db.session.get(Contract, data['contract_id'])
        if not contract:
            return jsonify({'error': 'Contract not found'}), 404

        try:
            amount_due = float(data.get('amount_due'))
            due_date = parse_request_datetime(data.get('due_date'))
        except (TypeError, ValueError):
            return jsonify({'error': 'amount_due must be a number and due_date a valid date'}), 400
        if amount_due < 0:
            return jsonify({'error': 'amount_due cannot be negative'}), 400

        status = data.get('status', 'draft')
        if status not in INVOICE_STATUSES:
            return jsonify({'error': f"Status must be one of: {', '.join(INVOICE_STATUSES)}"}), 400

        invoice = Invoice(contract_id=contract.id, amount_due=amount_due, due_date=due_date, status=status)
        db.session.add(invoice)
        db.session.commit()

        logger.info(f"Created invoice {invoice.id} for contract {contract.id}")
        return jsonify(invoice.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating invoice: {str(e)}")
        return jsonify({'error': f'Failed to create invoice: {str(e)}'}), 500


@invoices_bp.route('/<int:invoice_id>', methods=['GET'])
@login_required
def get_invoice(invoice_id):
    try:
        invoice = db.session.get(Invoice, invoice_id)
        if not invoice:
            return jsonify({'error': f'Invoice {invoice_id} not found'}), 404
        return jsonify(invoice.to_dict())
    except Exception as e:
        logger.error(f"Error retrieving invoice {invoice_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve invoice'}), 500


@invoices_bp.route('/<int:invoice_id>', methods=['PUT'])
@login_required
def update_invoice(invoice_id):
    try:
        invoice = db.session.get(Invoice, invoice_id)
        if not invoice:
            return jsonify({'error': f'Invoice {invoice_id} not found'}), 404
        data = request.get_json(silent=True) or {}

        if 'status' in data:
            if data['status'] not in INVOICE_STATUSES:
                return jsonify({'error': f"Status must be one of: {', '.join(INVOICE_STATUSES)}"}), 400
            invoice.status = data['status']

        try:
            if 'amount_due' in data:
                invoice.amount_due = float(data['amount_due'])
            if 'due_date' in data:
                invoice.due_date = parse_request_datetime(data['due_date'])
        except (TypeError, ValueError):
            db.session.rollback()
            return jsonify({'error': 'amount_due must be a number and due_date a valid date'}), 400

        db.session.commit()
        return jsonify(invoice.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating invoice {invoice_id}: {str(e)}")
        return jsonify({'error': f'Failed to update invoice: {str(e)}'}), 500
