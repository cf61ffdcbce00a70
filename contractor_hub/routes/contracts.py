# contractor_hub/routes/contracts.py
from flask import Blueprint, request, jsonify
from flask_login import login_required
import logging

from ..models import db, Quote, Contract, Invoice, Job
from ..models.contract import CONTRACT_STATUSES

contracts_bp = Blueprint('contracts', __name__)
logger = logging.getLogger(__name__)


def _contract_not_found(contract_id):
    return jsonify({'error': f'Contract {contract_id} not found'}), 404


@contracts_bp.route('', methods=['GET'])
@login_required
def get_contracts():
    try:
        query = Contract.query
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        return jsonify([c.to_dict() for c in query.order_by(Contract.created_at.desc()).all()])
    except Exception as e:
        logger.error(f"Error retrieving contracts: {str(e)}")
        return jsonify({'error': 'Failed to retrieve contracts'}), 500


@contracts_bp.route('', methods=['POST'])
@login_required
def create_contract():
    """Create a contract for an approved quote"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get('quote_id'):
            return jsonify({'error': 'Quote ID is required'}), 400

        quote = db.session.get(Quote, data['quote_id'])
        if not quote:
            return jsonify({'error': 'Quote not found'}), 404
        if quote.status != 'approved':
            return jsonify({'error': 'Contracts can only be created for approved quotes'}), 409

        status = data.get('status', 'pending')
        if status not in CONTRACT_STATUSES:
            return jsonify({'error': f"Status must be one of: {', '.join(CONTRACT_STATUSES)}"}), 400

        contract = Contract(quote_id=quote.id, signed_url=data.get('signed_url'), status=status)
        db.session.add(contract)
        db.session.commit()
        return jsonify(contract.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating contract: {str(e)}")
        return jsonify({'error': f'Failed to create contract: {str(e)}'}), 500


@contracts_bp.route('/<int:contract_id>', methods=['GET'])
@login_required
def get_contract(contract_id):
    try:
        contract = db.session.get(Contract, contract_id)
        if not contract:
            return _contract_not_found(contract_id)
        return jsonify(contract.to_dict())
    except Exception as e:
        logger.error(f"Error retrieving contract {contract_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve contract'}), 500


@contracts_bp.route('/<int:contract_id>', methods=['PUT'])
@login_required
def update_contract(contract_id):
    """Update status or the signed document URL"""
    try:
        contract = db.session.get(Contract, contract_id)
        if not contract:
            return _contract_not_found(contract_id)
        data = request.get_json(silent=True) or {}

        if 'status' in data:
            if data['status'] not in CONTRACT_STATUSES:
                return jsonify({'error': f"Status must be one of: {', '.join(CONTRACT_STATUSES)}"}), 400
            contract.status = data['status']
        if 'signed_url' in data:
            contract.signed_url = data['signed_url'] or None

        db.session.commit()
        return jsonify(contract.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating contract {contract_id}: {str(e)}")
        return jsonify({'error': f'Failed to update contract: {str(e)}'}), 500


@contracts_bp.route('/<int:contract_id>/invoices', methods=['GET'])
@login_required
def get_contract_invoices(contract_id):
    try:
        contract = db.session.get(Contract, contract_id)
        if not contract:
            return _contract_not_found(contract_id)
        return jsonify([i.to_dict() for i in contract.invoices.order_by(Invoice.id).all()])
    except Exception as e:
        logger.error(f"Error retrieving invoices for contract {contract_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve invoices'}), 500


@contracts_bp.route('/<int:contract_id>/jobs', methods=['GET'])
@login_required
def get_contract_jobs(contract_id):
    try:
        contract = db.session.get(Contract, contract_id)
        if not contract:
            return _contract_not_found(contract_id)
        return jsonify([j.to_dict() for j in contract.jobs.order_by(Job.id).all()])
    except Exception as e:
        logger.error(f"Error retrieving jobs for contract {contract_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve jobs'}), 500
