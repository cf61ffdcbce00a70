# contractor_hub/routes/portal.py
from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_required, current_user
from datetime import datetime
from sqlalchemy.exc import IntegrityError
import logging

from ..models import db, Contact, Job
from ..middleware.auth import PORTAL_SESSION_KEY, current_portal_user, portal_login_required
from ..services.portal import (
    PortalAccessError, resolve_token, build_portal_payload, jobs_for_contact, issue_portal_token,
    validate_token_value
)
from ..services.stages import stage_label, stage_progress
from ..services.documents import quote_pdf_response

portal_bp = Blueprint('portal', __name__)
logger = logging.getLogger(__name__)


@portal_bp.route('/login', methods=['POST'])
def portal_login():
    """Client login with email and portal password"""
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get('email') or '').strip()
        password = data.get('password') or ''

        if not email or not password:
            return jsonify({'error': 'Email and password are required'}), 400

        contact = Contact.query.filter(db.func.lower(Contact.email) == email.lower()).first()
        if not contact or not contact.portal_enabled or not contact.check_portal_password(password):
            logger.warning(f"Portal login failed for '{email}'")
            return jsonify({'error': 'Invalid credentials'}), 401

        contact.portal_last_login = datetime.utcnow()
        db.session.commit()

        session[PORTAL_SESSION_KEY] = {
            'id': contact.id,
            'email': contact.email,
            'name': contact.display_name,
        }
        logger.info(f"Portal login for contact {contact.id}")
        return jsonify({'user': session[PORTAL_SESSION_KEY]})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Portal login error: {str(e)}")
        return jsonify({'error': 'Login failed'}), 500


@portal_bp.route('/logout', methods=['POST'])
def portal_logout():
    session.pop(PORTAL_SESSION_KEY, None)
    return jsonify({'success': True})


@portal_bp.route('/me', methods=['GET'])
@portal_login_required
def portal_me():
    return jsonify(current_portal_user())


@portal_bp.route('/jobs', methods=['GET'])
@portal_login_required
def portal_jobs():
    """Jobs belonging to the logged-in contact; empty when they have none"""
    try:
        contact_id = current_portal_user()['id']
        result = []
        for job in jobs_for_contact(contact_id):
            job_data = job.to_dict()
            job_data['stage_label'] = stage_label(job.stage)
            job_data['progress'] = stage_progress(job.stage)
            result.append(job_data)
        return jsonify(result)
    except Exception as e:
        logger.error(f"Error retrieving portal jobs: {str(e)}")
        return jsonify({'error': 'Failed to retrieve jobs'}), 500


@portal_bp.route('/enable', methods=['POST'])
@login_required
def enable_portal():
    """Give a contact portal access with a password chosen by staff"""
    try:
        data = request.get_json(silent=True) or {}
        contact_id = data.get('contact_id')
        password = data.get('password') or ''

        if not contact_id or not password:
            return jsonify({'error': 'contact_id and password are required'}), 400
        if len(password) < 6:
            return jsonify({'error': 'Password must be at least 6 characters long'}), 400

        contact = db.session.get(Contact, contact_id)
        if not contact:
            return jsonify({'error': 'Contact not found'}), 404
        if not contact.email:
            return jsonify({'error': 'Contact has no email address'}), 400

        contact.set_portal_password(password)
        contact.portal_enabled = True
        db.session.commit()

        logger.info(f"Portal access enabled for contact {contact.id} by {current_user.username}")
        return jsonify(contact.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error enabling portal access: {str(e)}")
        return jsonify({'error': 'Failed to enable portal access'}), 500


@portal_bp.route('/disable', methods=['POST'])
@login_required
def disable_portal():
    try:
        data = request.get_json(silent=True) or {}
        contact = db.session.get(Contact, data.get('contact_id') or 0)
        if not contact:
            return jsonify({'error': 'Contact not found'}), 404

        contact.portal_enabled = False
        contact.portal_password = None
        db.session.commit()

        logger.info(f"Portal access disabled for contact {contact.id} by {current_user.username}")
        return jsonify(contact.to_dict())

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error disabling portal access: {str(e)}")
        return jsonify({'error': 'Failed to disable portal access'}), 500


@portal_bp.route('/tokens', methods=['POST'])
@login_required
def create_portal_token():
    """Issue a shareable portal link for a job"""
    try:
        data = request.get_json(silent=True) or {}
        job = db.session.get(Job, data.get('job_id') or 0)
        if not job:
            return jsonify({'error': 'Job not found'}), 404

        ttl_days = data.get('ttl_days', current_app.config.get('PORTAL_TOKEN_TTL_DAYS', 30))
        try:
            ttl_days = int(ttl_days) if ttl_days is not None else None
        except (TypeError, ValueError):
            return jsonify({'error': 'ttl_days must be an integer'}), 400
        if ttl_days is not None and ttl_days < 0:
            return jsonify({'error': 'ttl_days cannot be negative'}), 400

        token_value = (data.get('token') or '').strip() or None
        if token_value:
            token_error = validate_token_value(token_value)
            if token_error:
                return jsonify({'error': token_error}), 400
        portal_token = issue_portal_token(job, token_value, ttl_days)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return jsonify({'error': 'Token already in use'}), 409

        logger.info(f"Portal token issued for job {job.id} by {current_user.username}")
        return jsonify(portal_token.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error issuing portal token: {str(e)}")
        return jsonify({'error': 'Failed to issue portal token'}), 500


@portal_bp.route('/<string:token>', methods=['GET'])
def get_portal_data(token):
    """
    Verify a portal token and return everything the client portal shows:
    contact, job, files, invoices, contract and quote.
    """
    try:
        job = resolve_token(token)
        return jsonify(build_portal_payload(job))
    except PortalAccessError as e:
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        logger.error(f"Error loading portal data: {str(e)}")
        return jsonify({'error': 'Failed to load portal data'}), 500


@portal_bp.route('/<string:token>/quote.pdf', methods=['GET'])
def get_portal_quote_pdf(token):
    """The job's quote as a PDF, for the portal's document list"""
    try:
        job = resolve_token(token)
        quote = job.contract.quote if job.contract else None
        if not quote:
            return jsonify({'error': 'No quote for this job'}), 404
        return quote_pdf_response(quote, current_app.config.get('COMPANY_NAME', 'Contractor Hub'))
    except PortalAccessError as e:
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        logger.error(f"Error generating portal quote PDF: {str(e)}")
        return jsonify({'error': 'Failed to generate quote PDF'}), 500
