# contractor_hub/routes/jobs.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
import logging

from ..models import db, Job, JobFile, Note, Message, Contract
from ..services.date_utils import parse_request_datetime
from ..services.stages import STAGES, is_valid_stage, stage_label, stage_progress, build_timeline
from ..services.storage import get_storage_backend, remove_stored_objects

jobs_bp = Blueprint('jobs', __name__)
logger = logging.getLogger(__name__)

TEXT_FIELDS = ('site_address', 'primary_flooring_type', 'special_instructions')
BOOL_FIELDS = ('requires_subfloor_prep', 'has_existing_flooring_removal')


def serialize_job(job):
    """Job record plus the derived stage label and progress"""
    data = job.to_dict()
    data['stage_label'] = stage_label(job.stage)
    data['progress'] = stage_progress(job.stage)
    return data


def _job_not_found(job_id):
    return jsonify({'error': f'Job {job_id} not found'}), 404


def apply_job_fields(job, data):
    """
    Copy editable fields from request data onto a job.
    Raises ValueError with a user-facing message on bad input.
    """
    if 'title' in data:
        title = (data['title'] or '').strip()
        if not title:
            raise ValueError('Job title is required')
        job.title = title

    if 'stage' in data:
        if not is_valid_stage(data['stage']):
            raise ValueError(f"Invalid stage. Must be one of: {', '.join(STAGES)}")
        job.stage = data['stage']

    if 'contract_id' in data:
        contract_id = data['contract_id']
        if contract_id and not db.session.get(Contract, contract_id):
            raise ValueError('Contract not found')
        job.contract_id = contract_id or None

    for field in ('start_date', 'end_date'):
        if field in data:
            setattr(job, field, parse_request_datetime(data[field]))

    if job.start_date and job.end_date and job.end_date < job.start_date:
        raise ValueError('end_date cannot be before start_date')

    if 'total_sqft' in data:
        job.total_sqft = float(data['total_sqft']) if data['total_sqft'] not in (None, '') else None

    for field in TEXT_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, str):
                value = value.strip() or None
            setattr(job, field, value)

    for field in BOOL_FIELDS:
        if field in data:
            setattr(job, field, bool(data[field]))


@jobs_bp.route('', methods=['GET'])
@login_required
def get_jobs():
    """Get all jobs with optional ?stage= and ?search= filters"""
    try:
        stage = request.args.get('stage')
        search = request.args.get('search', '')

        query = Job.query
        if stage:
            query = query.filter_by(stage=stage)
        if search:
            query = query.filter(
                (Job.title.like(f'%{search}%')) |
                (Job.site_address.like(f'%{search}%'))
            )

        jobs = query.order_by(Job.created_at.desc()).all()
        return jsonify([serialize_job(job) for job in jobs])

    except Exception as e:
        logger.error(f"Error retrieving jobs: {str(e)}")
        return jsonify({'error': f'Failed to retrieve jobs: {str(e)}'}), 500


@jobs_bp.route('', methods=['POST'])
@login_required
def create_job():
    try:
        data = request.get_json(silent=True) or {}
        if not (data.get('title') or '').strip():
            return jsonify({'error': 'Job title is required'}), 400

        job = Job(stage='planning')
        try:
            apply_job_fields(job, data)
        except (TypeError, ValueError) as e:
            return jsonify({'error': str(e)}), 400

        db.session.add(job)
        db.session.commit()

        logger.info(f"Job {job.id} created by user {current_user.username}")
        return jsonify(serialize_job(job)), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating job: {str(e)}")
        return jsonify({'error': f'Failed to create job: {str(e)}'}), 500


@jobs_bp.route('/<int:job_id>', methods=['GET'])
@login_required
def get_job(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        return jsonify(serialize_job(job))
    except Exception as e:
        logger.error(f"Error retrieving job {job_id}: {str(e)}")
        return jsonify({'error': f'Failed to retrieve job: {str(e)}'}), 500


@jobs_bp.route('/<int:job_id>', methods=['PUT'])
@login_required
def update_job(job_id):
    """Update a job. Any stage may follow any other."""
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        data = request.get_json(silent=True) or {}

        old_stage = job.stage
        try:
            apply_job_fields(job, data)
        except (TypeError, ValueError) as e:
            db.session.rollback()
            return jsonify({'error': str(e)}), 400

        db.session.commit()
        if job.stage != old_stage:
            logger.info(f"Job {job_id} stage updated from '{old_stage}' to '{job.stage}' by user {current_user.username}")

        return jsonify(serialize_job(job))

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating job {job_id}: {str(e)}", exc_info=True)
        return jsonify({'error': f'Failed to update job: {str(e)}'}), 500


@jobs_bp.route('/<int:job_id>/stage', methods=['PUT'])
@login_required
def update_job_stage(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'Request body must be JSON'}), 400

        new_stage = data.get('stage')
        if not new_stage:
            return jsonify({'error': 'stage is required'}), 400
        if not is_valid_stage(new_stage):
            return jsonify({'error': f"Invalid stage. Must be one of: {', '.join(STAGES)}"}), 400

        old_stage = job.stage
        job.stage = new_stage
        db.session.commit()

        logger.info(f"Job {job_id} stage updated from '{old_stage}' to '{new_stage}' by user {current_user.username}")
        return jsonify(serialize_job(job)), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating stage for job {job_id}: {str(e)}", exc_info=True)
        return jsonify({'error': f'Failed to update job stage: {str(e)}'}), 500


@jobs_bp.route('/<int:job_id>', methods=['DELETE'])
@login_required
def delete_job(job_id):
    """Delete a job with its files, notes and portal tokens; messages are kept"""
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)

        keys = [key for job_file in job.files for key in job_file.storage_keys()]
        db.session.delete(job)
        db.session.commit()

        failed = remove_stored_objects(get_storage_backend(current_app), keys)
        logger.info(f"Job {job_id} deleted by {current_user.username}; {len(keys) - len(failed)} stored objects removed")
        return jsonify({'success': True, 'message': f'Job {job_id} deleted successfully'})
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting job {job_id}: {str(e)}")
        return jsonify({'error': f'Failed to delete job: {str(e)}'}), 500


@jobs_bp.route('/<int:job_id>/timeline', methods=['GET'])
@login_required
def get_job_timeline(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        events = build_timeline(job.to_dict())
        for event in events:
            event['date'] = event['date'].isoformat() if event['date'] else None
        return jsonify(events)
    except Exception as e:
        logger.error(f"Error building timeline for job {job_id}: {str(e)}")
        return jsonify({'error': 'Failed to build job timeline'}), 500


@jobs_bp.route('/<int:job_id>/files', methods=['GET'])
@login_required
def get_job_files(job_id):
    """Files attached to a job, newest first"""
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        files = job.files.order_by(JobFile.created_at.desc(), JobFile.id.desc()).all()
        return jsonify([f.to_dict() for f in files])
    except Exception as e:
        logger.error(f"Error retrieving files for job {job_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve files'}), 500


@jobs_bp.route('/<int:job_id>/notes', methods=['GET'])
@login_required
def get_job_notes(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        notes = job.notes.order_by(Note.created_at.desc(), Note.id.desc()).all()
        return jsonify([n.to_dict() for n in notes])
    except Exception as e:
        logger.error(f"Error retrieving notes for job {job_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve notes'}), 500


@jobs_bp.route('/<int:job_id>/notes', methods=['POST'])
@login_required
def add_job_note(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        data = request.get_json(silent=True) or {}
        content = (data.get('content') or '').strip()
        if not content:
            return jsonify({'error': 'Note content is required'}), 400

        note = Note(job_id=job.id, content=content, created_by=current_user.username)
        db.session.add(note)
        db.session.commit()
        return jsonify(note.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error adding note to job {job_id}: {str(e)}")
        return jsonify({'error': 'Failed to add note'}), 500


@jobs_bp.route('/<int:job_id>/messages', methods=['GET'])
@login_required
def get_job_messages(job_id):
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return _job_not_found(job_id)
        messages = Message.query.filter_by(job_id=job.id).order_by(Message.created_at.asc(), Message.id.asc()).all()
        return jsonify([m.to_dict() for m in messages])
    except Exception as e:
        logger.error(f"Error retrieving messages for job {job_id}: {str(e)}")
        return jsonify({'error': 'Failed to retrieve messages'}), 500
