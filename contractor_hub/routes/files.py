# contractor_hub/routes/files.py
from flask import Blueprint, request, jsonify, current_app, send_from_directory, abort
from flask_login import login_required, current_user
import logging

from ..models import db, Job, JobFile
from ..services.storage import (
    LocalStorageBackend, StorageError, get_content_type, get_storage_backend, remove_stored_objects
)

files_bp = Blueprint('files', __name__)
logger = logging.getLogger(__name__)


@files_bp.route('/files', methods=['POST'])
@login_required
def create_file():
    """
    Record a file that has already been stored.

    Expects job_id, url and filename; label defaults to the filename.
    """
    try:
        data = request.get_json(silent=True) or {}

        missing = [f for f in ('job_id', 'url', 'filename') if not data.get(f)]
        if missing:
            return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400

        job = db.session.get(Job, data['job_id'])
        if not job:
            return jsonify({'error': 'Job not found'}), 404

        filesize = data.get('filesize')
        if filesize is not None:
            try:
                filesize = int(filesize)
            except (TypeError, ValueError):
                return jsonify({'error': 'filesize must be an integer'}), 400

        label = (data.get('label') or '').strip()
        job_file = JobFile(
            job_id=job.id,
            url=data['url'],
            filename=data['filename'],
            label=label or data['filename'],
            mimetype=data.get('mimetype') or get_content_type(data['filename']),
            filesize=filesize,
            uploaded_by=data.get('uploaded_by') or current_user.username,
            storage_key=data.get('storage_key'),
            thumbnail_url=data.get('thumbnail_url'),
            thumbnail_key=data.get('thumbnail_key')
        )
        db.session.add(job_file)
        db.session.commit()

        logger.info(f"File {job_file.id} ({job_file.filename}) attached to job {job.id}")
        return jsonify(job_file.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating file record: {str(e)}")
        return jsonify({'error': 'Failed to create file'}), 500


@files_bp.route('/files/<int:file_id>', methods=['DELETE'])
@login_required
def delete_file(file_id):
    """Delete a file record and its stored objects, thumbnail included"""
    try:
        job_file = db.session.get(JobFile, file_id)
        if not job_file:
            return jsonify({'error': f'File {file_id} not found'}), 404

        keys = job_file.storage_keys()
        db.session.delete(job_file)
        db.session.commit()

        # Record is gone; orphaned objects are only logged
        remove_stored_objects(get_storage_backend(current_app), keys)

        logger.info(f"File {file_id} deleted by user {current_user.username}")
        return jsonify({'success': True, 'message': f'File {file_id} deleted successfully'})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting file {file_id}: {str(e)}")
        return jsonify({'error': 'Failed to delete file'}), 500


@files_bp.route('/jobs/<int:job_id>/files/upload', methods=['POST'])
@login_required
def upload_job_file(job_id):
    """
    Multipart upload: stores the 'file' part through the configured
    storage backend and records it against the job. Images get a thumbnail.
    """
    try:
        job = db.session.get(Job, job_id)
        if not job:
            return jsonify({'error': f'Job {job_id} not found'}), 404

        if 'file' not in request.files:
            return jsonify({'error': 'No file part'}), 400
        upload = request.files['file']
        if not upload.filename:
            return jsonify({'error': 'No selected file'}), 400

        content = upload.read()
        if not content:
            return jsonify({'error': 'File is empty'}), 400

        mimetype = upload.mimetype
        if not mimetype or mimetype == 'application/octet-stream':
            mimetype = get_content_type(upload.filename)

        storage = get_storage_backend(current_app)
        thumbnail_url = None
        thumb_key = None
        try:
            if mimetype.startswith('image/'):
                key, thumb_key = storage.upload_image_with_thumbnail(content, upload.filename, f"jobs/{job.id}/photos")
                if thumb_key:
                    thumbnail_url = storage.get_url(thumb_key)
            else:
                key = storage.upload(content, upload.filename, f"jobs/{job.id}/documents")
        except StorageError as e:
            logger.error(f"Storage upload failed for job {job_id}: {e}")
            return jsonify({'error': 'File storage failed'}), 502

        label = (request.form.get('label') or '').strip()
        job_file = JobFile(
            job_id=job.id,
            url=storage.get_url(key),
            filename=upload.filename,
            label=label or upload.filename,
            mimetype=mimetype,
            filesize=len(content),
            uploaded_by=current_user.username,
            storage_key=key,
            thumbnail_url=thumbnail_url,
            thumbnail_key=thumb_key
        )
        db.session.add(job_file)
        db.session.commit()

        logger.info(f"Uploaded {upload.filename} ({len(content)} bytes) to job {job.id}")
        return jsonify(job_file.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Fatal error uploading file for job {job_id}: {str(e)}", exc_info=True)
        return jsonify({'error': 'An internal server error occurred during file upload.'}), 500


@files_bp.route('/uploads/<path:key>', methods=['GET'])
def serve_upload(key):
    """Serve objects held by the local-disk backend"""
    storage = get_storage_backend(current_app)
    if not isinstance(storage, LocalStorageBackend):
        abort(404)
    return send_from_directory(storage.root, key)
