# contractor_hub/routes/auth.py
from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from datetime import datetime
import logging

from ..models import db, User
from ..models.user import STAFF_ROLES
from ..middleware.auth import admin_required

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def create_error_response(message, status_code=500):
    """Standardized error body with a timestamp"""
    return jsonify({
        'error': message,
        'status_code': status_code,
        'timestamp': datetime.utcnow().isoformat()
    }), status_code


@auth_bp.route('/login', methods=['POST'])
def login():
    """Staff login with username and password"""
    try:
        logger.info(f"Login attempt from {request.remote_addr}")

        data = request.get_json(silent=True)
        if not data:
            logger.warning("Staff login without a JSON body")
            return create_error_response("No data provided", 400)

        username = (data.get('username') or '').strip()
        password = data.get('password') or ''

        if not username or not password:
            logger.warning("Login validation failed: missing username or password")
            return create_error_response("Username and password are required", 400)

        user = User.query.filter_by(username=username).first()

        if not user:
            logger.warning(f"Staff login rejected: no user '{username}'")
            return create_error_response("Invalid username or password", 401)

        if not user.is_active:
            logger.warning(f"Staff login rejected: '{username}' is deactivated")
            return create_error_response("Account is disabled", 401)

        if not user.check_password(password):
            logger.warning(f"Staff login rejected: wrong password for '{username}'")
            return create_error_response("Invalid username or password", 401)

        user.record_login()
        db.session.commit()

        login_user(user, remember=True)
        logger.info(f"Staff user '{username}' logged in (id {user.id}, role {user.role})")

        return jsonify({
            'message': 'Login successful',
            'user': user.to_dict(),
            'timestamp': datetime.utcnow().isoformat()
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Unexpected login error: {e}", exc_info=True)
        return create_error_response("Login failed due to server error", 500)


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """End the staff session; succeeds when no one is logged in"""
    username = current_user.username if current_user.is_authenticated else None
    logout_user()
    if username:
        logger.info(f"User '{username}' logged out")
    return jsonify({'message': 'Logout successful'}), 200


@auth_bp.route('/me', methods=['GET'])
@login_required
def get_current_user():
    return jsonify(current_user.to_dict())


@auth_bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    """Allow user to change their password"""
    try:
        data = request.get_json(silent=True)
        if not data:
            return create_error_response("No data provided", 400)

        current_password = data.get('current_password', '')
        new_password = data.get('new_password', '')

        if not current_password or not new_password:
            return create_error_response("Current password and new password are required", 400)

        if len(new_password) < 6:
            return create_error_response("New password must be at least 6 characters long", 400)

        if not current_user.check_password(current_password):
            logger.warning(f"Password change rejected for {current_user.username}: current password mismatch")
            return create_error_response("Current password is incorrect", 401)

        current_user.set_password(new_password)
        db.session.commit()
        logger.info(f"Password changed for {current_user.username}")

        return jsonify({'message': 'Password changed successfully'}), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error changing password: {str(e)}")
        return create_error_response("Failed to change password", 500)


# User Management Routes (Admin Only)
@auth_bp.route('/users', methods=['GET'])
@login_required
@admin_required
def get_users():
    try:
        users = User.query.order_by(User.role, User.username).all()
        logger.info(f"Listed {len(users)} staff accounts for {current_user.username}")
        return jsonify([user.to_dict() for user in users])
    except Exception as e:
        logger.error(f"Error listing staff accounts: {str(e)}")
        return create_error_response("Failed to list staff accounts", 500)


@auth_bp.route('/users', methods=['POST'])
@login_required
@admin_required
def create_user():
    """Create a staff account"""
    try:
        data = request.get_json(silent=True) or {}
        username = (data.get('username') or '').strip()
        password = data.get('password') or ''
        role = data.get('role', 'staff')

        if not username or not password:
            return create_error_response("Username and password are required", 400)
        if len(password) < 6:
            return create_error_response("Password must be at least 6 characters long", 400)
        if role not in STAFF_ROLES:
            return create_error_response(f"Role must be one of: {', '.join(STAFF_ROLES)}", 400)
        if User.query.filter_by(username=username).first():
            return create_error_response("Username already exists", 409)

        user = User(
            username=username,
            email=(data.get('email') or '').strip() or None,
            first_name=data.get('first_name'),
            last_name=data.get('last_name'),
            role=role
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()

        logger.info(f"Admin {current_user.username} created user '{username}' ({role})")
        return jsonify(user.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating user: {str(e)}")
        return create_error_response("Failed to create user", 500)
