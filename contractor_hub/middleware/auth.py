# contractor_hub/middleware/auth.py

from functools import wraps
from flask import jsonify, session
from flask_login import current_user
import logging

logger = logging.getLogger(__name__)

PORTAL_SESSION_KEY = 'portal_user'


def admin_required(f):
    """
    Decorator to ensure a user is logged in and has the 'admin' role.
    This must be placed AFTER the @login_required decorator.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            logger.warning("Unauthenticated access attempt to an admin-only route.")
            return jsonify({'error': 'Authentication required'}), 401

        if not getattr(current_user, 'is_admin', False):
            logger.warning(f"User '{current_user.username}' (role: {getattr(current_user, 'role', 'N/A')}) attempted to access an admin-only route.")
            return jsonify({'error': 'Admin access required'}), 403

        return f(*args, **kwargs)
    return decorated_function


def current_portal_user():
    """The portal session identity ({'id', 'email', 'name'}) or None"""
    return session.get(PORTAL_SESSION_KEY)


def portal_login_required(f):
    """Decorator for portal endpoints that need a logged-in contact"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_portal_user():
            return jsonify({'error': 'Not authenticated'}), 401
        return f(*args, **kwargs)
    return decorated_function
