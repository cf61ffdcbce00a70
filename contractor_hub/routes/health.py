# contractor_hub/routes/health.py
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from datetime import datetime

from ..models import db

health_bp = Blueprint('health', __name__)

CRITICAL_BLUEPRINTS = ('auth', 'jobs', 'contacts', 'portal')


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Service status: database connectivity, registered blueprints and
    which storage and email backends are configured.
    """
    health_status = {
        'status': 'healthy',
        'app': current_app.config.get('COMPANY_NAME', 'Contractor Hub'),
        'version': '1.0.0',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'checks': {}
    }
    status_code = 200

    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()

        db_url = current_app.config.get('SQLALCHEMY_DATABASE_URI', '')
        if 'sqlite' in db_url.lower():
            db_type = 'SQLite'
        elif 'postgres' in db_url.lower():
            db_type = 'PostgreSQL'
        else:
            db_type = 'Unknown'

        health_status['checks']['database'] = {
            'status': 'healthy',
            'type': db_type,
            'connected': True
        }
    except Exception as db_error:
        db.session.rollback()
        current_app.logger.error(f"Database health check failed: {db_error}")
        health_status['checks']['database'] = {
            'status': 'unhealthy',
            'connected': False,
            'error': str(db_error)
        }

    registered = list(current_app.blueprints.keys())
    missing = [bp for bp in CRITICAL_BLUEPRINTS if bp not in registered]
    health_status['checks']['application'] = {
        'status': 'healthy' if not missing else 'warning',
        'blueprints': {
            'registered': registered,
            'missing_critical': missing
        },
        'routes': len(list(current_app.url_map.iter_rules()))
    }

    azure_conn = current_app.config.get('AZURE_STORAGE_CONNECTION_STRING')
    health_status['checks']['storage'] = {
        'status': 'healthy' if not azure_conn or 'DefaultEndpointsProtocol' in azure_conn else 'warning',
        'backend': 'azure' if azure_conn else 'local'
    }
    health_status['checks']['email'] = {
        'status': 'healthy' if current_app.config.get('SMTP_HOST') else 'info',
        'configured': bool(current_app.config.get('SMTP_HOST'))
    }

    checks = health_status['checks'].values()
    if any(check['status'] == 'unhealthy' for check in checks):
        health_status['status'] = 'unhealthy'
        status_code = 503
    elif any(check['status'] == 'warning' for check in checks):
        health_status['status'] = 'degraded'

    current_app.logger.info(f"Health check completed: {health_status['status']}")
    return jsonify(health_status), status_code


@health_bp.route('/health/simple', methods=['GET'])
def simple_health_check():
    """Minimal check for load balancers"""
    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        return jsonify({'status': 'healthy', 'message': 'Service is running'}), 200
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Simple health check failed: {e}")
        return jsonify({'status': 'unhealthy', 'message': 'Database connection failed'}), 503
