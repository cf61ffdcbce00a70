import os
import logging
import importlib
from flask import Flask, request, jsonify
from flask_login import LoginManager
from flask_cors import CORS
from sqlalchemy import text

from .config import config, get_config_name
from .models import db, User
from .routes import BLUEPRINTS


def create_app(config_name=None, overrides=None):
    """
    Application factory.

    config_name picks a class from config.config (auto-detected when None);
    overrides is a mapping applied on top, used by tests.
    """
    if config_name is None:
        config_name = get_config_name()

    app = Flask(__name__)

    try:
        config_instance = config[config_name]()
        app.config.from_object(config_instance)
        if overrides:
            app.config.update(overrides)
        app.logger.info(f"Configuration loaded for {config_name} environment")
    except Exception as config_error:
        app.logger.error(f"Configuration loading failed: {config_error}")
        raise

    configure_logging(app, config_name)

    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    app.logger.info(f"Using database: {db_uri.split('://')[0] if '://' in db_uri else 'unknown'}")

    # Relative upload folders live under the instance folder
    upload_folder = app.config.get('UPLOAD_FOLDER', 'uploads')
    if not os.path.isabs(upload_folder):
        upload_folder = os.path.join(app.instance_path, upload_folder)
        app.config['UPLOAD_FOLDER'] = upload_folder
    try:
        os.makedirs(upload_folder, exist_ok=True)
    except OSError as e:
        app.logger.warning(f"Could not create upload directory: {e}")

    db.init_app(app)

    CORS(app,
         origins=app.config.get('CORS_ORIGINS', []),
         supports_credentials=app.config.get('CORS_SUPPORTS_CREDENTIALS', True),
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'PATCH'],
         allow_headers=['Content-Type', 'Authorization', 'X-Requested-With', 'Accept', 'Origin'],
         max_age=86400)

    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = 'strong'

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        """JSON 401 instead of a redirect to a login page"""
        app.logger.warning(f"Unauthorized API access attempt to {request.path} from {request.remote_addr}")
        return jsonify({
            'error': 'Authentication required',
            'message': 'You must be logged in to access this endpoint',
            'code': 'UNAUTHORIZED'
        }), 401

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (ValueError, TypeError) as e:
            app.logger.warning(f"Invalid user_id provided to user_loader: {user_id} - {e}")
            return None

    register_blueprints(app)
    register_error_handlers(app)

    @app.route('/')
    def index():
        return jsonify({
            'message': f"{app.config.get('COMPANY_NAME', 'Contractor Hub')} API",
            'status': 'running',
            'version': '1.0.0',
            'environment': config_name,
            'endpoints': {prefix: module for module, _, prefix in BLUEPRINTS},
        })

    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            db.create_all()
            app.logger.info("Database tables created/verified successfully")
        except Exception as db_error:
            app.logger.error(f"Database initialization error: {db_error}")
            if config_name == 'production':
                app.logger.error("Production database error - app will start but may not function properly")
            else:
                raise

    api_routes = len([rule for rule in app.url_map.iter_rules() if rule.rule.startswith('/api/')])
    app.logger.info(f"Contractor Hub API created ({config_name}, {api_routes} API routes)")

    return app


def configure_logging(app, config_name):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if app.debug:
        level = logging.DEBUG

    if config_name == 'production':
        logging.basicConfig(level=level)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        app.logger.addHandler(handler)

    app.logger.setLevel(level)
    logging.getLogger('contractor_hub').setLevel(level)


def register_blueprints(app):
    """Import and mount every blueprint in routes.BLUEPRINTS"""
    registered = []
    for module_name, blueprint_name, url_prefix in BLUEPRINTS:
        try:
            module = importlib.import_module(f'.routes.{module_name}', package=__package__)
            blueprint = getattr(module, blueprint_name)
        except (ImportError, AttributeError) as e:
            app.logger.error(f"Failed to load blueprint {blueprint_name} from {module_name}: {e}")
            raise
        app.register_blueprint(blueprint, url_prefix=url_prefix)
        registered.append(blueprint_name)
        app.logger.debug(f"Registered {blueprint_name} at {url_prefix}")

    app.logger.info(f"Blueprint registration complete: {len(registered)} registered")
    return registered


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith('/api/'):
            return jsonify({
                'error': 'Not Found',
                'message': f'The requested endpoint {request.path} does not exist',
                'code': 'NOT_FOUND'
            }), 404
        return jsonify({'error': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        if request.path.startswith('/api/'):
            return jsonify({
                'error': 'Method Not Allowed',
                'message': f'The method {request.method} is not allowed for endpoint {request.path}',
                'code': 'METHOD_NOT_ALLOWED'
            }), 405
        return jsonify({'error': 'Method Not Allowed'}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        return jsonify({
            'error': 'File too large',
            'message': f"Uploads are limited to {app.config.get('MAX_CONTENT_LENGTH', 0) // (1024 * 1024)} MB",
            'code': 'PAYLOAD_TOO_LARGE'
        }), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred. Please try again later.',
            'code': 'INTERNAL_ERROR'
        }), 500
