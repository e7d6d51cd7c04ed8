import logging
import os

from flask import Flask, jsonify
from config import config
from app.extensions import db, migrate

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    app = Flask(__name__)
    config_class = config.get(config_name, config['default'])
    app.config.from_object(config_class)
    if hasattr(config_class, 'init_app'):
        config_class.init_app(app)

    # Override DATABASE_URL from env
    db_url = os.environ.get('DATABASE_URL', '')
    if db_url and not app.config.get('TESTING'):
        if db_url.startswith('postgres://'):
            db_url = db_url.replace('postgres://', 'postgresql://', 1)
        app.config['SQLALCHEMY_DATABASE_URI'] = db_url

    uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        os.makedirs(os.path.dirname(uri[len('sqlite:///'):]), exist_ok=True)

    logger.info('[BOOT] config=%s, db=%s', config_name, uri[:50])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so they are registered with SQLAlchemy
    from app import models  # noqa: F401

    with app.app_context():
        db.create_all()

    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _register_blueprints(app):
    from app.blueprints.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix='/api')


def _register_error_handlers(app):
    from app.utils.errors import HomeworkError

    @app.errorhandler(HomeworkError)
    def homework_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({'error': 'Internal server error'}), 500
