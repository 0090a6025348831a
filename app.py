import logging
import os

from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from admin_routes import admin_bp
from auth import login_manager
from auth_routes import auth_bp
from cli import register_commands
from client_routes import client_bp
from config import Config
from designer_routes import designer_bp
from emails import email_service
from match_narrator import match_narrator
from message_routes import message_bp
from models import db
from payment_routes import payment_bp

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger().setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if request.path.startswith('/api/'):
            return jsonify({'error': error.description}), error.code
        return error

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception('Unhandled error on %s %s', request.method, request.path)
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    email_service.init_app(app)
    match_narrator.init_app(app)

    for blueprint in (auth_bp, client_bp, designer_bp, admin_bp, payment_bp, message_bp):
        app.register_blueprint(blueprint)

    register_commands(app)

    register_error_handlers(app)

    @app.route('/')
    def index():
        return render_template('index.html')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'ai_enabled': match_narrator.enabled})

    # Initialize database
    uri = app.config['SQLALCHEMY_DATABASE_URI']
    if uri.startswith('sqlite:///'):
        os.makedirs(os.path.dirname(uri[len('sqlite:///'):]) or '.', exist_ok=True)
    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=5000)
