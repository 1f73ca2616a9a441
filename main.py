# FILE: greenmirror/main.py

import logging
from flask import Flask, jsonify, request
from dotenv import load_dotenv
from pydantic import ValidationError

from logging_config import setup_logging
from extensions import limiter
from exceptions import GreenMirrorError

# --- SETUP & CONFIG ---
load_dotenv()

import dependencies
from api.config import EXTENSION_KEY
from api.error_utils import handle_exception, not_found_error


def create_app(services=None, config=None):
    """
    Builds the Flask app. `services` (see dependencies.build_services) can be
    passed in directly; otherwise they are wired from the environment.
    """
    setup_logging()
    app = Flask(__name__)
    app.config.update(
        JWT_SECRET_KEY=dependencies.JWT_SECRET_KEY,
        MAX_UPLOAD_BYTES=dependencies.MAX_UPLOAD_BYTES,
        MAX_TEXT_LENGTH=dependencies.MAX_TEXT_LENGTH,
        RATELIMIT_STORAGE_URI=dependencies.REDIS_URL,
    )
    if config:
        app.config.update(config)
    # Let the upload limit check run in the view with a proper error code.
    app.config.setdefault('MAX_CONTENT_LENGTH', app.config['MAX_UPLOAD_BYTES'] + 1024 * 1024)

    limiter.init_app(app)
    app.extensions[EXTENSION_KEY] = services or dependencies.build_services()

    # --- Import and Register Blueprints ---
    from api.auth import auth_bp
    from api.analysis import analysis_bp
    from api.users import users_bp
    from api.gamification import gamification_bp
    from api.status import status_bp

    app.register_blueprint(auth_bp, url_prefix='/')
    app.register_blueprint(analysis_bp, url_prefix='/')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(gamification_bp, url_prefix='/')
    app.register_blueprint(status_bp, url_prefix='/')

    # --- Global Error Handlers ---
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.errors(include_url=False, include_context=False)}), 400

    @app.errorhandler(GreenMirrorError)
    def handle_domain_error(e):
        return handle_exception(e, f"{request.method} {request.path}")

    @app.errorhandler(404)
    def resource_not_found(e):
        """Handles 404 Not Found errors for a clean API response."""
        return not_found_error("The requested resource was not found.")

    @app.errorhandler(500)
    def internal_server_error(e):
        """Handles unexpected 500 Internal Server Errors for a clean API response."""
        logging.critical(f"An unhandled exception occurred: {e}", exc_info=True)
        return jsonify(error_code="INTERNAL_SERVER_ERROR", message="An unexpected error occurred on the server."), 500

    return app


if __name__ == '__main__':
    create_app().run(debug=False)
