"""
Flask application factory for the pressdesk JSON API.

This module creates and configures the Flask application with:
- A ReportStore (SQLite) and a workspace Session shared by all requests
- JSON error responses for session and generation failures
- Blueprint registration for routes

Reads: PRESSDESK_DB (optional store path override), GEMINI_API_KEY (at first AI call)
"""

import os

from flask import Flask, jsonify

from pressdesk.bundles import InvalidBundleError
from pressdesk.config import get_config
from pressdesk.logging_utils import configure_logging
from pressdesk.services.errors import EmptyInputError, GenerationError
from pressdesk.services.gemini_client import GeminiAPIError
from pressdesk.session import (
    ConfirmationRequired,
    GenerationFailed,
    Session,
    SessionError,
    UnknownEntryError,
    UnknownReportError,
)
from pressdesk.storage import ReportStore


def create_app(config=None, session=None):
    """
    Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults
        session: Optional pre-built Session (tests inject one with fake services)

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    pressdesk_config = get_config()
    app.config['STORE_PATH'] = os.environ.get(
        'PRESSDESK_DB', (pressdesk_config.get('storage') or {}).get('path', 'data/pressdesk.db')
    )

    if config:
        app.config.update(config)

    app.json.ensure_ascii = False

    configure_logging()

    if session is None:
        store = ReportStore(app.config['STORE_PATH'])
        session = Session(store=store, config=pressdesk_config)
        app.logger.info(f"Report store at {app.config['STORE_PATH']}")
    app.extensions['pressdesk_session'] = session

    # ------------------------------------------------------------------
    # JSON error responses
    # ------------------------------------------------------------------

    def _error(message, status_code):
        return jsonify({"success": False, "message": message}), status_code

    @app.errorhandler(UnknownEntryError)
    @app.errorhandler(UnknownReportError)
    def handle_not_found(err):
        return _error(str(err), 404)

    @app.errorhandler(ConfirmationRequired)
    def handle_confirmation(err):
        return _error(str(err), 409)

    @app.errorhandler(GenerationFailed)
    def handle_generation_failed(err):
        app.logger.error("Report generation failed", exc_info=err.__cause__)
        return _error(str(err), 502)

    @app.errorhandler(EmptyInputError)
    @app.errorhandler(InvalidBundleError)
    @app.errorhandler(SessionError)
    def handle_bad_request(err):
        return _error(str(err), 400)

    @app.errorhandler(GenerationError)
    @app.errorhandler(GeminiAPIError)
    def handle_upstream(err):
        # Raw model output stays in the log; callers get a generic message.
        app.logger.error("AI operation failed", exc_info=err)
        return _error("The AI service did not return a usable answer. Please try again.", 502)

    @app.errorhandler(500)
    def handle_500(err):
        app.logger.error("Unhandled server error", exc_info=getattr(err, "original_exception", None) or err)
        return _error("Internal server error", 500)

    from . import routes
    app.register_blueprint(routes.bp)

    return app
