from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, current_app, g, has_request_context
import uuid
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException
from marshmallow import ValidationError
from pythonjsonlogger import jsonlogger
from http import HTTPStatus
import logging
import click

from .config import Config
from .error_codes import ErrorCodes
from .exceptions import AppException
from .models import db
from .routes.game import game_bp, GAME_SERVICE_EXTENSION
from .services.game_service import build_game_service
from .services.session_store import InMemorySessionStore
from .services.sql_session_store import SQLSessionStore
from .utils.rate_limit import limiter


# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = g.get('request_id', 'N/A') if has_request_context() else 'N/A'
        return True


def configure_logging(app):
    """JSON log lines for the app logger and the ``jackpot_be`` package loggers."""
    package_logger = logging.getLogger('jackpot_be')
    if app.debug:
        if not package_logger.handlers:
            logging.basicConfig(level=logging.DEBUG)
        package_logger.setLevel(logging.DEBUG)
        return

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(request_id)s %(name)s %(funcName)s %(lineno)d %(message)s'
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())

    for logger in (app.logger, package_logger):
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    package_logger.propagate = False


def build_session_store(app):
    if app.config['SESSION_STORE'] == 'sql':
        return SQLSessionStore(db)
    return InMemorySessionStore()


def _error_response(error_code, status_message, status_code, details=None):
    return jsonify({
        'request_id': g.get('request_id', 'N/A'),
        'status': False,
        'error_code': error_code,
        'status_message': status_message,
        'details': details or {}
    }), status_code


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Validation error: {e.messages}"
        )
        return _error_response(ErrorCodes.VALIDATION_ERROR, 'Input validation failed.',
                               HTTPStatus.UNPROCESSABLE_ENTITY, {'errors': e.messages})

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        current_app.logger.error(
            f"Request ID: {g.get('request_id', 'N/A')} - Database error", exc_info=True
        )
        return _error_response(ErrorCodes.STORE_FAILURE,
                               'A database error occurred. Please try again later.',
                               HTTPStatus.INTERNAL_SERVER_ERROR)

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        error_code = ErrorCodes.GENERIC_ERROR
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code == 429:
            error_code = ErrorCodes.RATE_LIMITED
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - HTTPException: {e.code} - {e.name} - Error Code: {error_code}"
        )
        response = e.get_response()
        response.data = _error_response(error_code, e.name, e.code,
                                        {'description': e.description})[0].data
        response.content_type = "application/json"
        return response

    @app.errorhandler(404)
    def handle_flask_not_found(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - HTTP 404 Not Found: {request.path}"
        )
        return _error_response(ErrorCodes.NOT_FOUND, 'The requested resource was not found.',
                               HTTPStatus.NOT_FOUND, {'path': request.path})

    @app.errorhandler(Exception)
    def handle_global_exception(e):
        if isinstance(e, AppException):
            log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
            log(
                f"Request ID: {g.get('request_id', 'N/A')} - AppException: {e.error_code} - {e.status_message}",
                exc_info=e.status_code >= 500
            )
            return _error_response(e.error_code, e.status_message, e.status_code, e.details)

        if isinstance(e, WerkzeugHTTPException):
            return handle_werkzeug_http_exception(e)

        current_app.logger.critical(
            f"Request ID: {g.get('request_id', 'N/A')} - Unhandled exception", exc_info=True
        )
        return _error_response(ErrorCodes.INTERNAL_SERVER_ERROR,
                               'An unexpected internal server error occurred. Please try again later.',
                               HTTPStatus.INTERNAL_SERVER_ERROR)


def create_app(config_class=Config):
    """Application factory."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # --- CORS ---
    allowed_origins = list(app.config.get('CORS_ORIGINS_LIST') or [])
    if app.debug:
        allowed_origins.extend(["http://localhost:8080", "http://127.0.0.1:8080"])
    if allowed_origins:
        CORS(app,
             origins=allowed_origins,
             methods=['GET', 'POST', 'OPTIONS'],
             allow_headers=['Content-Type'],
             expose_headers=['X-RateLimit-Limit', 'X-RateLimit-Remaining'],
             max_age=86400)
        app.logger.info(f"CORS configured for origins: {allowed_origins}")
    else:
        app.logger.warning("No CORS origins configured - API will reject cross-origin requests")

    limiter.init_app(app)
    db.init_app(app)

    app.extensions[GAME_SERVICE_EXTENSION] = build_game_service(
        app.config['PAYOUT_CONFIG'],
        store=build_session_store(app),
        initial_credits=app.config['GAME_INITIAL_CREDITS'],
        house_advantage_enabled=app.config['HOUSE_ADVANTAGE_ENABLED'],
        house_advantage_tiers=app.config['HOUSE_ADVANTAGE_TIERS'],
        reactivate_closed=app.config['SESSION_REACTIVATE_CLOSED'],
    )

    @app.before_request
    def assign_request_id():
        g.request_id = str(uuid.uuid4())

    register_error_handlers(app)
    app.register_blueprint(game_bp)

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, default=False, help='Drop the game_sessions table first.')
    def init_db_command(drop):
        """Create the game_sessions table."""
        if drop:
            db.drop_all()
            click.echo("Dropped existing tables.")
        db.create_all()
        click.echo(f"Initialized database at {app.config['SQLALCHEMY_DATABASE_URI']}")

    if app.config['SESSION_STORE'] == 'memory' and not app.config.get('TESTING'):
        app.logger.warning("Sessions are kept in process memory and are lost on restart.")

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000, debug=app.debug)
