import logging
import os

from flask import Flask, current_app, jsonify
from flask_cors import CORS
from flask_pymongo import PyMongo
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from .errors import CatalogError
from .schemas import validation_details

mongo = PyMongo()

logger = logging.getLogger(__name__)


def current_services():
    """Services bound to the running app (see create_app)."""
    return current_app.extensions['ecocatalog']


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, (level_name or 'INFO').upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('ecocatalog').setLevel(level)


def _build_store(app: Flask):
    from .services.product_store import JsonProductStore, MongoProductStore

    # MongoDB only when explicitly configured, JSON file otherwise
    if app.config.get('MONGO_URI'):
        mongo.init_app(app)
        store = MongoProductStore(mongo.db)
        store.ensure_indexes()
        logger.info("Catalog store: MongoDB")
        return store

    path = os.path.join(app.config['DATA_PATH'], 'catalog.json')
    logger.info("Catalog store: %s", path)
    return JsonProductStore(path)


def register_error_handlers(app: Flask) -> None:

    @app.errorhandler(CatalogError)
    def handle_catalog_error(e):
        return jsonify({
            'success': False,
            'error': e.error_code,
            'message': str(e),
        }), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({
            'success': False,
            'error': 'VALIDATION_ERROR',
            'message': 'Données invalides',
            'details': validation_details(e),
        }), 422

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            'success': False,
            'error': e.name.upper().replace(' ', '_'),
            'message': e.description,
        }), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception("Unhandled error")
        return jsonify({
            'success': False,
            'error': 'INTERNAL_ERROR',
            'message': 'Erreur interne du serveur',
        }), 500


def create_app(config_overrides=None, store=None, remote_scorer=None, search_index=None):
    """Create the Flask application.

    ``store``, ``remote_scorer`` and ``search_index`` replace the instances
    built from the config (tests pass fakes here).
    """
    from config import Config

    from .cli import register_cli
    from .services import build_services
    from .services.eco_signals import load_signal_tables

    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    # CORS: use explicit allowlist in production when provided.
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
    if cors_origins:
        CORS(app, resources={r"/api/*": {"origins": cors_origins}})
    else:
        CORS(app, resources={r"/api/*": {"origins": "*"}}, send_wildcard=True)

    if store is None:
        store = _build_store(app)

    tables = load_signal_tables(app.config.get('ECO_SIGNALS_PATH') or None)
    app.extensions['ecocatalog'] = build_services(
        app.config,
        store=store,
        remote_scorer=remote_scorer,
        search_index=search_index,
        tables=tables,
    )

    from .routes.eco_score import eco_score_bp
    from .routes.health import health_bp
    from .routes.products import products_bp
    from .routes.tracking import tracking_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(products_bp, url_prefix='/api/products')
    app.register_blueprint(eco_score_bp, url_prefix='/api/eco-score')
    app.register_blueprint(tracking_bp, url_prefix='/api')

    register_error_handlers(app)
    register_cli(app)

    return app
