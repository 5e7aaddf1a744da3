import os
from pathlib import Path
from dotenv import load_dotenv

from ecocatalog.services.env_utils import sanitize_env_value

load_dotenv()


def _env(name: str, fallback: str = '') -> str:
    return sanitize_env_value(os.getenv(name), fallback)


class Config:
    """Application settings"""
    SECRET_KEY = _env('SECRET_KEY', 'ecocatalog-dev-secret')

    # Data path for the JSON catalog store:
    # 1) DATA_PATH env var when set
    # 2) backend/data otherwise
    DATA_PATH = _env('DATA_PATH', str(Path(__file__).parent / 'data'))

    # MongoDB is used only when MONGO_URI is explicitly configured,
    # otherwise the catalog lives in DATA_PATH/catalog.json
    MONGO_URI = _env('MONGO_URI')

    # CORS allowlist (comma-separated origins)
    # Example:
    # CORS_ALLOWED_ORIGINS=https://ecolojia.com,https://www.ecolojia.com
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in _env('CORS_ALLOWED_ORIGINS').split(',')
        if origin.strip()
    ]

    FLASK_ENV = _env('FLASK_ENV', 'development')
    LOG_LEVEL = _env('LOG_LEVEL', 'INFO').upper()

    # Remote AI eco scorer. Left empty, scoring always uses the keyword heuristic.
    ECO_SCORER_URL = _env('ECO_SCORER_URL')
    ECO_SCORER_API_KEY = _env('ECO_SCORER_API_KEY')
    ECO_SCORER_TIMEOUT = float(_env('ECO_SCORER_TIMEOUT', '8') or '8')

    # Optional JSON file replacing the built-in keyword tables
    ECO_SIGNALS_PATH = _env('ECO_SIGNALS_PATH')

    # Search index (Algolia)
    ALGOLIA_APP_ID = _env('ALGOLIA_APP_ID')
    ALGOLIA_ADMIN_KEY = _env('ALGOLIA_ADMIN_KEY')
    ALGOLIA_INDEX_NAME = _env('ALGOLIA_INDEX_NAME', 'products') or 'products'
