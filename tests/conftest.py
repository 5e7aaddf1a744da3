"""Shared fixtures: a JSON catalog store on tmp_path and a Flask app bound to it."""

import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, 'backend'))

# Never talk to a real database or remote service from tests.
os.environ['MONGO_URI'] = ''
os.environ['ECO_SCORER_URL'] = ''
os.environ['ALGOLIA_APP_ID'] = ''

from ecocatalog import create_app  # noqa: E402
from ecocatalog.services.product_store import JsonProductStore  # noqa: E402
from ecocatalog.services.remote_scorer import RemoteScoreOutcome  # noqa: E402


class FakeRemoteScorer:
    """Stands in for RemoteEcoScorer; returns queued outcomes."""

    def __init__(self, outcomes=None, configured=True):
        self.outcomes = list(outcomes or [])
        self.configured = configured
        self.calls = []

    def is_configured(self):
        return self.configured

    def score(self, signal):
        self.calls.append(signal)
        if self.outcomes:
            return self.outcomes.pop(0)
        return RemoteScoreOutcome.failure('no outcome queued')


class FakeSearchIndex:
    """Stands in for SearchIndexClient."""

    def __init__(self, hits=None, available=True, error=None):
        self.hits = list(hits or [])
        self.available = available
        self.error = error
        self.queries = []
        self.replaced = None

    def is_available(self):
        return self.available

    def search(self, query='', params=None):
        self.queries.append((query, params))
        if self.error is not None:
            raise self.error
        return list(self.hits)

    def replace_all(self, records):
        self.replaced = list(records)
        return len(records)


def make_product(product_id, **fields):
    product = {
        '_id': product_id,
        'title': f'Produit {product_id}',
        'description': '',
        'slug': f'produit-{product_id}',
        'brand': None,
        'category': 'générique',
        'tags': [],
        'images': [],
        'zones_dispo': ['FR'],
        'prices': {},
        'verified_status': 'manual_review',
        'created_at': '2026-01-01T00:00:00.000Z',
        'updated_at': '2026-01-01T00:00:00.000Z',
    }
    product.update(fields)
    return product


@pytest.fixture
def store(tmp_path):
    return JsonProductStore(str(tmp_path / 'catalog.json'))


@pytest.fixture
def search_index():
    return FakeSearchIndex(available=False)


@pytest.fixture
def app(tmp_path, store, search_index):
    app = create_app(
        config_overrides={'TESTING': True, 'DATA_PATH': str(tmp_path)},
        store=store,
        remote_scorer=FakeRemoteScorer(configured=False),
        search_index=search_index,
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()
