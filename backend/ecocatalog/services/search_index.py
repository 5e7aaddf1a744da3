"""
Search index client (Algolia REST API).

Usage:
    client = SearchIndexClient(app_id, admin_key, index_name='products')
    client.replace_all([build_index_record(p) for p in products])
    hits = client.search('', {'similarQuery': 'savon bio', 'hitsPerPage': 8})
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ecocatalog.errors import SearchIndexError

from .product_store import ProductStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000

DEFAULT_SEARCH_PARAMS = {
    'hitsPerPage': 20,
    'attributesToRetrieve': [
        'objectID', 'id', 'title', 'description', 'brand', 'category',
        'eco_score', 'image_url', 'slug', 'tags',
    ],
    'attributesToHighlight': ['title', 'brand'],
    'attributesToSnippet': ['description:50'],
}


def _usable_image(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip() and value.strip() != 'null':
        return value
    return None


def pick_image_url(product: Dict[str, Any]) -> Optional[str]:
    """Main image_url when usable, otherwise the first usable entry of ``images``."""
    image = _usable_image(product.get('image_url'))
    if image:
        return image
    images = product.get('images')
    if isinstance(images, list):
        for candidate in images:
            image = _usable_image(candidate)
            if image:
                return image
    return None


def build_index_record(product: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a stored product into a search record keyed by slug."""
    return {
        'objectID': product.get('slug'),
        'id': str(product.get('_id', product.get('id', ''))),
        'title': product.get('title'),
        'slug': product.get('slug'),
        'description': product.get('description'),
        'brand': product.get('brand'),
        'category': product.get('category'),
        'image_url': pick_image_url(product),
        'eco_score': product.get('eco_score'),
        'ai_confidence': product.get('ai_confidence'),
        'confidence_color': product.get('confidence_color'),
        'zones_dispo': product.get('zones_dispo') or [],
        'tags': product.get('tags') or [],
        'affiliate_url': product.get('affiliate_url'),
    }


class SearchIndexClient:
    """Minimal client for one index."""

    def __init__(self, app_id: str = '', api_key: str = '', index_name: str = 'products',
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.app_id = (app_id or '').strip()
        self.api_key = (api_key or '').strip()
        self.index_name = index_name or 'products'
        self.timeout = timeout
        self._session = session or requests.Session()
        if self.is_available():
            self._session.headers.update({
                'X-Algolia-Application-Id': self.app_id,
                'X-Algolia-API-Key': self.api_key,
                'Content-Type': 'application/json',
            })

    def is_available(self) -> bool:
        return bool(self.app_id and self.api_key)

    @property
    def base_url(self) -> str:
        return f"https://{self.app_id}.algolia.net/1/indexes/{quote(self.index_name, safe='')}"

    def _request(self, method: str, path: str = '', payload: Optional[Dict[str, Any]] = None,
                 allow_404: bool = False) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SearchIndexError(f"search index request failed: {e}") from e

        if allow_404 and response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            raise SearchIndexError(
                f"search index error ({response.status_code}): {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise SearchIndexError("search index returned invalid JSON") from e

    def search(self, query: str = '', params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if not self.is_available():
            return []
        payload = dict(DEFAULT_SEARCH_PARAMS)
        payload.update(params or {})
        payload['query'] = query
        data = self._request('POST', '/query', payload) or {}
        hits = data.get('hits', [])
        return [hit for hit in hits if isinstance(hit, dict)]

    def get_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        if not self.is_available():
            return None
        return self._request('GET', f"/{quote(object_id, safe='')}", allow_404=True)

    def replace_all(self, records: List[Dict[str, Any]]) -> int:
        """Clear the index and upload ``records``; returns the number sent."""
        if not self.is_available():
            raise SearchIndexError("search index is not configured (ALGOLIA_APP_ID / ALGOLIA_ADMIN_KEY)")

        self._request('POST', '/clear')
        for start in range(0, len(records), BATCH_SIZE):
            chunk = records[start:start + BATCH_SIZE]
            self._request('POST', '/batch', {
                'requests': [{'action': 'updateObject', 'body': record} for record in chunk]
            })
        logger.info("Pushed %d records to search index %s", len(records), self.index_name)
        return len(records)


def sync_all_products(client: SearchIndexClient, store: ProductStore) -> Dict[str, int]:
    """Replace the index content with every stored product; returns push statistics."""
    products = store.list_products()
    records = [build_index_record(p) for p in products if p.get('slug')]
    with_images = sum(1 for r in records if r['image_url'])
    pushed = client.replace_all(records)
    return {
        'pushed': pushed,
        'skipped': len(products) - len(records),
        'with_images': with_images,
        'without_images': len(records) - with_images,
    }
