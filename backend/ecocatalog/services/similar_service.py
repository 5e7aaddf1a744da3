"""
Similar products - search index first, catalog ranking as a complement.

The index is queried with the source product's title, brand and category.
When it returns fewer than MIN_INDEX_RESULTS hits (or is unavailable), the
list is completed from the catalog by shared category, tags and brand.
"""

import logging
from typing import Any, Dict, List

from ecocatalog.errors import ProductNotFoundError, SearchIndexError

from .product_filters import eco_score_of, normalize_tags
from .product_store import ProductStore
from .search_index import SearchIndexClient

logger = logging.getLogger(__name__)

MIN_INDEX_RESULTS = 3
DEFAULT_LIMIT = 6


def _item(product: Dict[str, Any], source: str) -> Dict[str, Any]:
    return {
        'id': str(product.get('id') or product.get('_id') or product.get('objectID') or ''),
        'title': product.get('title') or '',
        'description': product.get('description') or '',
        'brand': product.get('brand'),
        'category': product.get('category') or '',
        'eco_score': eco_score_of(product),
        'image_url': product.get('image_url'),
        'slug': product.get('slug') or product.get('objectID') or '',
        'source': source,
    }


class SimilarService:

    def __init__(self, store: ProductStore, search_index: SearchIndexClient):
        self.store = store
        self.search_index = search_index

    def _from_index(self, source: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        if not self.search_index.is_available():
            return []
        query = f"{source.get('title') or ''} {source.get('brand') or ''} {source.get('category') or ''}".strip()
        params: Dict[str, Any] = {
            # +2 to absorb the source product and duplicates
            'hitsPerPage': limit + 2,
            'similarQuery': query,
        }
        if source.get('slug'):
            params['filters'] = f"NOT objectID:{source['slug']}"
        if source.get('category'):
            params['facetFilters'] = [f"category:{source['category']}"]

        try:
            hits = self.search_index.search('', params)
        except SearchIndexError as e:
            logger.warning("Similar products: search index failed for %s (%s), using catalog only",
                           source.get('_id'), e)
            return []

        source_id = str(source.get('_id'))
        return [item for item in (_item(hit, 'index') for hit in hits) if item['id'] != source_id]

    def _from_catalog(self, source: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Rank other catalog products: same category (10), shared tag (3 each), same brand (2)."""
        source_id = source.get('_id')
        category = source.get('category')
        brand = (source.get('brand') or '').strip().lower()
        tags = set(normalize_tags(source.get('tags')))

        scored = []
        for product in self.store.list_products():
            if product.get('_id') == source_id:
                continue
            score = 0
            if category and product.get('category') == category:
                score += 10
            score += 3 * len(tags & set(normalize_tags(product.get('tags'))))
            if brand and (product.get('brand') or '').strip().lower() == brand:
                score += 2
            if score > 0:
                scored.append((score, product))

        scored.sort(key=lambda pair: (-pair[0], -eco_score_of(pair[1])))
        return [_item(product, 'catalog') for _, product in scored]

    def find_similar(self, product_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        source = self.store.find_by_id(product_id) or self.store.find_by_slug(product_id)
        if source is None:
            raise ProductNotFoundError(product_id)

        results = self._from_index(source, limit)
        logger.debug("Similar products: %d index hits for %s", len(results), product_id)

        if len(results) < MIN_INDEX_RESULTS:
            seen = {item['id'] for item in results}
            for item in self._from_catalog(source):
                if item['id'] not in seen:
                    seen.add(item['id'])
                    results.append(item)

        results.sort(key=lambda item: item['eco_score'], reverse=True)
        return results[:limit]
