"""
Product service - catalog business logic

Low-level work is delegated to:
- product_store: persistence (MongoDB or JSON file)
- product_filters: search filters
- product_sorting: ordering helpers
- eco_score_service: initial scoring of new products
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ecocatalog.errors import ProductNotFoundError
from ecocatalog.models.product import (
    build_slug,
    new_product_id,
    serialize_link,
    serialize_product,
    utc_now_iso,
)
from ecocatalog.schemas import ProductCreate, ProductUpdate

from . import product_filters as filters
from . import product_sorting as sorting
from .eco_score import ProductSignal
from .eco_score_service import EcoScoreService
from .product_store import ProductStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _parse_positive_int(raw_value: Any, default: int, minimum: int, maximum: int) -> int:
    """Parse int params with guard rails."""
    try:
        parsed = int(raw_value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, parsed))


def _parse_optional_float(raw_value: Any) -> Optional[float]:
    if raw_value is None or raw_value == '':
        return None
    try:
        return float(raw_value)
    except (TypeError, ValueError):
        return None


class ProductService:
    """Catalog CRUD, search and statistics"""

    def __init__(self, store: ProductStore, eco_scores: EcoScoreService):
        self.store = store
        self.eco_scores = eco_scores

    # ========== Helpers ==========

    def _attach_links(self, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Serialize products with their partner links (partner embedded)."""
        partners = {p['_id']: p for p in self.store.list_partners()}
        links_by_product: Dict[str, List[Dict[str, Any]]] = {}
        for link in self.store.list_links():
            links_by_product.setdefault(link.get('product_id'), []).append(link)

        serialized = []
        for product in products:
            data = serialize_product(product)
            data['partnerLinks'] = [
                serialize_link(link, partners.get(link.get('partner_id')))
                for link in links_by_product.get(product.get('_id'), [])
            ]
            serialized.append(data)
        return serialized

    def _find(self, product_ref: str) -> Optional[Dict[str, Any]]:
        """Look up by slug first, then by id."""
        ref = (product_ref or '').strip()
        if not ref:
            return None
        return self.store.find_by_slug(ref) or self.store.find_by_id(ref)

    # ========== Queries ==========

    def list_products(self) -> List[Dict[str, Any]]:
        """All products, newest first."""
        return self._attach_links(sorting.sort_by_recency(self.store.list_products()))

    def get_product(self, product_ref: str) -> Dict[str, Any]:
        product = self._find(product_ref)
        if product is None:
            raise ProductNotFoundError(product_ref)
        return self._attach_links([product])[0]

    def search_products(self, keyword: str = '', category: str = '', verified: bool = False,
                        eco_min: Any = None, page: Any = 1, limit: Any = 20) -> Dict[str, Any]:
        """
        Search products

        Params:
        - keyword: matched against title, description and brand
        - category: exact category
        - verified: only verified products
        - eco_min: minimum eco_score
        - page / limit: pagination (limit capped at 50)
        """
        page = _parse_positive_int(page, default=1, minimum=1, maximum=10_000)
        limit = _parse_positive_int(limit, default=20, minimum=1, maximum=MAX_PAGE_SIZE)
        eco_min = _parse_optional_float(eco_min)

        results = self.store.list_products()
        results = filters.filter_by_keyword(results, keyword)
        results = filters.filter_by_category(results, (category or '').strip())
        results = filters.filter_verified(results, verified)
        results = filters.filter_by_min_eco_score(results, eco_min)
        results = sorting.sort_for_search(results)

        total = len(results)
        start = min((page - 1) * limit, total)
        paginated = results[start:start + limit]

        return {
            'products': self._attach_links(paginated),
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': (total + limit - 1) // limit,
            },
            'filters': {
                'q': keyword or '',
                'category': category or '',
                'verified': verified,
                'eco_min': eco_min,
            },
        }

    def get_product_stats(self) -> Dict[str, Any]:
        products = self.store.list_products()
        total = len(products)
        verified = len(filters.filter_verified(products, True))
        scored = [filters.eco_score_of(p) for p in products if filters.has_eco_score(p)]

        return {
            'total': total,
            'verified': verified,
            'verification_rate': round(verified / total * 100) if total else 0,
            'average_eco_score': sum(scored) / len(scored) if scored else 0,
            'top_categories': sorting.top_categories(products, limit=5),
        }

    # ========== Commands ==========

    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Validate, score (preview mode) and store a new product."""
        data = ProductCreate.model_validate(payload)
        now_ms = int(time.time() * 1000)
        now = utc_now_iso()

        score = self.eco_scores.resolve(ProductSignal.from_product(data.model_dump()))
        fields = score.to_fields()

        product = {
            '_id': data.id or new_product_id(now_ms),
            'title': data.title,
            'description': data.description,
            'slug': data.slug or build_slug(data.title, now_ms),
            'brand': data.brand,
            'category': data.category,
            'tags': data.tags,
            'images': data.images,
            'image_url': data.image_url,
            'zones_dispo': data.zones_dispo,
            'prices': data.prices,
            'affiliate_url': data.affiliate_url,
            'eco_score': fields['eco_score'],
            'ai_confidence': fields['ai_confidence'],
            'confidence_pct': fields['confidence_pct'],
            'confidence_color': fields['confidence_color'],
            'verified_status': data.verified_status,
            'resume_fr': data.resume_fr,
            'resume_en': data.resume_en,
            'enriched_at': now,
            'created_at': now,
            'updated_at': now,
        }
        stored = self.store.insert_product(product)
        logger.info("Product created: %s (eco_score %.2f, %s)", stored['slug'], score.eco_score, score.source)
        return self._attach_links([stored])[0]

    def update_product(self, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update. Text changes do not trigger a rescore."""
        fields = ProductUpdate.model_validate(payload).model_dump(exclude_unset=True)
        if self.store.find_by_id(product_id) is None:
            raise ProductNotFoundError(product_id)

        fields['updated_at'] = utc_now_iso()
        updated = self.store.update_product(product_id, fields)
        if updated is None:
            raise ProductNotFoundError(product_id)
        return self._attach_links([updated])[0]

    def delete_product(self, product_id: str) -> None:
        """Delete a product together with its partner links."""
        if self.store.find_by_id(product_id) is None:
            raise ProductNotFoundError(product_id)
        self.store.delete_links_for_product(product_id)
        if not self.store.delete_product(product_id):
            raise ProductNotFoundError(product_id)
        logger.info("Product deleted: %s", product_id)
