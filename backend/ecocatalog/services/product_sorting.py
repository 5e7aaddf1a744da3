"""
Product sorting - ordering helpers for catalog listings
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List

from ecocatalog.models.product import parse_timestamp

from .product_filters import eco_score_of

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def get_created_at(product: Dict[str, Any]) -> datetime:
    return parse_timestamp(product.get('created_at')) or _EPOCH


def get_enriched_at(product: Dict[str, Any]) -> datetime:
    return parse_timestamp(product.get('enriched_at')) or _EPOCH


def sort_by_recency(products: List[Dict]) -> List[Dict]:
    """Newest first (created_at)."""
    return sorted(products, key=get_created_at, reverse=True)


def sort_for_search(products: List[Dict]) -> List[Dict]:
    """Verified products first, then eco_score desc, then newest."""
    return sorted(
        products,
        key=lambda p: (
            0 if p.get('verified_status') == 'verified' else 1,
            -eco_score_of(p),
            -get_created_at(p).timestamp(),
        )
    )


def top_categories(products: List[Dict], limit: int = 5) -> List[Dict[str, Any]]:
    counts = Counter(p.get('category') for p in products if p.get('category'))
    return [
        {'category': category, 'count': count}
        for category, count in counts.most_common(limit)
    ]
