"""
Product filters - search and filtering logic for catalog listings
"""

from typing import Any, Dict, List, Optional

SEARCH_FIELDS = ('title', 'description', 'brand')


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def matches_keyword(product: Dict[str, Any], keyword: str) -> bool:
    """Case-insensitive substring match on title, description or brand."""
    needle = (keyword or '').strip().lower()
    if not needle:
        return True
    for field in SEARCH_FIELDS:
        value = product.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def filter_by_keyword(products: List[Dict], keyword: str) -> List[Dict]:
    if not (keyword or '').strip():
        return products
    return [p for p in products if matches_keyword(p, keyword)]


def filter_by_category(products: List[Dict], category: str) -> List[Dict]:
    """Exact category match; no-op for an empty category."""
    if not category:
        return products
    return [p for p in products if p.get('category') == category]


def filter_verified(products: List[Dict], verified_only: bool) -> List[Dict]:
    if not verified_only:
        return products
    return [p for p in products if p.get('verified_status') == 'verified']


def filter_by_min_eco_score(products: List[Dict], eco_min: Optional[float]) -> List[Dict]:
    """Keep products whose eco_score is at least ``eco_min`` (unscored products drop out)."""
    if eco_min is None:
        return products
    kept = []
    for p in products:
        score = _as_float(p.get('eco_score'))
        if score is not None and score >= eco_min:
            kept.append(p)
    return kept


def has_eco_score(product: Dict[str, Any]) -> bool:
    return _as_float(product.get('eco_score')) is not None


def eco_score_of(product: Dict[str, Any]) -> float:
    return _as_float(product.get('eco_score')) or 0.0


def normalize_tags(tags: Any) -> List[str]:
    """Lowercased, stripped, de-duplicated tags preserving order."""
    if not isinstance(tags, (list, tuple)):
        return []
    seen = set()
    normalized = []
    for tag in tags:
        value = str(tag or '').strip().lower()
        if value and value not in seen:
            seen.add(value)
            normalized.append(value)
    return normalized
