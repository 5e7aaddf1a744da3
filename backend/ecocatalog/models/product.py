"""
Catalog documents: products, partners and partner links.

Documents are plain dicts keyed by ``_id`` in both stores; ``serialize_*``
turns them into API payloads with an ``id`` field.
"""

import math
import random
import re
import string
import time
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_CATEGORY = 'générique'
DEFAULT_TITLE = 'Produit sans titre'
DEFAULT_ZONES = ['FR']

_BASE36 = string.digits + string.ascii_lowercase


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds')


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse stored ISO timestamps (or datetimes coming back from MongoDB)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def new_product_id(now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = ''.join(random.choice(_BASE36) for _ in range(7))
    return f"prod_{now_ms}_{suffix}"


def new_object_id() -> str:
    return str(uuid.uuid4())


def slugify(text: str) -> str:
    """ASCII slug: accents folded, runs of other characters collapsed to '-'."""
    folded = unicodedata.normalize('NFKD', text or '').encode('ascii', 'ignore').decode('ascii')
    return re.sub(r'[^a-z0-9]+', '-', folded.lower()).strip('-')


def build_slug(title: str, now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{slugify(title) or 'produit'}-{now_ms}"


def confidence_color(confidence_pct: int) -> str:
    if confidence_pct >= 80:
        return 'green'
    if confidence_pct >= 60:
        return 'yellow'
    if confidence_pct >= 40:
        return 'orange'
    return 'red'


def to_percentage(fraction: float) -> int:
    """Half-up rounding of a [0, 1] fraction to a whole percentage."""
    return int(math.floor(fraction * 100 + 0.5))


def score_percentage(eco_score: Any) -> int:
    try:
        return to_percentage(float(eco_score or 0))
    except (TypeError, ValueError):
        return 0


def _with_public_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(doc)
    data['id'] = str(data.pop('_id', data.get('id', '')))
    return data


def serialize_product(product: Dict[str, Any]) -> Dict[str, Any]:
    return _with_public_id(product)


def serialize_partner(partner: Dict[str, Any]) -> Dict[str, Any]:
    return _with_public_id(partner)


def serialize_link(link: Dict[str, Any], partner: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    data = _with_public_id(link)
    if partner is not None:
        data['partner'] = serialize_partner(partner)
    return data
