"""
Affiliate tracking - partners, partner links and click redirects.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ecocatalog.errors import LinkNotFoundError, PartnerNotFoundError, ProductNotFoundError
from ecocatalog.models.product import new_object_id, serialize_link, serialize_partner, utc_now_iso
from ecocatalog.schemas import PartnerCreate, PartnerLinkCreate

from .product_store import ProductStore

logger = logging.getLogger(__name__)


class TrackingService:

    def __init__(self, store: ProductStore):
        self.store = store

    # ========== Partners ==========

    def list_partners(self) -> List[Dict[str, Any]]:
        return [serialize_partner(p) for p in self.store.list_partners()]

    def create_partner(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = PartnerCreate.model_validate(payload)
        partner = self.store.insert_partner({
            '_id': new_object_id(),
            'name': data.name,
            'website': data.website,
            'created_at': utc_now_iso(),
        })
        return serialize_partner(partner)

    # ========== Partner links ==========

    def list_links(self, product_id: Optional[str] = None,
                   partner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        partners = {p['_id']: p for p in self.store.list_partners()}
        return [
            serialize_link(link, partners.get(link.get('partner_id')))
            for link in self.store.list_links(product_id=product_id, partner_id=partner_id)
        ]

    def upsert_link(self, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Create the (product, partner) link, or update its URL when it exists.

        Returns (link, created).
        """
        data = PartnerLinkCreate.model_validate(payload)
        if self.store.find_by_id(data.product_id) is None:
            raise ProductNotFoundError(data.product_id)
        partner = self.store.find_partner(data.partner_id)
        if partner is None:
            raise PartnerNotFoundError(data.partner_id)

        now = utc_now_iso()
        existing = self.store.list_links(product_id=data.product_id, partner_id=data.partner_id)
        if existing:
            link = self.store.update_link(existing[0]['_id'], {'url': data.url, 'updated_at': now})
            if link is None:
                raise LinkNotFoundError(existing[0]['_id'])
            return serialize_link(link, partner), False

        link = self.store.insert_link({
            '_id': new_object_id(),
            'url': data.url,
            'product_id': data.product_id,
            'partner_id': data.partner_id,
            'clicks': 0,
            'created_at': now,
            'updated_at': now,
        })
        return serialize_link(link, partner), True

    # ========== Tracking ==========

    def track_click(self, link_id: str) -> str:
        """Count one click on a link and return its target URL."""
        link = self.store.increment_clicks((link_id or '').strip())
        if link is None:
            raise LinkNotFoundError(link_id)
        logger.info("Tracked click on link %s (%d clicks)", link_id, link.get('clicks', 0))
        return link['url']
