"""
Catalog store - persistence of products, partners and partner links.

Two backends share one interface:
- MongoProductStore: used when MONGO_URI is configured
- JsonProductStore: a single JSON file under DATA_PATH (local dev, tests)

Updates are partial ($set semantics): fields not named are left untouched.
"""

import json
import logging
import os
import tempfile
import threading
from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ecocatalog.errors import DuplicateProductError, PersistenceError
from ecocatalog.models.product import utc_now_iso

logger = logging.getLogger(__name__)

PRODUCTS = 'products'
PARTNERS = 'partners'
PARTNER_LINKS = 'partner_links'


class ProductStore:
    """Interface shared by the catalog stores."""

    # ========== Products ==========

    def list_products(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def list_ids(self) -> List[str]:
        raise NotImplementedError

    def find_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def insert_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update; returns the updated product or None when absent."""
        raise NotImplementedError

    def delete_product(self, product_id: str) -> bool:
        raise NotImplementedError

    # ========== Partners ==========

    def list_partners(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def find_partner(self, partner_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def insert_partner(self, partner: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    # ========== Partner links ==========

    def list_links(self, product_id: Optional[str] = None,
                   partner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def find_link(self, link_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def insert_link(self, link: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update_link(self, link_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def delete_links_for_product(self, product_id: str) -> int:
        raise NotImplementedError

    def increment_clicks(self, link_id: str) -> Optional[Dict[str, Any]]:
        """Add one click to a link; returns the updated link or None when absent."""
        raise NotImplementedError


# ========== JSON file store ==========

class JsonProductStore(ProductStore):
    """Catalog kept in memory and written back to one JSON file on every change."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()
        self._data = self._load()

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        data = {PRODUCTS: [], PARTNERS: [], PARTNER_LINKS: []}
        if not os.path.exists(self.path):
            return data
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"cannot read catalog file {self.path}: {e}") from e
        for key in data:
            items = raw.get(key, []) if isinstance(raw, dict) else []
            data[key] = [item for item in items if isinstance(item, dict)]
        logger.info("Loaded %d products from %s", len(data[PRODUCTS]), self.path)
        return data

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.catalog-', suffix='.json')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2, default=str)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"cannot write catalog file {self.path}: {e}") from e

    def _find(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        for item in self._data[collection]:
            if item.get('_id') == doc_id:
                return item
        return None

    def _update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._find(collection, doc_id)
            if item is None:
                return None
            backup = deepcopy(item)
            item.update(deepcopy(fields))
            try:
                self._flush()
            except PersistenceError:
                item.clear()
                item.update(backup)
                raise
            return deepcopy(item)

    def _insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._data[collection].append(deepcopy(doc))
            try:
                self._flush()
            except PersistenceError:
                self._data[collection].pop()
                raise
            return deepcopy(doc)

    # Products

    def list_products(self) -> List[Dict[str, Any]]:
        with self._lock:
            return deepcopy(self._data[PRODUCTS])

    def list_ids(self) -> List[str]:
        with self._lock:
            return [str(p['_id']) for p in self._data[PRODUCTS] if '_id' in p]

    def find_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            product = self._find(PRODUCTS, product_id)
            return deepcopy(product) if product else None

    def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for product in self._data[PRODUCTS]:
                if product.get('slug') == slug:
                    return deepcopy(product)
            return None

    def insert_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            for existing in self._data[PRODUCTS]:
                if existing.get('_id') == product.get('_id') or existing.get('slug') == product.get('slug'):
                    raise DuplicateProductError("Produit existe déjà")
            return self._insert(PRODUCTS, product)

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            new_slug = fields.get('slug')
            if new_slug is not None:
                for existing in self._data[PRODUCTS]:
                    if existing.get('slug') == new_slug and existing.get('_id') != product_id:
                        raise DuplicateProductError("Slug déjà utilisé")
            return self._update(PRODUCTS, product_id, fields)

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            product = self._find(PRODUCTS, product_id)
            if product is None:
                return False
            index = self._data[PRODUCTS].index(product)
            del self._data[PRODUCTS][index]
            try:
                self._flush()
            except PersistenceError:
                self._data[PRODUCTS].insert(index, product)
                raise
            return True

    # Partners

    def list_partners(self) -> List[Dict[str, Any]]:
        with self._lock:
            return deepcopy(self._data[PARTNERS])

    def find_partner(self, partner_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            partner = self._find(PARTNERS, partner_id)
            return deepcopy(partner) if partner else None

    def insert_partner(self, partner: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(PARTNERS, partner)

    # Partner links

    def list_links(self, product_id: Optional[str] = None,
                   partner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            links = self._data[PARTNER_LINKS]
            if product_id:
                links = [link for link in links if link.get('product_id') == product_id]
            if partner_id:
                links = [link for link in links if link.get('partner_id') == partner_id]
            return deepcopy(links)

    def find_link(self, link_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            link = self._find(PARTNER_LINKS, link_id)
            return deepcopy(link) if link else None

    def insert_link(self, link: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(PARTNER_LINKS, link)

    def update_link(self, link_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update(PARTNER_LINKS, link_id, fields)

    def delete_links_for_product(self, product_id: str) -> int:
        with self._lock:
            before = self._data[PARTNER_LINKS]
            kept = [link for link in before if link.get('product_id') != product_id]
            removed = len(before) - len(kept)
            if removed:
                self._data[PARTNER_LINKS] = kept
                try:
                    self._flush()
                except PersistenceError:
                    self._data[PARTNER_LINKS] = before
                    raise
            return removed

    def increment_clicks(self, link_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            link = self._find(PARTNER_LINKS, link_id)
            if link is None:
                return None
            return self._update(PARTNER_LINKS, link_id, {
                'clicks': int(link.get('clicks') or 0) + 1,
                'updated_at': utc_now_iso(),
            })


# ========== MongoDB store ==========

class MongoProductStore(ProductStore):
    """Catalog backed by a pymongo Database (``flask_pymongo.PyMongo.db``)."""

    def __init__(self, db):
        self.db = db

    @property
    def products(self):
        return self.db[PRODUCTS]

    @property
    def partners(self):
        return self.db[PARTNERS]

    @property
    def links(self):
        return self.db[PARTNER_LINKS]

    def ensure_indexes(self) -> None:
        try:
            self.products.create_index([('slug', ASCENDING)], unique=True)
            self.products.create_index([('created_at', DESCENDING)])
            self.products.create_index([('enriched_at', DESCENDING)])
            self.links.create_index(
                [('product_id', ASCENDING), ('partner_id', ASCENDING)], unique=True
            )
        except PyMongoError as e:
            raise PersistenceError(f"MongoDB index creation failed: {e}") from e

    @staticmethod
    def _many(cursor: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            return list(cursor)
        except PyMongoError as e:
            raise PersistenceError(f"MongoDB read failed: {e}") from e

    @staticmethod
    def _call(operation, *args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except DuplicateKeyError as e:
            raise DuplicateProductError("Produit existe déjà") from e
        except PyMongoError as e:
            raise PersistenceError(f"MongoDB operation failed: {e}") from e

    # Products

    def list_products(self) -> List[Dict[str, Any]]:
        return self._many(self.products.find({}))

    def list_ids(self) -> List[str]:
        return [str(doc['_id']) for doc in self._many(self.products.find({}, {'_id': 1}))]

    def find_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        return self._call(self.products.find_one, {'_id': product_id})

    def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._call(self.products.find_one, {'slug': slug})

    def insert_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(product)
        self._call(self.products.insert_one, doc)
        return doc

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._call(
            self.products.find_one_and_update,
            {'_id': product_id},
            {'$set': fields},
            return_document=ReturnDocument.AFTER,
        )

    def delete_product(self, product_id: str) -> bool:
        result = self._call(self.products.delete_one, {'_id': product_id})
        return result.deleted_count > 0

    # Partners

    def list_partners(self) -> List[Dict[str, Any]]:
        return self._many(self.partners.find({}).sort('name', ASCENDING))

    def find_partner(self, partner_id: str) -> Optional[Dict[str, Any]]:
        return self._call(self.partners.find_one, {'_id': partner_id})

    def insert_partner(self, partner: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(partner)
        self._call(self.partners.insert_one, doc)
        return doc

    # Partner links

    def list_links(self, product_id: Optional[str] = None,
                   partner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if product_id:
            query['product_id'] = product_id
        if partner_id:
            query['partner_id'] = partner_id
        return self._many(self.links.find(query))

    def find_link(self, link_id: str) -> Optional[Dict[str, Any]]:
        return self._call(self.links.find_one, {'_id': link_id})

    def insert_link(self, link: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(link)
        self._call(self.links.insert_one, doc)
        return doc

    def update_link(self, link_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._call(
            self.links.find_one_and_update,
            {'_id': link_id},
            {'$set': fields},
            return_document=ReturnDocument.AFTER,
        )

    def delete_links_for_product(self, product_id: str) -> int:
        result = self._call(self.links.delete_many, {'product_id': product_id})
        return result.deleted_count

    def increment_clicks(self, link_id: str) -> Optional[Dict[str, Any]]:
        return self._call(
            self.links.find_one_and_update,
            {'_id': link_id},
            {'$inc': {'clicks': 1}, '$set': {'updated_at': utc_now_iso()}},
            return_document=ReturnDocument.AFTER,
        )
