"""
Catalog error types.

Route handlers map these to HTTP status codes (see ``register_error_handlers``
in the app factory); everything else becomes a generic 500.
"""


class CatalogError(Exception):
    """Base class for expected catalog failures."""
    status_code = 500
    error_code = 'CATALOG_ERROR'


class NotFoundError(CatalogError):
    status_code = 404
    error_code = 'NOT_FOUND'


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__(f"Produit {product_id} non trouvé")
        self.product_id = product_id


class PartnerNotFoundError(NotFoundError):
    def __init__(self, partner_id: str):
        super().__init__(f"Partenaire {partner_id} non trouvé")
        self.partner_id = partner_id


class LinkNotFoundError(NotFoundError):
    def __init__(self, link_id: str):
        super().__init__(f"Lien {link_id} non trouvé")
        self.link_id = link_id


class DuplicateProductError(CatalogError):
    status_code = 409
    error_code = 'DUPLICATE'


class PersistenceError(CatalogError):
    """A store write (or read) failed."""
    error_code = 'PERSISTENCE_FAILURE'


class SearchIndexError(CatalogError):
    status_code = 502
    error_code = 'SEARCH_INDEX_FAILURE'


class SignalTableError(CatalogError):
    """Keyword table file could not be loaded."""
    error_code = 'SIGNAL_TABLE_INVALID'
