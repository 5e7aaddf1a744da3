# Services package
#
# Module structure:
# - eco_signals.py: keyword tables (built-in or loaded from JSON)
# - eco_score.py: pure keyword heuristic
# - remote_scorer.py: HTTP client for the remote AI scorer
# - eco_score_service.py: resolution chain, persistence, batch and stats
# - product_store.py: persistence (MongoDB or JSON file)
# - product_filters.py / product_sorting.py: search helpers
# - product_service.py: catalog CRUD, search and stats
# - tracking_service.py: partners, partner links and click tracking
# - search_index.py / similar_service.py: search index sync and similar products
#
# build_services() wires them together from the app config:
#   services = build_services(app.config, store=store)
#   services.eco_scores.resolve_all_and_persist()

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .eco_score_service import EcoScoreService
from .eco_signals import DEFAULT_SIGNAL_TABLES, SignalTables
from .product_service import ProductService
from .product_store import JsonProductStore, MongoProductStore, ProductStore
from .remote_scorer import RemoteEcoScorer
from .search_index import SearchIndexClient
from .similar_service import SimilarService
from .tracking_service import TrackingService

__all__ = [
    'CatalogServices',
    'build_services',
    'EcoScoreService',
    'ProductService',
    'TrackingService',
    'SimilarService',
    'ProductStore',
    'JsonProductStore',
    'MongoProductStore',
    'RemoteEcoScorer',
    'SearchIndexClient',
]


@dataclass
class CatalogServices:
    store: ProductStore
    eco_scores: EcoScoreService
    products: ProductService
    tracking: TrackingService
    similar: SimilarService
    search_index: SearchIndexClient


def build_services(config: Mapping[str, Any], store: ProductStore,
                   remote_scorer: Optional[RemoteEcoScorer] = None,
                   search_index: Optional[SearchIndexClient] = None,
                   tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> CatalogServices:
    if remote_scorer is None:
        remote_scorer = RemoteEcoScorer(
            url=config.get('ECO_SCORER_URL', ''),
            api_key=config.get('ECO_SCORER_API_KEY', ''),
            timeout=config.get('ECO_SCORER_TIMEOUT', 8.0),
        )
    if search_index is None:
        search_index = SearchIndexClient(
            app_id=config.get('ALGOLIA_APP_ID', ''),
            api_key=config.get('ALGOLIA_ADMIN_KEY', ''),
            index_name=config.get('ALGOLIA_INDEX_NAME', 'products'),
        )

    eco_scores = EcoScoreService(store, remote_scorer, tables)
    return CatalogServices(
        store=store,
        eco_scores=eco_scores,
        products=ProductService(store, eco_scores),
        tracking=TrackingService(store),
        similar=SimilarService(store, search_index),
        search_index=search_index,
    )
