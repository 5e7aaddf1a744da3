"""
Eco-score service - resolution chain and batch rescoring.

Resolution order for one product:
1. remote AI scorer (when configured)
2. keyword heuristic with a fixed 0.4 confidence

Remote failures never reach callers. A missing product raises
ProductNotFoundError before any scoring; store failures raise PersistenceError.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ecocatalog.errors import ProductNotFoundError
from ecocatalog.models.product import confidence_color, score_percentage, to_percentage, utc_now_iso

from . import product_sorting as sorting
from .eco_score import ProductSignal, ScoreBreakdown, compute_breakdown, compute_eco_score
from .eco_signals import DEFAULT_SIGNAL_TABLES, SignalTables
from .product_filters import eco_score_of, has_eco_score
from .product_store import ProductStore
from .remote_scorer import RemoteEcoScorer

logger = logging.getLogger(__name__)

HEURISTIC_CONFIDENCE = 0.4

SCORE_BANDS = (
    (0.8, 'Excellent (80-100%)'),
    (0.6, 'Très bon (60-79%)'),
    (0.4, 'Bon (40-59%)'),
    (0.2, 'Moyen (20-39%)'),
    (0.0, 'Faible (0-19%)'),
)


@dataclass(frozen=True)
class ScoreResult:
    eco_score: float
    ai_confidence: float
    confidence_pct: int
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_fields(self) -> Dict[str, Any]:
        """Product fields written back by a persisted resolution."""
        now = utc_now_iso()
        return {
            'eco_score': self.eco_score,
            'ai_confidence': self.ai_confidence,
            'confidence_pct': self.confidence_pct,
            'confidence_color': confidence_color(self.confidence_pct),
            'enriched_at': now,
            'updated_at': now,
        }


@dataclass
class BatchReport:
    updated: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.updated + self.errors

    def to_dict(self) -> Dict[str, int]:
        return {'updated': self.updated, 'errors': self.errors, 'total': self.total}


def score_band(eco_score: float) -> str:
    for threshold, label in SCORE_BANDS:
        if eco_score >= threshold:
            return label
    return SCORE_BANDS[-1][1]


class EcoScoreService:
    """Scores products and writes the result back to the store."""

    def __init__(self, store: ProductStore, remote_scorer: Optional[RemoteEcoScorer] = None,
                 tables: SignalTables = DEFAULT_SIGNAL_TABLES):
        self.store = store
        self.remote_scorer = remote_scorer
        self.tables = tables

    # ========== Pure scoring ==========

    def calculate(self, signal: ProductSignal) -> float:
        """Heuristic eco-score, no remote call and no persistence."""
        return compute_eco_score(signal, self.tables)

    def breakdown(self, signal: ProductSignal) -> ScoreBreakdown:
        return compute_breakdown(signal, self.tables)

    # ========== Resolution chain ==========

    def _heuristic_result(self, signal: ProductSignal) -> ScoreResult:
        return ScoreResult(
            eco_score=self.calculate(signal),
            ai_confidence=HEURISTIC_CONFIDENCE,
            confidence_pct=to_percentage(HEURISTIC_CONFIDENCE),
            source='heuristic',
        )

    def resolve(self, signal: ProductSignal) -> ScoreResult:
        """Remote scorer first, heuristic fallback. Never persists."""
        if self.remote_scorer is None or not self.remote_scorer.is_configured():
            result = self._heuristic_result(signal)
            logger.debug("Heuristic eco_score %.2f for %r", result.eco_score, signal.title)
            return result

        try:
            outcome = self.remote_scorer.score(signal)
        except Exception as e:
            logger.warning("Remote scorer raised for %r (%s), falling back to heuristic",
                           signal.title, e)
            return self._heuristic_result(signal)

        if outcome.ok:
            remote = outcome.result
            logger.debug("Remote eco_score %.2f for %r", remote.eco_score, signal.title)
            return ScoreResult(
                eco_score=remote.eco_score,
                ai_confidence=remote.ai_confidence,
                confidence_pct=to_percentage(remote.ai_confidence),
                source='remote',
            )

        logger.warning("Remote scorer failed for %r (%s), falling back to heuristic",
                       signal.title, outcome.error)
        return self._heuristic_result(signal)

    def resolve_and_persist(self, product_id: str) -> ScoreResult:
        product = self.store.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        result = self.resolve(ProductSignal.from_product(product))

        # The product may have been deleted between the read and the write.
        if self.store.update_product(product_id, result.to_fields()) is None:
            raise ProductNotFoundError(product_id)

        logger.info("Eco score updated: %s = %d%% (%s)",
                    product.get('title') or product_id, score_percentage(result.eco_score), result.source)
        return result

    # ========== Batch ==========

    def resolve_all_and_persist(self) -> BatchReport:
        """Rescore every product sequentially; per-product failures are counted, not raised."""
        product_ids = self.store.list_ids()
        logger.info("Updating eco scores for %d products...", len(product_ids))

        report = BatchReport()
        for product_id in product_ids:
            try:
                self.resolve_and_persist(product_id)
            except Exception:
                logger.exception("Eco score update failed for product %s", product_id)
                report.errors += 1
            else:
                report.updated += 1

        logger.info("Eco score update finished: %d updated, %d errors", report.updated, report.errors)
        return report

    # ========== Stats ==========

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Overview, score distribution and products enriched in the last 24h."""
        now = now or datetime.now(timezone.utc)
        products = self.store.list_products()
        scored = [p for p in products if has_eco_score(p)]

        average = sum(eco_score_of(p) for p in scored) / len(scored) if scored else 0.0

        counts: Dict[str, int] = {label: 0 for _, label in SCORE_BANDS}
        for p in scored:
            counts[score_band(eco_score_of(p))] += 1
        distribution = [
            {'score_range': label, 'count': counts[label]}
            for _, label in SCORE_BANDS
            if counts[label]
        ]

        cutoff = now - timedelta(hours=24)
        recent: List[Dict[str, Any]] = [
            p for p in products
            if sorting.get_enriched_at(p) >= cutoff
        ]
        recent.sort(key=sorting.get_enriched_at, reverse=True)

        return {
            'overview': {
                'total_products': len(products),
                'average_score': average,
                'average_percentage': score_percentage(average),
            },
            'distribution': distribution,
            'recent_updates': [
                {
                    'id': str(p.get('_id')),
                    'title': p.get('title'),
                    'eco_score': p.get('eco_score'),
                    'enriched_at': p.get('enriched_at'),
                    'eco_score_percentage': score_percentage(p.get('eco_score')),
                }
                for p in recent[:10]
            ],
        }
