"""
Eco-score heuristic - keyword analysis of a product's text.

score = 0.5 (neutral) + materials + certifications + origin + durability - penalties,
clamped to [0, 1]. Each analyzer caps its own contribution before aggregation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .eco_signals import DEFAULT_SIGNAL_TABLES, SignalTable, SignalTables

NEUTRAL_SCORE = 0.5


@dataclass(frozen=True)
class ProductSignal:
    """Text fields of a product used for scoring."""
    title: str = ''
    description: str = ''
    brand: Optional[str] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_product(cls, product: Mapping[str, Any]) -> 'ProductSignal':
        """Project a stored product (or request payload) onto its scoring fields."""
        tags = product.get('tags')
        if not isinstance(tags, (list, tuple)):
            tags = []
        return cls(
            title=str(product.get('title') or ''),
            description=str(product.get('description') or ''),
            brand=product.get('brand') or None,
            category=product.get('category') or None,
            tags=tuple(str(tag) for tag in tags if tag is not None),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['tags'] = list(self.tags)
        return data


@dataclass(frozen=True)
class ScoreBreakdown:
    materials: float
    certifications: float
    origin: float
    durability: float
    penalties: float
    eco_score: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def normalize_text(signal: ProductSignal) -> str:
    """Lowercase concatenation of title, description, brand and tags."""
    return f"{signal.title} {signal.description} {signal.brand or ''} {' '.join(signal.tags)}".lower()


def score_table(text: str, table: SignalTable) -> float:
    """Sum the weights of every keyword found in ``text``, add bonuses, cap at the ceiling."""
    score = 0.0
    matched = 0
    for tier in table.tiers:
        for keyword in tier.keywords:
            if keyword in text:
                score += tier.weight
                matched += 1

    for min_matches, bonus in table.bonuses:
        if matched >= min_matches:
            score += bonus

    return min(table.ceiling, score)


def analyze_materials(text: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    return score_table(text, tables.materials)


def analyze_certifications(text: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    return score_table(text, tables.certifications)


def analyze_origin(text: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    return score_table(text, tables.origin)


def analyze_durability(text: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    return score_table(text, tables.durability)


def analyze_penalties(text: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    """Penalty total (positive number, subtracted by the aggregator)."""
    return score_table(text, tables.penalties)


def compute_breakdown(signal: ProductSignal, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> ScoreBreakdown:
    text = normalize_text(signal)

    materials = analyze_materials(text, tables)
    certifications = analyze_certifications(text, tables)
    origin = analyze_origin(text, tables)
    durability = analyze_durability(text, tables)
    penalties = analyze_penalties(text, tables)

    score = NEUTRAL_SCORE + materials + certifications + origin + durability - penalties
    return ScoreBreakdown(
        materials=materials,
        certifications=certifications,
        origin=origin,
        durability=durability,
        penalties=penalties,
        eco_score=max(0.0, min(1.0, score)),
    )


def compute_eco_score(signal: ProductSignal, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> float:
    """Heuristic eco-score in [0, 1]; 0.5 when the text carries no signal."""
    return compute_breakdown(signal, tables).eco_score
