"""
Keyword signal tables for the eco-score heuristic.

Each table is a set of weighted keyword tiers plus a ceiling on the table's
total contribution. Matching is plain substring containment on lowercased
text, so accented variants must be listed explicitly.

The built-in tables can be replaced at startup with a JSON file of the same
shape (``ECO_SIGNALS_PATH``):

    {
      "materials": {
        "ceiling": 0.3,
        "tiers": [{"name": "excellent", "weight": 0.05, "keywords": ["bio", ...]}, ...],
        "bonuses": []
      },
      "certifications": {..., "bonuses": [[2, 0.02], [3, 0.02]]},
      ...
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ecocatalog.errors import SignalTableError

TABLE_NAMES = ('materials', 'certifications', 'origin', 'durability', 'penalties')


@dataclass(frozen=True)
class SignalTier:
    name: str
    weight: float
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class SignalTable:
    """Weighted keyword tiers capped at ``ceiling``.

    ``bonuses`` holds (min_matches, bonus) pairs; every pair whose threshold is
    reached adds its bonus, so they stack.
    """
    name: str
    ceiling: float
    tiers: Tuple[SignalTier, ...]
    bonuses: Tuple[Tuple[int, float], ...] = ()


@dataclass(frozen=True)
class SignalTables:
    materials: SignalTable
    certifications: SignalTable
    origin: SignalTable
    durability: SignalTable
    penalties: SignalTable


MATERIALS = SignalTable(
    name='materials',
    ceiling=0.30,
    tiers=(
        SignalTier('excellent', 0.05, (
            'bio', 'biologique', 'organic', 'bambou', 'chanvre', 'lin',
            'coton bio', 'recyclé', 'upcyclé', 'compostable', 'biodégradable',
        )),
        SignalTier('good', 0.03, (
            'naturel', 'végétal', 'bois', 'liège', 'fibres naturelles',
            'sans plastique', 'zéro déchet', 'réutilisable',
        )),
        SignalTier('ok', 0.01, (
            'durable', 'écologique', 'responsable', 'éthique',
            'local', 'artisanal', 'fait main',
        )),
    ),
)

CERTIFICATIONS = SignalTable(
    name='certifications',
    ceiling=0.20,
    tiers=(
        SignalTier('certified', 0.04, (
            'ecocert', 'ab', 'cosmebio', 'natrue', 'bdih',
            'usda organic', 'demeter', 'fair trade', 'commerce équitable',
            'cradle to cradle', 'fsc', 'pefc', 'eu ecolabel',
            'soil association', 'cosmos', 'icea',
        )),
    ),
    bonuses=((2, 0.02), (3, 0.02)),
)

ORIGIN = SignalTable(
    name='origin',
    ceiling=0.15,
    tiers=(
        SignalTier('domestic', 0.05, (
            'france', 'français', 'made in france', 'fabrication française',
            'artisan français', 'produit français',
        )),
        SignalTier('regional', 0.03, (
            'europe', 'européen', 'local', 'région', 'artisanal',
            'circuit court', 'proximité',
        )),
        SignalTier('transport', 0.02, (
            'transport vert', 'livraison écologique', 'carbone neutre',
            'compensé carbone',
        )),
    ),
)

DURABILITY = SignalTable(
    name='durability',
    ceiling=0.10,
    tiers=(
        SignalTier('durability', 0.015, (
            'durable', 'longue durée', 'résistant', 'qualité',
            'garantie', 'réparable', 'modulaire', 'intemporel',
            'robuste', 'solide', 'longue vie',
        )),
    ),
)

PENALTIES = SignalTable(
    name='penalties',
    ceiling=0.25,
    tiers=(
        SignalTier('bad_materials', 0.05, (
            'plastique', 'polyester', 'acrylique', 'nylon',
            'pvc', 'polystyrène', 'pétrochimique',
        )),
        SignalTier('bad_practices', 0.03, (
            'jetable', 'usage unique', 'suremballé',
            'non recyclable', 'toxique', 'chimique',
        )),
        SignalTier('distant_origin', 0.02, (
            'chine', 'bangladesh', 'vietnam', 'importé',
            'transport longue distance',
        )),
    ),
)

DEFAULT_SIGNAL_TABLES = SignalTables(
    materials=MATERIALS,
    certifications=CERTIFICATIONS,
    origin=ORIGIN,
    durability=DURABILITY,
    penalties=PENALTIES,
)


def _parse_number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SignalTableError(f"{where}: expected a number, got {value!r}")
    if value < 0:
        raise SignalTableError(f"{where}: must not be negative")
    return float(value)


def _parse_table(name: str, raw: Any) -> SignalTable:
    if not isinstance(raw, dict):
        raise SignalTableError(f"{name}: expected an object")

    ceiling = _parse_number(raw.get('ceiling'), f"{name}.ceiling")

    raw_tiers = raw.get('tiers')
    if not isinstance(raw_tiers, list) or not raw_tiers:
        raise SignalTableError(f"{name}.tiers: expected a non-empty list")

    tiers = []
    for idx, tier in enumerate(raw_tiers):
        where = f"{name}.tiers[{idx}]"
        if not isinstance(tier, dict):
            raise SignalTableError(f"{where}: expected an object")
        keywords = tier.get('keywords')
        if not isinstance(keywords, list) or not all(isinstance(k, str) and k.strip() for k in keywords):
            raise SignalTableError(f"{where}.keywords: expected a list of non-empty strings")
        tiers.append(SignalTier(
            name=str(tier.get('name') or f"tier{idx}"),
            weight=_parse_number(tier.get('weight'), f"{where}.weight"),
            keywords=tuple(k.lower() for k in keywords),
        ))

    bonuses = []
    for idx, pair in enumerate(raw.get('bonuses') or []):
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise SignalTableError(f"{name}.bonuses[{idx}]: expected [min_matches, bonus]")
        threshold = pair[0]
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
            raise SignalTableError(f"{name}.bonuses[{idx}]: min_matches must be a positive integer")
        bonuses.append((threshold, _parse_number(pair[1], f"{name}.bonuses[{idx}]")))

    return SignalTable(name=name, ceiling=ceiling, tiers=tuple(tiers), bonuses=tuple(bonuses))


def parse_signal_tables(data: Dict[str, Any]) -> SignalTables:
    """Build immutable tables from a decoded JSON document."""
    if not isinstance(data, dict):
        raise SignalTableError("signal tables: expected an object at the top level")
    missing = [name for name in TABLE_NAMES if name not in data]
    if missing:
        raise SignalTableError(f"signal tables: missing {', '.join(missing)}")
    return SignalTables(**{name: _parse_table(name, data[name]) for name in TABLE_NAMES})


def load_signal_tables(path: str | None = None) -> SignalTables:
    """Load tables from ``path``, or return the built-in defaults when unset."""
    if not path:
        return DEFAULT_SIGNAL_TABLES
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SignalTableError(f"cannot read signal tables from {path}: {e}") from e
    return parse_signal_tables(data)
