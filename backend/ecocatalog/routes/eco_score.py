from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from ecocatalog import current_services
from ecocatalog.errors import ProductNotFoundError
from ecocatalog.models.product import score_percentage
from ecocatalog.schemas import ScoreRequest
from ecocatalog.services.eco_score import ProductSignal

eco_score_bp = Blueprint('eco_score', __name__)

SAMPLE_PRODUCT = ProductSignal(
    title='Savon Bio Artisanal',
    description=('Savon 100% naturel certifié bio, fabriqué artisanalement en France '
                 'avec des ingrédients biologiques. Zéro déchet, emballage recyclable.'),
    brand='Savonnerie Locale',
    category='hygiène',
    tags=('bio', 'naturel', 'artisanal', 'zéro déchet'),
)


def _preview(signal: ProductSignal):
    eco_scores = current_services().eco_scores
    eco_score = eco_scores.calculate(signal)
    return {
        'eco_score': eco_score,
        'eco_score_percentage': score_percentage(eco_score),
        'breakdown': eco_scores.breakdown(signal).to_dict(),
        'product_preview': signal.to_dict(),
    }


@eco_score_bp.route('/update-all', methods=['POST'])
def update_all_scores():
    """Recalcul séquentiel de tous les produits"""
    report = current_services().eco_scores.resolve_all_and_persist()
    return jsonify({
        'success': True,
        'data': {'stats': report.to_dict()},
        'message': f'{report.updated} produits mis à jour, {report.errors} erreurs'
    })


@eco_score_bp.route('/update/<product_id>', methods=['POST'])
def update_product_score(product_id):
    try:
        result = current_services().eco_scores.resolve_and_persist(product_id)
    except ProductNotFoundError:
        return jsonify({
            'success': False,
            'error': 'NOT_FOUND',
            'message': 'Produit non trouvé'
        }), 404

    return jsonify({
        'success': True,
        'data': {
            'product_id': product_id,
            **result.to_dict(),
            'eco_score_percentage': score_percentage(result.eco_score),
        },
        'message': 'Eco score mis à jour'
    })


@eco_score_bp.route('/calculate', methods=['POST'])
def calculate_score():
    """Aperçu du score heuristique, sans persistance

    Body: {title, description, brand?, category?, tags?}
    """
    try:
        payload = ScoreRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({
            'success': False,
            'error': 'VALIDATION_ERROR',
            'message': 'Titre et description requis',
            'required_fields': ['title', 'description'],
        }), 400

    signal = ProductSignal(
        title=payload.title,
        description=payload.description,
        brand=payload.brand,
        category=payload.category,
        tags=tuple(payload.tags),
    )
    return jsonify({
        'success': True,
        'data': _preview(signal),
        'message': 'Eco score calculé'
    })


@eco_score_bp.route('/stats', methods=['GET'])
def get_score_stats():
    stats = current_services().eco_scores.get_stats()
    return jsonify({
        'success': True,
        'data': stats,
        'message': 'Statistiques eco score'
    })


@eco_score_bp.route('/test', methods=['GET'])
def test_score():
    """Score d'un produit exemple, pour vérifier la configuration"""
    return jsonify({
        'success': True,
        'data': _preview(SAMPLE_PRODUCT),
        'message': 'Test eco score'
    })
