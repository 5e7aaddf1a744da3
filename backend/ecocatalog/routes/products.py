from flask import Blueprint, jsonify, request

from ecocatalog import current_services
from ecocatalog.services.env_utils import parse_bool

products_bp = Blueprint('products', __name__)


@products_bp.route('', methods=['GET'])
def list_products():
    """Tous les produits, les plus récents d'abord"""
    products = current_services().products.list_products()
    return jsonify({
        'success': True,
        'data': products,
        'count': len(products),
        'message': 'Produits récupérés'
    })


@products_bp.route('/search', methods=['GET'])
def search_products():
    """
    Recherche de produits

    Query Parameters:
    - q: mot-clé (titre, description, marque)
    - category: catégorie exacte
    - verified: true pour les produits vérifiés uniquement
    - eco_min: eco_score minimum
    - page / limit: pagination (limit <= 50)
    """
    results = current_services().products.search_products(
        keyword=request.args.get('q', '').strip(),
        category=request.args.get('category', ''),
        verified=parse_bool(request.args.get('verified')),
        eco_min=request.args.get('eco_min'),
        page=request.args.get('page', 1),
        limit=request.args.get('limit', 20),
    )
    return jsonify({
        'success': True,
        'data': results['products'],
        'pagination': results['pagination'],
        'filters': results['filters'],
        'message': 'Recherche effectuée'
    })


@products_bp.route('/stats', methods=['GET'])
def get_product_stats():
    stats = current_services().products.get_product_stats()
    return jsonify({
        'success': True,
        'data': stats,
        'message': 'Statistiques produits'
    })


@products_bp.route('', methods=['POST'])
def create_product():
    """Création d'un produit, score initial calculé à la volée"""
    product = current_services().products.create_product(request.get_json(silent=True) or {})
    return jsonify({
        'success': True,
        'data': product,
        'message': 'Produit créé'
    }), 201


@products_bp.route('/<product_id>', methods=['PUT'])
def update_product(product_id):
    product = current_services().products.update_product(product_id, request.get_json(silent=True) or {})
    return jsonify({
        'success': True,
        'data': product,
        'message': 'Produit mis à jour'
    })


@products_bp.route('/<product_id>', methods=['DELETE'])
def delete_product(product_id):
    current_services().products.delete_product(product_id)
    return jsonify({
        'success': True,
        'data': None,
        'message': 'Produit supprimé'
    })


@products_bp.route('/<product_id>/similar', methods=['GET'])
def get_similar_products(product_id):
    """Produits similaires - index de recherche puis catalogue

    Query Parameters:
    - limit: nombre de résultats, 6 par défaut
    """
    limit = request.args.get('limit', 6, type=int)
    limit = max(1, min(limit, 20))
    similar = current_services().similar.find_similar(product_id, limit=limit)
    return jsonify({
        'success': True,
        'data': similar,
        'count': len(similar),
        'message': 'Produits similaires'
    })


@products_bp.route('/<product_ref>', methods=['GET'])
def get_product_detail(product_ref):
    """Détail produit par slug (ou id)"""
    product = current_services().products.get_product(product_ref)
    return jsonify({
        'success': True,
        'data': product,
        'message': 'Produit récupéré'
    })
