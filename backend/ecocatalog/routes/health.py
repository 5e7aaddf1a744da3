from flask import Blueprint, jsonify

health_bp = Blueprint('health', __name__)

ENDPOINTS = {
    'products': '/api/products',
    'search': '/api/products/search',
    'product_stats': '/api/products/stats',
    'similar': '/api/products/<id>/similar',
    'eco_score': '/api/eco-score',
    'partners': '/api/partners',
    'partner_links': '/api/partner-links',
    'tracking': '/api/track/<link_id>',
    'health': '/health',
}


@health_bp.route('/', methods=['GET'])
def index():
    return jsonify({
        'success': True,
        'data': {
            'name': 'Ecocatalog API',
            'endpoints': ENDPOINTS,
        },
        'message': 'API opérationnelle'
    })


@health_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'up'})
