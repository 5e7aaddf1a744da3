from flask import Blueprint, jsonify, redirect, request

from ecocatalog import current_services

tracking_bp = Blueprint('tracking', __name__)


@tracking_bp.route('/partners', methods=['GET'])
def list_partners():
    partners = current_services().tracking.list_partners()
    return jsonify({
        'success': True,
        'data': partners,
        'message': 'Partenaires récupérés'
    })


@tracking_bp.route('/partners', methods=['POST'])
def create_partner():
    partner = current_services().tracking.create_partner(request.get_json(silent=True) or {})
    return jsonify({
        'success': True,
        'data': partner,
        'message': 'Partenaire créé'
    }), 201


@tracking_bp.route('/partner-links', methods=['GET'])
def list_partner_links():
    """
    Liens partenaires

    Query Parameters:
    - product_id / partner_id: filtres optionnels
    """
    links = current_services().tracking.list_links(
        product_id=request.args.get('product_id') or None,
        partner_id=request.args.get('partner_id') or None,
    )
    return jsonify({
        'success': True,
        'data': links,
        'message': 'Liens récupérés'
    })


@tracking_bp.route('/partner-links', methods=['POST'])
def upsert_partner_link():
    """Crée le lien produit/partenaire, ou met à jour son URL s'il existe"""
    link, created = current_services().tracking.upsert_link(request.get_json(silent=True) or {})
    return jsonify({
        'success': True,
        'data': link,
        'message': 'Lien créé' if created else 'Lien mis à jour'
    }), 201 if created else 200


@tracking_bp.route('/track/<link_id>', methods=['GET'])
def track_click(link_id):
    url = current_services().tracking.track_click(link_id)
    return redirect(url, code=302)
