"""HTTP API through the Flask test client (JSON store on tmp_path)."""

import pytest

from conftest import make_product


@pytest.fixture
def seeded(store):
    store.insert_product(make_product('p1', title='Savon bio', description='certifié ecocert',
                                      category='hygiène', verified_status='verified', eco_score=0.7))
    store.insert_product(make_product('p2', title='Sac plastique', description='nylon',
                                      category='hygiène', eco_score=0.3))
    return store


class TestHealth:

    def test_index(self, client):
        body = client.get('/').get_json()
        assert body['success'] is True
        assert body['data']['endpoints']['products'] == '/api/products'

    def test_health(self, client):
        assert client.get('/health').get_json() == {'status': 'up'}


class TestProductRoutes:

    def test_list(self, client, seeded):
        body = client.get('/api/products').get_json()
        assert body['success'] is True
        assert body['count'] == 2

    def test_search(self, client, seeded):
        body = client.get('/api/products/search?q=savon&verified=true').get_json()
        assert [p['id'] for p in body['data']] == ['p1']
        assert body['pagination']['total'] == 1
        assert body['filters']['verified'] is True

    def test_stats(self, client, seeded):
        body = client.get('/api/products/stats').get_json()
        assert body['data']['total'] == 2
        assert body['data']['verification_rate'] == 50

    def test_detail_by_slug(self, client, seeded):
        body = client.get('/api/products/produit-p1').get_json()
        assert body['data']['id'] == 'p1'
        assert body['data']['partnerLinks'] == []

    def test_detail_not_found(self, client):
        response = client.get('/api/products/missing')
        assert response.status_code == 404
        body = response.get_json()
        assert body['success'] is False
        assert body['error'] == 'NOT_FOUND'

    def test_create(self, client):
        response = client.post('/api/products', json={'title': 'Gourde inox', 'description': 'zéro déchet'})
        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['eco_score'] == pytest.approx(0.53)
        assert data['confidence_pct'] == 40

    def test_create_invalid(self, client):
        response = client.post('/api/products', json={'affiliate_url': 'not-a-url'})
        assert response.status_code == 422
        body = response.get_json()
        assert body['error'] == 'VALIDATION_ERROR'
        assert body['details'][0]['field'] == 'affiliate_url'

    def test_create_duplicate(self, client, seeded):
        response = client.post('/api/products', json={'slug': 'produit-p1'})
        assert response.status_code == 409

    def test_update_and_delete(self, client, seeded):
        response = client.put('/api/products/p2', json={'brand': 'Acme'})
        assert response.status_code == 200
        assert response.get_json()['data']['brand'] == 'Acme'

        assert client.delete('/api/products/p2').status_code == 200
        assert client.delete('/api/products/p2').status_code == 404

    def test_similar(self, client, seeded):
        body = client.get('/api/products/p1/similar').get_json()
        assert [item['id'] for item in body['data']] == ['p2']
        assert body['data'][0]['source'] == 'catalog'

    def test_similar_unknown(self, client):
        assert client.get('/api/products/nope/similar').status_code == 404


class TestEcoScoreRoutes:

    def test_update_one(self, client, seeded):
        response = client.post('/api/eco-score/update/p2')
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['eco_score'] == pytest.approx(0.4)
        assert data['confidence_pct'] == 40
        assert data['source'] == 'heuristic'
        assert seeded.find_by_id('p2')['confidence_color'] == 'orange'

    def test_update_one_missing(self, client):
        response = client.post('/api/eco-score/update/nope')
        assert response.status_code == 404
        assert response.get_json()['message'] == 'Produit non trouvé'

    def test_update_all(self, client, seeded):
        body = client.post('/api/eco-score/update-all').get_json()
        assert body['data']['stats'] == {'updated': 2, 'errors': 0, 'total': 2}

    def test_calculate(self, client):
        response = client.post('/api/eco-score/calculate', json={
            'title': 'Savon', 'description': 'ecocert demeter fsc',
        })
        data = response.get_json()['data']
        assert data['eco_score'] == pytest.approx(0.66)
        assert data['eco_score_percentage'] == 66
        assert data['breakdown']['certifications'] == pytest.approx(0.16)
        assert data['product_preview']['title'] == 'Savon'

    def test_calculate_requires_title_and_description(self, client):
        response = client.post('/api/eco-score/calculate', json={'title': 'Savon'})
        assert response.status_code == 400
        assert response.get_json()['required_fields'] == ['title', 'description']

    def test_calculate_does_not_persist(self, client, store):
        client.post('/api/eco-score/calculate', json={'title': 'Savon', 'description': 'bio'})
        assert store.list_products() == []

    def test_stats(self, client, seeded):
        body = client.get('/api/eco-score/stats').get_json()
        assert body['data']['overview']['total_products'] == 2

    def test_sample(self, client):
        data = client.get('/api/eco-score/test').get_json()['data']
        assert data['product_preview']['title'] == 'Savon Bio Artisanal'
        assert 0.5 < data['eco_score'] <= 1.0


class TestTrackingRoutes:

    def test_partner_link_flow(self, client, seeded):
        response = client.post('/api/partners', json={'name': 'Boutique', 'website': 'https://b.example.com'})
        assert response.status_code == 201
        partner_id = response.get_json()['data']['id']

        payload = {'url': 'https://b.example.com/p1', 'product_id': 'p1', 'partner_id': partner_id}
        created = client.post('/api/partner-links', json=payload)
        assert created.status_code == 201
        link_id = created.get_json()['data']['id']

        payload['url'] = 'https://b.example.com/p1?v=2'
        assert client.post('/api/partner-links', json=payload).status_code == 200

        links = client.get('/api/partner-links?product_id=p1').get_json()['data']
        assert [link['id'] for link in links] == [link_id]

        redirect = client.get(f'/api/track/{link_id}')
        assert redirect.status_code == 302
        assert redirect.headers['Location'] == 'https://b.example.com/p1?v=2'
        assert seeded.find_link(link_id)['clicks'] == 1

        detail = client.get('/api/products/p1').get_json()['data']
        assert detail['partnerLinks'][0]['partner']['name'] == 'Boutique'

    def test_link_for_unknown_partner(self, client, seeded):
        response = client.post('/api/partner-links', json={
            'url': 'https://b.example.com', 'product_id': 'p1', 'partner_id': 'nope',
        })
        assert response.status_code == 404

    def test_track_unknown(self, client):
        assert client.get('/api/track/nope').status_code == 404

    def test_partners_list(self, client):
        assert client.get('/api/partners').get_json()['data'] == []
