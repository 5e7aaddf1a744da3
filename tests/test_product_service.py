"""Catalog service: create / update / delete, search and stats."""

import re

import pytest
from pydantic import ValidationError

from conftest import FakeRemoteScorer, make_product
from ecocatalog.errors import DuplicateProductError, ProductNotFoundError
from ecocatalog.models.product import build_slug, confidence_color, new_product_id, slugify
from ecocatalog.services.eco_score_service import EcoScoreService
from ecocatalog.services.product_service import ProductService
from ecocatalog.services.remote_scorer import RemoteScoreOutcome


@pytest.fixture
def service(store):
    return ProductService(store, EcoScoreService(store))


class TestHelpers:

    def test_slugify_folds_accents(self):
        assert slugify('Savon à l\'Huile d\'Olive & Bio!') == 'savon-a-l-huile-d-olive-bio'

    def test_build_slug(self):
        assert build_slug('Gourde Inox', now_ms=1700000000000) == 'gourde-inox-1700000000000'
        assert build_slug('???', now_ms=1) == 'produit-1'

    def test_new_product_id_format(self):
        assert re.fullmatch(r'prod_1700000000000_[0-9a-z]{7}', new_product_id(1700000000000))

    @pytest.mark.parametrize('pct,color', [(95, 'green'), (80, 'green'), (60, 'yellow'),
                                           (40, 'orange'), (39, 'red')])
    def test_confidence_color(self, pct, color):
        assert confidence_color(pct) == color


class TestCreateProduct:

    def test_defaults_and_heuristic_score(self, service, store):
        product = service.create_product({'title': 'Sac plastique', 'description': 'en nylon'})

        assert product['id'].startswith('prod_')
        assert product['slug'].startswith('sac-plastique-')
        assert product['category'] == 'générique'
        assert product['zones_dispo'] == ['FR']
        assert product['verified_status'] == 'manual_review'
        assert product['eco_score'] == pytest.approx(0.4)
        assert product['confidence_pct'] == 40
        assert product['confidence_color'] == 'orange'
        assert product['partnerLinks'] == []
        assert store.find_by_id(product['id']) is not None

    def test_remote_score_used_on_create(self, store):
        scorer = FakeRemoteScorer([RemoteScoreOutcome.success(0.77, 0.88)])
        service = ProductService(store, EcoScoreService(store, scorer))
        product = service.create_product({'title': 'Gourde', 'description': 'inox', 'tags': ['zéro déchet']})
        assert product['eco_score'] == 0.77
        assert product['confidence_color'] == 'green'
        assert scorer.calls[0].tags == ('zéro déchet',)

    def test_default_title(self, service):
        assert service.create_product({})['title'] == 'Produit sans titre'

    def test_explicit_id_and_slug(self, service):
        product = service.create_product({'id': 'p-42', 'slug': 'mon-produit', 'title': 'X'})
        assert product['id'] == 'p-42'
        assert product['slug'] == 'mon-produit'

    def test_duplicate_slug(self, service):
        service.create_product({'slug': 'mon-produit'})
        with pytest.raises(DuplicateProductError):
            service.create_product({'slug': 'mon-produit'})

    def test_invalid_payload(self, service):
        with pytest.raises(ValidationError):
            service.create_product({'tags': [str(i) for i in range(11)]})
        with pytest.raises(ValidationError):
            service.create_product({'affiliate_url': 'ftp://nope'})
        with pytest.raises(ValidationError):
            service.create_product({'zones_dispo': []})


class TestUpdateAndDelete:

    def test_partial_update(self, service, store):
        store.insert_product(make_product('p1', brand='Acme', eco_score=0.5))
        updated = service.update_product('p1', {'brand': 'Other', 'verified_status': 'verified'})
        assert updated['brand'] == 'Other'
        assert updated['verified_status'] == 'verified'
        assert updated['eco_score'] == 0.5

    def test_text_update_does_not_rescore(self, service, store):
        store.insert_product(make_product('p1', eco_score=0.5))
        updated = service.update_product('p1', {'description': 'plastique nylon pvc'})
        assert updated['eco_score'] == 0.5

    def test_update_rejects_out_of_range_score(self, service, store):
        store.insert_product(make_product('p1'))
        with pytest.raises(ValidationError):
            service.update_product('p1', {'eco_score': 1.5})

    @pytest.mark.parametrize('field', ['title', 'description', 'category'])
    def test_update_rejects_null_required_field(self, service, store, field):
        store.insert_product(make_product('p1'))
        with pytest.raises(ValidationError):
            service.update_product('p1', {field: None})
        assert store.find_by_id('p1')[field] is not None

    def test_update_accepts_null_optional_field(self, service, store):
        store.insert_product(make_product('p1', brand='Acme'))
        assert service.update_product('p1', {'brand': None})['brand'] is None

    def test_update_missing(self, service):
        with pytest.raises(ProductNotFoundError):
            service.update_product('nope', {'brand': 'x'})

    def test_delete_removes_links(self, service, store):
        store.insert_product(make_product('p1'))
        store.insert_link({'_id': 'l1', 'product_id': 'p1', 'partner_id': 'x', 'url': 'https://a.example.com'})
        service.delete_product('p1')
        assert store.find_by_id('p1') is None
        assert store.list_links(product_id='p1') == []

    def test_delete_missing(self, service):
        with pytest.raises(ProductNotFoundError):
            service.delete_product('nope')


class TestQueries:

    @pytest.fixture(autouse=True)
    def catalog(self, store):
        store.insert_product(make_product('a', title='Savon bio', category='hygiène', eco_score=0.7,
                                          verified_status='verified', created_at='2026-01-01T00:00:00Z'))
        store.insert_product(make_product('b', title='Shampoing', brand='Savonnerie', category='hygiène',
                                          eco_score=0.9, created_at='2026-01-03T00:00:00Z'))
        store.insert_product(make_product('c', title='Gourde', category='cuisine', eco_score=0.4,
                                          verified_status='verified', created_at='2026-01-02T00:00:00Z'))
        store.insert_product(make_product('d', title='Tote bag', category='mode',
                                          created_at='2026-01-04T00:00:00Z'))

    def test_list_newest_first(self, service):
        assert [p['id'] for p in service.list_products()] == ['d', 'b', 'c', 'a']

    def test_get_by_slug_or_id(self, service):
        assert service.get_product('produit-a')['id'] == 'a'
        assert service.get_product('b')['id'] == 'b'
        with pytest.raises(ProductNotFoundError):
            service.get_product('missing')

    def test_search_default_order(self, service):
        result = service.search_products()
        # verified first, then eco_score desc
        assert [p['id'] for p in result['products']] == ['a', 'c', 'b', 'd']
        assert result['pagination'] == {'page': 1, 'limit': 20, 'total': 4, 'pages': 1}

    def test_search_keyword_matches_brand(self, service):
        result = service.search_products(keyword='SAVON')
        assert {p['id'] for p in result['products']} == {'a', 'b'}

    def test_search_filters(self, service):
        assert [p['id'] for p in service.search_products(category='hygiène')['products']] == ['a', 'b']
        assert [p['id'] for p in service.search_products(verified=True)['products']] == ['a', 'c']
        assert [p['id'] for p in service.search_products(eco_min='0.65')['products']] == ['a', 'b']

    def test_search_pagination_guard_rails(self, service):
        result = service.search_products(page='2', limit='3')
        assert [p['id'] for p in result['products']] == ['d']
        assert result['pagination']['pages'] == 2

        result = service.search_products(page='-4', limit='500')
        assert result['pagination']['page'] == 1
        assert result['pagination']['limit'] == 50

    def test_stats(self, service):
        stats = service.get_product_stats()
        assert stats['total'] == 4
        assert stats['verified'] == 2
        assert stats['verification_rate'] == 50
        assert stats['average_eco_score'] == pytest.approx((0.7 + 0.9 + 0.4) / 3)
        assert stats['top_categories'][0] == {'category': 'hygiène', 'count': 2}
