"""JSON catalog store and MongoDB store error mapping."""

import json
import os
from unittest import mock

import pytest
from pymongo.errors import DuplicateKeyError, PyMongoError

from conftest import make_product
from ecocatalog.errors import DuplicateProductError, PersistenceError
from ecocatalog.services.product_store import JsonProductStore, MongoProductStore


class TestJsonProductStore:

    def test_insert_and_reload(self, tmp_path):
        path = str(tmp_path / 'catalog.json')
        JsonProductStore(path).insert_product(make_product('p1', title='Gourde'))

        reloaded = JsonProductStore(path)
        assert reloaded.find_by_id('p1')['title'] == 'Gourde'
        assert reloaded.find_by_slug('produit-p1')['_id'] == 'p1'
        assert reloaded.list_ids() == ['p1']

    def test_file_layout(self, tmp_path):
        path = tmp_path / 'catalog.json'
        JsonProductStore(str(path)).insert_product(make_product('p1'))
        data = json.loads(path.read_text(encoding='utf-8'))
        assert set(data) == {'products', 'partners', 'partner_links'}

    def test_missing_file_is_empty_catalog(self, tmp_path):
        store = JsonProductStore(str(tmp_path / 'nested' / 'catalog.json'))
        assert store.list_products() == []
        store.insert_product(make_product('p1'))
        assert os.path.exists(tmp_path / 'nested' / 'catalog.json')

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / 'catalog.json'
        path.write_text('{oops', encoding='utf-8')
        with pytest.raises(PersistenceError):
            JsonProductStore(str(path))

    def test_duplicate_id_and_slug(self, store):
        store.insert_product(make_product('p1'))
        with pytest.raises(DuplicateProductError):
            store.insert_product(make_product('p1', slug='other'))
        with pytest.raises(DuplicateProductError):
            store.insert_product(make_product('p2', slug='produit-p1'))

    def test_partial_update(self, store):
        store.insert_product(make_product('p1', brand='Acme'))
        updated = store.update_product('p1', {'eco_score': 0.7})
        assert updated['eco_score'] == 0.7
        assert updated['brand'] == 'Acme'

    def test_update_missing_returns_none(self, store):
        assert store.update_product('nope', {'eco_score': 0.7}) is None

    def test_update_slug_collision(self, store):
        store.insert_product(make_product('p1'))
        store.insert_product(make_product('p2'))
        with pytest.raises(DuplicateProductError):
            store.update_product('p2', {'slug': 'produit-p1'})

    def test_returned_documents_are_copies(self, store):
        store.insert_product(make_product('p1', tags=['bio']))
        found = store.find_by_id('p1')
        found['tags'].append('mutated')
        assert store.find_by_id('p1')['tags'] == ['bio']

    def test_write_failure_rolls_back(self, store):
        store.insert_product(make_product('p1', brand='Acme'))
        with mock.patch('ecocatalog.services.product_store.os.replace', side_effect=OSError('disk full')):
            with pytest.raises(PersistenceError):
                store.update_product('p1', {'brand': 'Other'})
        assert store.find_by_id('p1')['brand'] == 'Acme'

    def test_delete(self, store):
        store.insert_product(make_product('p1'))
        assert store.delete_product('p1') is True
        assert store.delete_product('p1') is False
        assert store.find_by_id('p1') is None

    def test_delete_failure_keeps_position(self, store):
        for product_id in ('p1', 'p2', 'p3'):
            store.insert_product(make_product(product_id))
        with mock.patch('ecocatalog.services.product_store.os.replace', side_effect=OSError('disk full')):
            with pytest.raises(PersistenceError):
                store.delete_product('p2')
        assert store.list_ids() == ['p1', 'p2', 'p3']

    def test_links_and_clicks(self, store):
        store.insert_partner({'_id': 'pa1', 'name': 'Boutique'})
        store.insert_link({'_id': 'l1', 'product_id': 'p1', 'partner_id': 'pa1',
                           'url': 'https://x.example.com', 'clicks': 0})
        store.insert_link({'_id': 'l2', 'product_id': 'p2', 'partner_id': 'pa1',
                           'url': 'https://y.example.com', 'clicks': 0})

        assert [link['_id'] for link in store.list_links(product_id='p1')] == ['l1']
        assert len(store.list_links(partner_id='pa1')) == 2

        store.increment_clicks('l1')
        assert store.increment_clicks('l1')['clicks'] == 2
        assert store.increment_clicks('missing') is None

        assert store.delete_links_for_product('p1') == 1
        assert store.find_link('l1') is None


class TestMongoProductStore:

    def _store(self):
        db = {name: mock.MagicMock() for name in ('products', 'partners', 'partner_links')}
        return MongoProductStore(db), mock.Mock(**db)

    def test_update_uses_set(self):
        store, db = self._store()
        db.products.find_one_and_update.return_value = {'_id': 'p1', 'eco_score': 0.6}
        assert store.update_product('p1', {'eco_score': 0.6})['eco_score'] == 0.6
        args, _ = db.products.find_one_and_update.call_args
        assert args[0] == {'_id': 'p1'}
        assert args[1] == {'$set': {'eco_score': 0.6}}

    def test_update_missing_returns_none(self):
        store, db = self._store()
        db.products.find_one_and_update.return_value = None
        assert store.update_product('p1', {'eco_score': 0.6}) is None

    def test_duplicate_key_maps_to_duplicate_error(self):
        store, db = self._store()
        db.products.insert_one.side_effect = DuplicateKeyError('E11000')
        with pytest.raises(DuplicateProductError):
            store.insert_product(make_product('p1'))

    def test_driver_error_maps_to_persistence_error(self):
        store, db = self._store()
        db.products.find_one_and_update.side_effect = PyMongoError('connection reset')
        with pytest.raises(PersistenceError):
            store.update_product('p1', {'eco_score': 0.6})

    def test_list_ids(self):
        store, db = self._store()
        db.products.find.return_value = [{'_id': 'a'}, {'_id': 'b'}]
        assert store.list_ids() == ['a', 'b']
