"""
Integration tests for sale returns and shop settings.
"""

import pytest

from app.models import Sale
from app.services.sales_service import create_sale


@pytest.fixture
def sale(store, item_a):
    """Sale of 1 x A (total 100.00)."""
    return create_sale({'items': [{'item_id': item_a.id, 'quantity': 1}], 'notes': 'Walk-in'}, store)['sale']


class TestReturns:
    """Tests for /api/returns."""

    def test_create_return(self, client, session, sale, stock_of, item_a):
        item_id = item_a.id
        response = client.post('/api/returns', json={
            'sale_id': sale['id'],
            'reason': 'Damaged',
            'refund_amount': 40,
            'items': [{'item_id': item_id, 'quantity': 1}],
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['refundAmount'] == 40.0
        assert data['return']['items'] == [{'item_id': item_id, 'quantity': 1}]
        assert data['return']['invoice'] == sale['invoice']

        session.expire_all()
        assert session.get(Sale, sale['id']).notes == 'Walk-in\nReturn processed: Damaged'
        # Returns do not restock
        assert stock_of(item_id) == 9

    def test_refund_defaults_to_sale_total(self, client, sale):
        response = client.post('/api/returns', json={'sale_id': sale['id'], 'reason': 'Changed mind'})
        assert response.get_json()['refundAmount'] == 100.0

    def test_refund_cannot_exceed_total(self, client, sale):
        response = client.post('/api/returns', json={'sale_id': sale['id'], 'reason': 'X', 'refund_amount': 100.01})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Refund amount cannot exceed the sale total'

    def test_required_fields(self, client):
        response = client.post('/api/returns', json={'reason': 'X'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Sale ID and reason are required'

    def test_unknown_sale(self, client):
        response = client.post('/api/returns', json={'sale_id': 77, 'reason': 'X'})
        assert response.status_code == 404

    def test_list_update_delete(self, client, sale):
        created = client.post('/api/returns', json={'sale_id': sale['id'], 'reason': 'Damaged'})
        return_id = created.get_json()['returnId']

        assert len(client.get('/api/returns').get_json()['returns']) == 1
        assert len(client.get(f"/api/returns/sale/{sale['id']}").get_json()['returns']) == 1

        updated = client.put(f'/api/returns/{return_id}', json={'refund_amount': 10, 'reason': 'Partly damaged'})
        assert updated.status_code == 200
        assert updated.get_json()['return']['refund_amount'] == 10.0
        assert updated.get_json()['return']['reason'] == 'Partly damaged'

        assert client.delete(f'/api/returns/{return_id}').status_code == 200
        assert client.get(f'/api/returns/{return_id}').status_code == 404


class TestSettings:
    """Tests for /api/settings."""

    def test_defaults_before_first_save(self, client):
        response = client.get('/api/settings')

        assert response.status_code == 200
        assert response.get_json()['shopName'] == 'My POS Shop'

    def test_save_and_update(self, client):
        first = client.put('/api/settings', json={'shopName': 'Lanka Mobiles', 'shopPhone': '0112', 'taxRate': 8})
        assert first.status_code == 200
        assert first.get_json()['settings']['taxRate'] == 8.0

        second = client.put('/api/settings', json={'shopName': 'Lanka Mobiles', 'shopPhone': '0113', 'shopCity': 'Kandy'})
        settings = second.get_json()['settings']
        assert settings['id'] == first.get_json()['settings']['id']
        assert settings['shopPhone'] == '0113'
        assert settings['shopCity'] == 'Kandy'
        assert settings['taxRate'] == 8.0

        assert client.get('/api/settings').get_json()['shopCity'] == 'Kandy'

    @pytest.mark.parametrize('body,message', [
        ({'shopName': 'A'}, 'Shop name and phone number are required'),
        ({'shopName': 'A', 'shopPhone': '1', 'taxRate': 101}, 'Tax rate must be between 0 and 100'),
        ({'shopName': 'A', 'shopPhone': '1', 'warrantyPeriod': -1}, 'Warranty period cannot be negative'),
    ])
    def test_validation(self, client, body, message):
        response = client.put('/api/settings', json=body)

        assert response.status_code == 400
        assert response.get_json()['error'] == message
