"""
Integration tests for existing sales: listing, payment updates, deletion
with stock restore, receipt resend and PDF invoices.
"""

import pytest

from app.exceptions import NotFoundError
from app.models import Sale, SaleLine
from app.services.sale_delete_service import delete_sale_with_restore
from app.services.sales_service import create_sale
from app.stores import SqlAlchemyStore


class NoRestoreStore(SqlAlchemyStore):
    """Store that cannot put stock back."""

    def increment_stock(self, item_id, quantity):
        return False


@pytest.fixture
def sale(store, item_a, item_b):
    """Sale of 2 x A and 1 x B (total 250.00, unpaid)."""
    result = create_sale({
        'items': [{'item_id': item_a.id, 'quantity': 2}, {'item_id': item_b.id, 'quantity': 1}],
        'customer_name': 'Kamal',
    }, store)
    return result['sale']


class TestSaleQueries:
    """Tests for sale listing and lookups."""

    def test_list_sales_with_summary(self, client, sale):
        response = client.get('/api/sales')

        assert response.status_code == 200
        sales = response.get_json()['sales']
        assert len(sales) == 1
        assert sales[0]['item_count'] == 2
        assert sales[0]['items_summary'] == 'Phone Case (x2),Screen Guard (x1)'

    def test_list_by_status(self, client, sale):
        assert len(client.get('/api/sales/status/unpaid').get_json()['sales']) == 1
        assert client.get('/api/sales/status/paid').get_json()['sales'] == []

    def test_list_by_unknown_status(self, client):
        response = client.get('/api/sales/status/refunded')

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Status must be paid, unpaid, or partial'

    def test_get_sale_with_items(self, client, sale):
        response = client.get(f"/api/sales/{sale['id']}")

        assert response.status_code == 200
        data = response.get_json()['sale']
        assert data['invoice'] == sale['invoice']
        assert len(data['items']) == 2

    def test_get_by_invoice(self, client, sale):
        response = client.get(f"/api/sales/invoice/{sale['invoice']}")
        assert response.get_json()['sale']['id'] == sale['id']

    def test_missing_sale(self, client):
        response = client.get('/api/sales/999')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Sale not found'


class TestPaymentUpdate:
    """Tests for PATCH /api/sales/<id>/payment."""

    @pytest.mark.parametrize('paid,status', [
        (0, 'unpaid'),
        (100, 'partial'),
        (250, 'paid'),
        (300, 'paid'),
    ])
    def test_status_recomputed(self, client, session, sale, paid, status):
        response = client.patch(f"/api/sales/{sale['id']}/payment", json={'paid_amount': paid})

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Payment updated successfully'
        assert data['paid_amount'] == float(paid)
        assert data['status'] == status
        session.expire_all()
        assert session.get(Sale, sale['id']).status == status

    def test_negative_payment_rejected(self, client, sale):
        response = client.patch(f"/api/sales/{sale['id']}/payment", json={'paid_amount': -1})
        assert response.status_code == 400

    def test_payment_required(self, client, sale):
        response = client.patch(f"/api/sales/{sale['id']}/payment", json={})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Valid paid_amount is required'

    def test_payment_on_missing_sale(self, client):
        response = client.patch('/api/sales/999/payment', json={'paid_amount': 10})
        assert response.status_code == 404


class TestDeleteSale:
    """Tests for sale deletion with stock restore."""

    def test_delete_restores_stock(self, client, session, sale, item_a, item_b, stock_of):
        a_id, b_id = item_a.id, item_b.id
        assert stock_of(a_id) == 8

        response = client.delete(f"/api/sales/{sale['id']}")

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Sale deleted successfully and inventory restored'
        assert {entry['item_id']: entry['quantity'] for entry in data['restored_items']} == {a_id: 2, b_id: 1}
        assert stock_of(a_id) == 10
        assert stock_of(b_id) == 3
        assert session.query(Sale).count() == 0
        assert session.query(SaleLine).count() == 0

    def test_create_then_delete_is_neutral(self, store, make_item, stock_of):
        item = make_item(quantity=7)
        item_id = item.id

        result = create_sale({'items': [{'item_id': item_id, 'quantity': 7}]}, store)
        assert stock_of(item_id) == 0

        delete_sale_with_restore(result['sale']['id'], store)
        assert stock_of(item_id) == 7

    def test_delete_missing_sale(self, client):
        response = client.delete('/api/sales/999')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Sale not found'

    def test_failed_restore_keeps_sale(self, session, sale, item_a, stock_of):
        """If stock cannot be restored the sale must not disappear."""
        with pytest.raises(NotFoundError):
            delete_sale_with_restore(sale['id'], NoRestoreStore(session))

        session.expire_all()
        assert session.get(Sale, sale['id']) is not None
        assert session.query(SaleLine).count() == 2
        assert stock_of(item_a.id) == 8


class TestReceiptResend:
    """Tests for POST /api/sales/<id>/send-whatsapp."""

    def test_resend(self, client, sale, notifier):
        response = client.post(f"/api/sales/{sale['id']}/send-whatsapp", json={'phone_number': '0771234567'})

        assert response.status_code == 200
        assert response.get_json()['message'] == 'WhatsApp invoice sent successfully'
        assert notifier.calls[0]['sale']['invoice'] == sale['invoice']
        assert len(notifier.calls[0]['sale']['items']) == 2

    def test_resend_with_real_link_builder(self, client, sale):
        response = client.post(
            f"/api/sales/{sale['id']}/send-whatsapp",
            json={'phone_number': '771234567', 'method': 'simple'}
        )

        assert response.status_code == 200
        whatsapp = response.get_json()['whatsapp']
        assert whatsapp['whatsappUrl'].startswith('https://wa.me/94771234567?text=')

    def test_phone_required(self, client, sale):
        response = client.post(f"/api/sales/{sale['id']}/send-whatsapp", json={})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Phone number is required'

    def test_missing_sale(self, client, notifier):
        response = client.post('/api/sales/999/send-whatsapp', json={'phone_number': '0771234567'})

        assert response.status_code == 404
        assert notifier.calls == []

    def test_delivery_failure(self, client, sale, notifier):
        notifier.result = {'success': False, 'method': 'api', 'error': 'WhatsApp API token not configured'}
        response = client.post(f"/api/sales/{sale['id']}/send-whatsapp", json={'phone_number': '0771234567'})

        assert response.status_code == 502
        data = response.get_json()
        assert data['error'] == 'Failed to send WhatsApp invoice'
        assert data['details'] == 'WhatsApp API token not configured'


class TestInvoicePdf:
    """Tests for GET /api/sales/<id>/pdf."""

    def test_pdf_download(self, client, sale):
        response = client.get(f"/api/sales/{sale['id']}/pdf")

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert f"invoice_{sale['invoice']}.pdf" in response.headers['Content-Disposition']

    def test_pdf_uses_saved_settings(self, client, sale):
        client.put('/api/settings', json={
            'shopName': 'Lanka <Mobiles>', 'shopPhone': '0112223334', 'warrantyTerms': '6 months',
        })
        response = client.get(f"/api/sales/{sale['id']}/pdf")

        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')

    def test_pdf_missing_sale(self, client):
        assert client.get('/api/sales/999/pdf').status_code == 404
