"""
Integration tests for sale creation: totals, stock decrement, atomicity
and the post-commit receipt notification.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.exceptions import (
    ConflictError, InsufficientStockError, NotFoundError, PersistenceError, ValidationError
)
from app.models import Sale
from app.services import sales_service
from app.services.sales_service import create_sale
from app.stores import SqlAlchemyStore


class FailingDecrementStore(SqlAlchemyStore):
    """Store whose conditional decrement loses the race for one item."""

    def __init__(self, session, fail_on_item):
        super().__init__(session)
        self.fail_on_item = fail_on_item

    def decrement_stock(self, item_id, quantity):
        if item_id == self.fail_on_item:
            return False
        return super().decrement_stock(item_id, quantity)


class ExplodingLineStore(SqlAlchemyStore):
    """Store that raises a database error after N line inserts."""

    def __init__(self, session, fail_after):
        super().__init__(session)
        self.fail_after = fail_after
        self.inserted = 0

    def add_sale_line(self, line):
        if self.inserted >= self.fail_after:
            raise OperationalError('INSERT INTO sales_items', {}, Exception('disk I/O error'))
        self.inserted += 1
        return super().add_sale_line(line)


class ConstraintViolatingStore(SqlAlchemyStore):
    """Store whose sale insert hits a constraint other than the invoice one."""

    def add_sale(self, sale):
        raise IntegrityError('INSERT INTO sales', {}, Exception('NOT NULL constraint failed: sales.total_amount'))


class TestCreateSaleEndpoint:
    """End-to-end sale creation through POST /api/sales."""

    def test_single_item_with_tax(self, client, item_a, stock_of, notifier):
        """2 units at 100.00 with 10% tax, paid in full."""
        item_id = item_a.id
        response = client.post('/api/sales', json={
            'items': [{'item_id': item_id, 'quantity': 2}],
            'tax_rate': 10,
            'paid_amount': 220,
        })

        assert response.status_code == 201
        data = response.get_json()
        sale = data['sale']
        assert data['message'] == 'Sale created successfully'
        assert sale['subtotal'] == 200.0
        assert sale['tax_amount'] == 20.0
        assert sale['total_amount'] == 220.0
        assert sale['status'] == 'paid'
        assert sale['invoice'].startswith('INV-')
        assert len(sale['items']) == 1
        assert sale['items'][0]['unit_price'] == 100.0
        assert sale['items'][0]['line_total'] == 200.0
        assert data['notification'] is None
        assert notifier.calls == []
        assert stock_of(item_id) == 8

    def test_two_items_discount_partial_payment(self, client, item_a, item_b, stock_of):
        a_id, b_id = item_a.id, item_b.id
        response = client.post('/api/sales', json={
            'items': [{'item_id': a_id, 'quantity': 1}, {'item_id': b_id, 'quantity': 1}],
            'discount_amount': 55,
            'paid_amount': 50,
        })

        assert response.status_code == 201
        sale = response.get_json()['sale']
        assert sale['subtotal'] == 150.0
        assert sale['total_amount'] == 95.0
        assert sale['status'] == 'partial'
        assert [line['item_name'] for line in sale['items']] == ['Phone Case', 'Screen Guard']
        assert stock_of(a_id) == 9
        assert stock_of(b_id) == 2

    def test_discount_above_total_is_accepted(self, client, item_a, stock_of):
        item_id = item_a.id
        response = client.post('/api/sales', json={
            'items': [{'item_id': item_id, 'quantity': 1}],
            'discount_amount': 150,
        })

        assert response.status_code == 201
        sale = response.get_json()['sale']
        assert sale['subtotal'] == 100.0
        assert sale['discount_amount'] == 150.0
        assert sale['total_amount'] == -50.0
        assert sale['status'] == 'paid'
        assert stock_of(item_id) == 9

    def test_invoice_collision_is_a_conflict(self, client, item_a, stock_of, counts, monkeypatch):
        item_id = item_a.id
        monkeypatch.setattr(sales_service, 'generate_invoice_number', lambda: 'INV-20260101-000001')

        first = client.post('/api/sales', json={'items': [{'item_id': item_id, 'quantity': 1}]})
        second = client.post('/api/sales', json={'items': [{'item_id': item_id, 'quantity': 2}]})

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.get_json() == {'error': 'Invoice number already exists', 'status': 'error'}
        assert stock_of(item_id) == 9
        assert counts() == (1, 1)

    def test_insufficient_stock_changes_nothing(self, client, item_a, item_b, stock_of, counts):
        a_id, b_id = item_a.id, item_b.id
        response = client.post('/api/sales', json={
            'items': [{'item_id': a_id, 'quantity': 2}, {'item_id': b_id, 'quantity': 5}],
        })

        assert response.status_code == 400
        data = response.get_json()
        assert data['error'] == 'Insufficient stock for Screen Guard'
        assert data['available'] == 3
        assert data['requested'] == 5
        assert data['itemName'] == 'Screen Guard'
        assert stock_of(a_id) == 10
        assert stock_of(b_id) == 3
        assert counts() == (0, 0)

    def test_unknown_item(self, client, counts):
        response = client.post('/api/sales', json={'items': [{'item_id': 999, 'quantity': 1}]})

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Item not found: 999'
        assert counts() == (0, 0)

    def test_empty_cart(self, client):
        response = client.post('/api/sales', json={'items': []})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Items are required', 'status': 'error'}

    def test_non_json_body(self, client):
        response = client.post('/api/sales', data='not json', content_type='text/plain')
        assert response.status_code == 400

    def test_receipt_sent_after_commit(self, client, item_a, notifier):
        response = client.post('/api/sales', json={
            'items': [{'item_id': item_a.id, 'quantity': 1}],
            'customer_phone': '0771234567',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['notification'] == {'success': True, 'method': 'simple'}
        assert len(notifier.calls) == 1
        assert notifier.calls[0]['phone'] == '0771234567'
        assert notifier.calls[0]['sale']['invoice'] == data['sale']['invoice']

    def test_notification_failure_keeps_sale(self, client, item_a, notifier, stock_of, counts):
        item_id = item_a.id
        notifier.result = {'success': False, 'method': 'api', 'error': 'WhatsApp API token not configured'}

        response = client.post('/api/sales', json={
            'items': [{'item_id': item_id, 'quantity': 3}],
            'customer_phone': '0771234567',
        })

        assert response.status_code == 201
        assert response.get_json()['notification']['success'] is False
        assert stock_of(item_id) == 7
        assert counts() == (1, 1)

    def test_notifier_exception_keeps_sale(self, client, item_a, notifier, counts):
        notifier.exc = RuntimeError('gateway exploded')

        response = client.post('/api/sales', json={
            'items': [{'item_id': item_a.id, 'quantity': 1}],
            'customer_phone': '0771234567',
        })

        assert response.status_code == 201
        notification = response.get_json()['notification']
        assert notification['success'] is False
        assert 'gateway exploded' in notification['error']
        assert counts() == (1, 1)


class TestCreateSaleService:
    """Sale creation against the store directly."""

    def test_stock_conservation(self, store, make_item, stock_of):
        item = make_item(quantity=20)
        item_id = item.id

        for quantity in (3, 4, 5):
            create_sale({'items': [{'item_id': item_id, 'quantity': quantity}]}, store)

        assert stock_of(item_id) == 8

    def test_sell_entire_stock(self, store, item_b, stock_of):
        result = create_sale({'items': [{'item_id': item_b.id, 'quantity': 3}]}, store)

        assert result['sale']['total_amount'] == 150.0
        assert stock_of(item_b.id) == 0

    def test_duplicate_lines_cannot_oversell(self, store, item_b, stock_of, counts):
        """Two lines of 2 for an item with 3 on hand: the second decrement fails."""
        item_id = item_b.id
        with pytest.raises(InsufficientStockError) as exc_info:
            create_sale({'items': [
                {'item_id': item_id, 'quantity': 2},
                {'item_id': item_id, 'quantity': 2},
            ]}, store)

        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        assert stock_of(item_id) == 3
        assert counts() == (0, 0)

    def test_duplicate_lines_within_stock(self, store, item_a, stock_of):
        result = create_sale({'items': [
            {'item_id': item_a.id, 'quantity': 2},
            {'item_id': item_a.id, 'quantity': 3},
        ]}, store)

        assert len(result['sale']['items']) == 2
        assert stock_of(item_a.id) == 5

    def test_failed_second_decrement_rolls_back_first(self, session, item_a, item_b, stock_of, counts):
        """Stock taken by someone else between the check and the update."""
        a_id, b_id = item_a.id, item_b.id
        store = FailingDecrementStore(session, fail_on_item=b_id)

        with pytest.raises(InsufficientStockError):
            create_sale({'items': [
                {'item_id': a_id, 'quantity': 2},
                {'item_id': b_id, 'quantity': 1},
            ]}, store)

        assert stock_of(a_id) == 10
        assert stock_of(b_id) == 3
        assert counts() == (0, 0)

    def test_database_error_maps_to_persistence_error(self, session, item_a, item_b, stock_of, counts):
        a_id = item_a.id
        store = ExplodingLineStore(session, fail_after=1)

        with pytest.raises(PersistenceError):
            create_sale({'items': [
                {'item_id': a_id, 'quantity': 1},
                {'item_id': item_b.id, 'quantity': 1},
            ]}, store)

        assert stock_of(a_id) == 10
        assert counts() == (0, 0)

    def test_validation_happens_before_any_write(self, store, item_a, counts):
        with pytest.raises(ValidationError):
            create_sale({'items': [{'item_id': item_a.id, 'quantity': 1}], 'tax_rate': 150}, store)
        assert counts() == (0, 0)

    def test_missing_item_is_not_found(self, store):
        with pytest.raises(NotFoundError):
            create_sale({'items': [{'item_id': 42, 'quantity': 1}]}, store)

    def test_custom_date_and_notes(self, store, item_a, session):
        result = create_sale({
            'items': [{'item_id': item_a.id, 'quantity': 1}],
            'date': '2026-01-12',
            'notes': 'Gift wrap',
            'customer_name': 'Kamal',
        }, store)

        sale = session.get(Sale, result['sale']['id'])
        assert sale.date.isoformat() == '2026-01-12'
        assert sale.notes == 'Gift wrap'
        assert sale.customer_name == 'Kamal'

    def test_line_snapshot_survives_item_rename(self, store, item_a, session):
        result = create_sale({'items': [{'item_id': item_a.id, 'quantity': 1}]}, store)
        item_a.name = 'Renamed Case'
        session.commit()

        sale = session.get(Sale, result['sale']['id'])
        assert sale.lines[0].item_name == 'Phone Case'

    def test_tax_rate_with_three_decimals(self, store, item_a):
        result = create_sale({'items': [{'item_id': item_a.id, 'quantity': 10}], 'tax_rate': '8.875'}, store)

        assert result['sale']['subtotal'] == 1000.0
        assert result['sale']['tax_amount'] == 88.75
        assert result['sale']['total_amount'] == 1088.75

    def test_invoice_collision_rolls_back_everything(self, store, item_a, item_b, stock_of, counts, monkeypatch):
        a_id, b_id = item_a.id, item_b.id
        monkeypatch.setattr(sales_service, 'generate_invoice_number', lambda: 'INV-20260101-000001')
        create_sale({'items': [{'item_id': a_id, 'quantity': 1}]}, store)

        with pytest.raises(ConflictError) as exc_info:
            create_sale({'items': [
                {'item_id': a_id, 'quantity': 2},
                {'item_id': b_id, 'quantity': 1},
            ]}, store)

        assert exc_info.value.message == 'Invoice number already exists'
        assert stock_of(a_id) == 9
        assert stock_of(b_id) == 3
        assert counts() == (1, 1)

    def test_other_integrity_errors_are_generic_conflicts(self, session, item_a, stock_of, counts):
        item_id = item_a.id
        store = ConstraintViolatingStore(session)

        with pytest.raises(ConflictError) as exc_info:
            create_sale({'items': [{'item_id': item_id, 'quantity': 1}]}, store)

        assert exc_info.value.message == 'Sale conflicts with existing data'
        assert stock_of(item_id) == 10
        assert counts() == (0, 0)
