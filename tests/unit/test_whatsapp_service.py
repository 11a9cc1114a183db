"""
Unit tests for WhatsApp receipt formatting and delivery.
"""

import pytest
import requests
from urllib.parse import unquote

from app.exceptions import NotificationError
from app.services.whatsapp_service import WhatsAppService, normalize_phone, format_invoice_message


def sample_sale(**overrides):
    sale = {
        'id': 1,
        'invoice': 'INV-20260112-123456',
        'date': '2026-01-12',
        'customer_name': 'Kamal',
        'subtotal': 200.0,
        'tax_amount': 20.0,
        'discount_amount': 0.0,
        'total_amount': 220.0,
        'paid_amount': 220.0,
        'status': 'paid',
        'items': [
            {'item_name': 'Phone Case', 'quantity': 2, 'unit_price': 100.0, 'line_total': 200.0},
        ],
    }
    sale.update(overrides)
    return sale


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Server Error')

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON')
        return self._payload


class TestNormalizePhone:
    """Tests for phone normalization."""

    def test_strips_formatting(self):
        assert normalize_phone('+94 77-123 4567') == '94771234567'

    def test_prefixes_country_code_on_nine_digits(self):
        assert normalize_phone('771234567') == '94771234567'

    def test_leaves_local_ten_digit_numbers(self):
        assert normalize_phone('0771234567') == '0771234567'

    def test_custom_country_code(self):
        assert normalize_phone('912345678', country_code='54') == '54912345678'

    @pytest.mark.parametrize('phone', ['', '   ', None, 'abc'])
    def test_empty_rejected(self, phone):
        with pytest.raises(NotificationError):
            normalize_phone(phone)


class TestFormatInvoiceMessage:
    """Tests for the receipt text."""

    def test_fully_paid_receipt(self):
        message = format_invoice_message(sample_sale())

        assert '🧾 *INVOICE INV-20260112-123456*' in message
        assert '📅 Date: 12/01/2026' in message
        assert '👤 Customer: Kamal' in message
        assert '• Phone Case' in message
        assert 'Qty: 2 × RS 100.00 = RS 200.00' in message
        assert '🏛️ Tax: RS 20.00' in message
        assert '💳 *Total: RS 220.00*' in message
        assert '✅ Fully Paid' in message
        assert '📱 Status: PAID' in message
        assert message.endswith('Thank you for your business! 🙏')

    def test_balance_due_and_discount(self):
        message = format_invoice_message(sample_sale(
            tax_amount=0, discount_amount=5, total_amount=95, paid_amount=50, status='partial'
        ))

        assert '🎯 Discount: -RS 5.00' in message
        assert '⚠️ Balance Due: RS 45.00' in message
        assert 'Tax:' not in message

    def test_change(self):
        message = format_invoice_message(sample_sale(paid_amount=250))
        assert '💰 Change: RS 30.00' in message

    def test_custom_currency_and_footer(self):
        message = format_invoice_message(sample_sale(), currency='$', footer='See you soon')
        assert '$ 220.00' in message
        assert message.endswith('See you soon')


class TestWhatsAppService:
    """Tests for link building and API delivery."""

    def test_simple_link(self):
        service = WhatsAppService(method='simple')
        result = service.send('771234567', sample_sale())

        assert result['success'] is True
        assert result['method'] == 'simple'
        assert result['whatsappUrl'].startswith('https://wa.me/94771234567?text=')
        assert unquote(result['whatsappUrl'].split('text=', 1)[1]) == result['formattedMessage']

    def test_send_reports_bad_phone_without_raising(self):
        service = WhatsAppService(method='simple')
        result = service.send('', sample_sale())

        assert result['success'] is False
        assert result['error'] == 'Phone number is required'

    def test_api_requires_token(self):
        service = WhatsAppService(method='api', api_token='')
        result = service.send('771234567', sample_sale())

        assert result['success'] is False
        assert result['method'] == 'api'
        assert 'token' in result['error']

    def test_api_posts_message(self, monkeypatch):
        captured = {}

        def fake_post(url, json=None, headers=None, timeout=None):
            captured.update(url=url, json=json, headers=headers, timeout=timeout)
            return FakeResponse(200, {'id': 'wamid.1'})

        monkeypatch.setattr(requests, 'post', fake_post)
        service = WhatsAppService(method='api', api_url='https://example.test/send', api_token='secret', timeout=5)
        result = service.send('771234567', sample_sale())

        assert result['success'] is True
        assert result['response'] == {'id': 'wamid.1'}
        assert captured['url'] == 'https://example.test/send'
        assert captured['json']['to'] == '94771234567'
        assert captured['json']['type'] == 'text'
        assert captured['headers']['Authorization'] == 'Bearer secret'
        assert captured['timeout'] == 5

    def test_api_http_error_is_reported(self, monkeypatch):
        monkeypatch.setattr(requests, 'post', lambda *args, **kwargs: FakeResponse(500))
        service = WhatsAppService(method='api', api_token='secret')
        result = service.send('771234567', sample_sale())

        assert result['success'] is False
        assert 'WhatsApp API request failed' in result['error']

    def test_api_connection_error_is_reported(self, monkeypatch):
        def boom(*args, **kwargs):
            raise requests.ConnectionError('unreachable')

        monkeypatch.setattr(requests, 'post', boom)
        service = WhatsAppService(method='api', api_token='secret')
        result = service.send('771234567', sample_sale())

        assert result['success'] is False

    def test_method_override(self):
        service = WhatsAppService(method='api', api_token='')
        result = service.send('771234567', sample_sale(), method='simple')
        assert result['success'] is True

    def test_from_config(self):
        service = WhatsAppService.from_config({
            'WHATSAPP_METHOD': 'api',
            'WHATSAPP_API_TOKEN': 't',
            'WHATSAPP_COUNTRY_CODE': '54',
            'CURRENCY_SYMBOL': '$',
        })
        assert service.method == 'api'
        assert service.country_code == '54'
        assert service.currency == '$'
