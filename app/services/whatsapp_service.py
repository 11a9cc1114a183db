"""WhatsApp receipt notifications.

Two delivery methods:
- 'simple': build a wa.me link with the receipt text (nothing leaves the server)
- 'api': POST the receipt to a WhatsApp Business style HTTP API
"""
import logging
import re
from typing import Dict, Any, Optional
from urllib.parse import quote

import requests

from app.exceptions import NotificationError
from app.utils.formatters import to_money, display_date

logger = logging.getLogger(__name__)

SEPARATOR = '─' * 30


def normalize_phone(phone_number: str, country_code: str = '94') -> str:
    """
    Strip everything but digits and prefix the country code on local numbers.

    Examples:
        normalize_phone('077-123 4567') -> '0771234567'
        normalize_phone('771234567') -> '94771234567'
        normalize_phone('+94 77 123 4567') -> '94771234567'
    """
    if not phone_number or not str(phone_number).strip():
        raise NotificationError('Phone number is required', {'code': 'phone_required'})

    digits = re.sub(r'\D', '', str(phone_number))
    if not digits:
        raise NotificationError('Phone number is required', {'code': 'phone_required'})

    if len(digits) == 9 and not digits.startswith(country_code):
        digits = country_code + digits
    return digits


def _amount(value, symbol: str) -> str:
    return f"{symbol} {to_money(value):.2f}"


def format_invoice_message(sale: Dict[str, Any], currency: str = 'RS', footer: Optional[str] = None) -> str:
    """Render a sale snapshot (Sale.to_dict(include_items=True)) as a WhatsApp receipt."""
    total = to_money(sale.get('total_amount'))
    paid = to_money(sale.get('paid_amount'))
    tax = to_money(sale.get('tax_amount'))
    discount = to_money(sale.get('discount_amount'))

    lines = [f"🧾 *INVOICE {sale.get('invoice')}*", ""]
    lines.append(f"📅 Date: {display_date(sale.get('date'))}")
    if sale.get('customer_name'):
        lines.append(f"👤 Customer: {sale['customer_name']}")

    lines.append("")
    lines.append("📦 *ITEMS:*")
    lines.append(SEPARATOR)
    for item in sale.get('items') or []:
        lines.append(f"• {item.get('item_name')}")
        lines.append(
            f"  Qty: {item.get('quantity')} × {_amount(item.get('unit_price'), currency)}"
            f" = {_amount(item.get('line_total'), currency)}"
        )
    lines.append(SEPARATOR)

    lines.append(f"💰 Subtotal: {_amount(sale.get('subtotal'), currency)}")
    if tax > 0:
        lines.append(f"🏛️ Tax: {_amount(tax, currency)}")
    if discount > 0:
        lines.append(f"🎯 Discount: -{_amount(discount, currency)}")
    lines.append(f"💳 *Total: {_amount(total, currency)}*")
    lines.append(f"💵 Paid: {_amount(paid, currency)}")

    balance = total - paid
    if balance > 0:
        lines.append(f"⚠️ Balance Due: {_amount(balance, currency)}")
    elif balance < 0:
        lines.append(f"💰 Change: {_amount(abs(balance), currency)}")
    else:
        lines.append("✅ Fully Paid")

    lines.append("")
    lines.append(f"📱 Status: {str(sale.get('status', '')).upper()}")
    lines.append("")
    lines.append(footer or "Thank you for your business! 🙏")
    return "\n".join(lines)


class WhatsAppService:
    """Receipt notifier. send() reports failures in its result and never raises."""

    def __init__(
        self,
        method: str = 'simple',
        api_url: str = 'https://api.whatsapp.com/send',
        api_token: str = '',
        country_code: str = '94',
        currency: str = 'RS',
        timeout: int = 10,
    ):
        self.method = method
        self.api_url = api_url
        self.api_token = api_token
        self.country_code = country_code
        self.currency = currency
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'WhatsAppService':
        return cls(
            method=config.get('WHATSAPP_METHOD', 'simple'),
            api_url=config.get('WHATSAPP_API_URL', 'https://api.whatsapp.com/send'),
            api_token=config.get('WHATSAPP_API_TOKEN', ''),
            country_code=config.get('WHATSAPP_COUNTRY_CODE', '94'),
            currency=config.get('CURRENCY_SYMBOL', 'RS'),
            timeout=config.get('WHATSAPP_TIMEOUT', 10),
        )

    def build_link(self, phone_number: str, sale: Dict[str, Any]) -> Dict[str, Any]:
        message = format_invoice_message(sale, self.currency)
        phone = normalize_phone(phone_number, self.country_code)
        return {
            'success': True,
            'method': 'simple',
            'message': 'WhatsApp URL generated successfully',
            'whatsappUrl': f"https://wa.me/{phone}?text={quote(message, safe='')}",
            'formattedMessage': message,
        }

    def post_message(self, phone_number: str, sale: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send the receipt through the configured HTTP API.

        Raises:
            NotificationError: token missing or the API call failed
        """
        if not self.api_token:
            raise NotificationError('WhatsApp API token not configured', {'code': 'api_not_configured'})

        message = format_invoice_message(sale, self.currency)
        phone = normalize_phone(phone_number, self.country_code)
        headers = {
            'Authorization': f'Bearer {self.api_token}',
            'Content-Type': 'application/json'
        }

        logger.info(f"[WHATSAPP] Sending invoice {sale.get('invoice')} to {phone}")
        try:
            response = requests.post(
                self.api_url,
                json={'to': phone, 'message': message, 'type': 'text'},
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f'WhatsApp API request failed: {e}', {'code': 'api_error'})

        try:
            data = response.json()
        except ValueError:
            data = None

        return {
            'success': True,
            'method': 'api',
            'message': 'Invoice sent successfully via WhatsApp API',
            'response': data,
        }

    def send(self, phone_number: str, sale: Dict[str, Any], method: Optional[str] = None) -> Dict[str, Any]:
        """Dispatch a receipt. Returns {'success': bool, 'error'?: str, ...}."""
        method = method or self.method
        try:
            if method == 'api':
                return self.post_message(phone_number, sale)
            return self.build_link(phone_number, sale)
        except NotificationError as e:
            logger.warning(f"[WHATSAPP] Receipt for {sale.get('invoice')} not sent: {e.message}")
            return {'success': False, 'method': method, 'error': e.message}


def get_notifier(app=None):
    """Notifier registered on the app (tests swap it through app.extensions)."""
    from flask import current_app
    app = app or current_app
    return app.extensions['notifier']
