"""
Sales service with transactional logic.
Handles sale creation: cart validation, totals, stock decrement and the
post-commit receipt notification.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from datetime import date, datetime
from typing import List, Dict, Optional, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.models import Sale, SaleLine, PaymentStatus
from app.exceptions import (
    PosError, ValidationError, NotFoundError, InsufficientStockError,
    ConflictError, PersistenceError
)
from app.stores import PosStore
from app.utils.formatters import to_money
from app.utils.payload import parse_decimal, parse_int, parse_date, clean_text

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')


@dataclass
class CartLine:
    item_id: int
    quantity: int


@dataclass
class SaleRequest:
    """Validated sale creation input."""
    lines: List[CartLine]
    tax_rate: Decimal
    discount_amount: Decimal
    paid_amount: Decimal
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    sale_date: Optional[date] = None
    notes: Optional[str] = None


def payment_status(paid_amount, total_amount) -> str:
    """
    Three-way payment status rule.

    paid >= total -> paid; 0 < paid < total -> partial; otherwise unpaid.
    """
    paid = to_money(paid_amount)
    total = to_money(total_amount)
    if paid >= total:
        return PaymentStatus.PAID.value
    if paid > 0:
        return PaymentStatus.PARTIAL.value
    return PaymentStatus.UNPAID.value


def compute_totals(subtotal, tax_rate=0, discount_amount=0, paid_amount=0) -> Dict[str, Any]:
    """
    Compute tax, total and status for a subtotal.

    The tax rate is used as given; only the resulting amounts are rounded to cents.
    A discount larger than subtotal + tax gives a negative total, which counts as paid.
    """
    subtotal = to_money(subtotal)
    discount = to_money(discount_amount)
    tax_amount = to_money(subtotal * Decimal(str(tax_rate)) / HUNDRED)

    total_amount = subtotal + tax_amount - discount
    return {
        'subtotal': subtotal,
        'tax_amount': tax_amount,
        'discount_amount': discount,
        'total_amount': total_amount,
        'paid_amount': to_money(paid_amount),
        'status': payment_status(paid_amount, total_amount),
    }


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """INV-YYYYMMDD-<last 6 digits of the epoch milliseconds>."""
    now = now or datetime.now()
    millis = int(now.timestamp() * 1000)
    return f"INV-{now:%Y%m%d}-{str(millis)[-6:]}"


def parse_sale_request(data: Optional[Dict[str, Any]]) -> SaleRequest:
    """
    Validate the sale creation body. Performs no I/O.

    Raises:
        ValidationError: empty cart, bad quantity, amounts out of range or bad date
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    items = data.get('items')
    if not isinstance(items, list) or not items:
        raise ValidationError('Items are required')

    lines = []
    for index, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise ValidationError(f'Item #{index + 1} must be an object')
        if entry.get('item_id') in (None, ''):
            raise ValidationError(f'Item #{index + 1} is missing item_id')
        item_id = parse_int(entry.get('item_id'), 'item_id')
        quantity = parse_int(entry.get('quantity'), 'quantity')
        if quantity <= 0:
            raise ValidationError('Quantity must be greater than 0', {'item_id': item_id})
        lines.append(CartLine(item_id=item_id, quantity=quantity))

    return SaleRequest(
        lines=lines,
        tax_rate=parse_decimal(data.get('tax_rate'), 'tax_rate', default=Decimal('0'),
                               minimum=Decimal('0'), maximum=HUNDRED, round_to_cents=False),
        discount_amount=parse_decimal(data.get('discount_amount'), 'discount_amount',
                                      default=Decimal('0'), minimum=Decimal('0')),
        paid_amount=parse_decimal(data.get('paid_amount'), 'paid_amount',
                                  default=Decimal('0'), minimum=Decimal('0')),
        customer_name=clean_text(data.get('customer_name')),
        customer_phone=clean_text(data.get('customer_phone')),
        sale_date=parse_date(data.get('date')),
        notes=clean_text(data.get('notes')),
    )


def create_sale(data: Dict[str, Any], store: PosStore, notifier=None) -> Dict[str, Any]:
    """
    Create a sale with its lines and decrement stock, all in one transaction.

    Steps:
    1. Validate the request (no I/O)
    2. For each cart line, in order: read the item, check stock, snapshot price
    3. Compute totals and status
    4. Insert header and lines, decrement stock with a conditional update
    5. Commit, or roll back everything on any failure
    6. After commit: best-effort receipt notification

    Returns:
        dict with 'sale' (including items) and 'notification' (None when no phone)

    Raises:
        ValidationError, NotFoundError, InsufficientStockError, ConflictError, PersistenceError
    """
    request = parse_sale_request(data)

    try:
        # Step 2: snapshot items in cart order
        snapshots = []
        subtotal = Decimal('0.00')
        for line in request.lines:
            item = store.get_item(line.item_id)
            if item is None:
                raise NotFoundError(f'Item not found: {line.item_id}', {'item_id': line.item_id})
            if line.quantity > item.quantity:
                raise InsufficientStockError(item.name, line.quantity, item.quantity)

            unit_price = to_money(item.sell_price)
            line_total = to_money(unit_price * line.quantity)
            subtotal += line_total
            snapshots.append({
                'item_id': item.id,
                'item_name': item.name,
                'sku': item.sku,
                'quantity': line.quantity,
                'unit_price': unit_price,
                'line_total': line_total,
            })

        # Step 3: totals
        totals = compute_totals(subtotal, request.tax_rate, request.discount_amount, request.paid_amount)

        # Step 4: persist header, lines and stock
        sale = store.add_sale(Sale(
            invoice=generate_invoice_number(),
            date=request.sale_date or date.today(),
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            notes=request.notes,
            **totals
        ))

        for snap in snapshots:
            store.add_sale_line(SaleLine(sale_id=sale.id, **snap))
            if not store.decrement_stock(snap['item_id'], snap['quantity']):
                # Someone else took the stock between our read and this update
                current = store.get_item(snap['item_id'])
                available = current.quantity if current is not None else 0
                raise InsufficientStockError(snap['item_name'], snap['quantity'], available)

        # Step 5: commit
        store.commit()

    except PosError:
        store.rollback()
        raise
    except IntegrityError as e:
        store.rollback()
        logger.warning(f"[SALES] Integrity error creating sale: {e.orig}")
        if 'invoice' in str(e.orig).lower():
            raise ConflictError('Invoice number already exists')
        raise ConflictError('Sale conflicts with existing data')
    except SQLAlchemyError as e:
        store.rollback()
        logger.exception(f"[SALES] Database error creating sale: {e}")
        raise PersistenceError('Failed to create sale')
    except Exception:
        store.rollback()
        raise

    sale_data = sale.to_dict(include_items=True)
    logger.info(
        f"[SALES] Sale {sale.invoice} created: {len(snapshots)} lines, total {totals['total_amount']}"
    )
    _after_sale_committed()

    # Step 6: best-effort side effects, the sale is already committed
    notification = None
    if request.customer_phone and notifier is not None:
        notification = send_receipt(notifier, request.customer_phone, sale_data)

    return {'sale': sale_data, 'notification': notification}


def send_receipt(notifier, phone_number: str, sale_data: Dict[str, Any], method: Optional[str] = None) -> Dict[str, Any]:
    """Run a notifier and turn any failure into a result dict."""
    from app.blueprints.metrics import receipt_notifications_total

    try:
        if method:
            result = notifier.send(phone_number, sale_data, method=method)
        else:
            result = notifier.send(phone_number, sale_data)
    except Exception as e:
        logger.exception(f"[SALES] Receipt notifier raised for {sale_data.get('invoice')}: {e}")
        result = {'success': False, 'error': str(e)}

    receipt_notifications_total.labels(result='success' if result.get('success') else 'failure').inc()
    if not result.get('success'):
        logger.warning(f"[SALES] Receipt for {sale_data.get('invoice')} failed: {result.get('error')}")
    return result


def _after_sale_committed():
    from app.blueprints.metrics import sales_created_total
    from app.services.cache_service import invalidate_dashboard

    sales_created_total.inc()
    invalidate_dashboard()


# =====================================================
# QUERIES
# =====================================================

def _summary_dict(sale: Sale) -> Dict[str, Any]:
    """Sale header plus item_count and an 'Name (xN),...' summary for list views."""
    data = sale.to_dict()
    data['item_count'] = len(sale.lines)
    data['items_summary'] = ','.join(f"{line.item_name} (x{line.quantity})" for line in sale.lines) or None
    return data


def list_sales(session, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    All sales, newest first, optionally filtered by payment status.

    Raises:
        ValidationError: unknown status
    """
    query = session.query(Sale).options(selectinload(Sale.lines))
    if status is not None:
        if status not in PaymentStatus.values():
            raise ValidationError('Status must be paid, unpaid, or partial')
        query = query.filter(Sale.status == status)
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return [_summary_dict(sale) for sale in sales]


def get_sale(session, sale_id: int) -> Sale:
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError('Sale not found', {'sale_id': sale_id})
    return sale


def get_sale_by_invoice(session, invoice: str) -> Sale:
    sale = session.query(Sale).filter(Sale.invoice == invoice).first()
    if sale is None:
        raise NotFoundError('Sale not found', {'invoice': invoice})
    return sale
