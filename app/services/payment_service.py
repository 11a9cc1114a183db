"""Payment updates on existing sales."""
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import PosError, NotFoundError, PersistenceError
from app.services.sales_service import payment_status
from app.stores import PosStore
from app.utils.formatters import money_float
from app.utils.payload import parse_decimal

logger = logging.getLogger(__name__)


def update_sale_payment(sale_id: int, paid_amount: Any, store: PosStore) -> dict:
    """
    Replace the paid amount of a sale and recompute its status.

    The stored total is never re-derived and inventory is not touched.

    Raises:
        ValidationError: paid_amount missing, not numeric or negative
        NotFoundError: sale does not exist
    """
    paid = parse_decimal(paid_amount, 'paid_amount', minimum=0)

    try:
        sale = store.get_sale(sale_id)
        if sale is None:
            raise NotFoundError('Sale not found', {'sale_id': sale_id})

        sale.paid_amount = paid
        sale.status = payment_status(paid, sale.total_amount)
        store.commit()

    except PosError:
        store.rollback()
        raise
    except SQLAlchemyError as e:
        store.rollback()
        logger.exception(f"[PAYMENT] Database error updating sale {sale_id}: {e}")
        raise PersistenceError('Failed to update payment')

    logger.info(f"[PAYMENT] Sale {sale.invoice}: paid {paid} -> {sale.status}")

    from app.services.cache_service import invalidate_dashboard
    invalidate_dashboard()

    return {
        'message': 'Payment updated successfully',
        'paid_amount': money_float(sale.paid_amount),
        'status': sale.status,
    }
