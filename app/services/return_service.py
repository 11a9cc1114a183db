"""Sale returns (refunds). Returns record money going back; they do not restock."""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.models import Sale, SaleReturn
from app.exceptions import PosError, ValidationError, NotFoundError, PersistenceError
from app.utils.formatters import to_money
from app.utils.payload import parse_decimal, parse_int, require_text, is_missing

logger = logging.getLogger(__name__)


def list_returns(session, sale_id: Optional[int] = None) -> List[SaleReturn]:
    query = session.query(SaleReturn)
    if sale_id is not None:
        query = query.filter(SaleReturn.sale_id == sale_id)
    return query.order_by(SaleReturn.created_at.desc(), SaleReturn.id.desc()).all()


def get_return(session, return_id: int) -> SaleReturn:
    sale_return = session.get(SaleReturn, return_id)
    if sale_return is None:
        raise NotFoundError('Return not found', {'return_id': return_id})
    return sale_return


def _parse_items(items: Any) -> str:
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError('items must be a list')
    return json.dumps(items)


def _parse_refund(value: Any, sale: Sale):
    """Refund defaults to the sale total and can never exceed it."""
    if is_missing(value):
        return to_money(sale.total_amount)
    refund = parse_decimal(value, 'refund_amount', minimum=0)
    if refund > to_money(sale.total_amount):
        raise ValidationError(
            'Refund amount cannot exceed the sale total',
            {'refund_amount': float(refund), 'total_amount': float(to_money(sale.total_amount))}
        )
    return refund


def create_return(data: Optional[Dict[str, Any]], session) -> SaleReturn:
    """
    Record a return against a sale and log it in the sale notes.

    Raises:
        ValidationError: sale_id or reason missing, bad refund amount
        NotFoundError: sale does not exist
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    if is_missing(data.get('sale_id')) or is_missing(data.get('reason')):
        raise ValidationError('Sale ID and reason are required')

    sale_id = parse_int(data.get('sale_id'), 'sale_id')
    reason = require_text(data.get('reason'), 'reason')
    items_data = _parse_items(data.get('items'))

    try:
        sale = session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError('Sale not found', {'sale_id': sale_id})

        sale_return = SaleReturn(
            sale_id=sale.id,
            reason=reason,
            refund_amount=_parse_refund(data.get('refund_amount'), sale),
            items_data=items_data,
        )
        session.add(sale_return)
        sale.notes = f"{sale.notes or ''}\nReturn processed: {reason}"
        session.commit()
    except PosError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[RETURNS] Database error creating return for sale {sale_id}: {e}")
        raise PersistenceError('Failed to create return')

    logger.info(f"[RETURNS] Return {sale_return.id} on sale {sale.invoice}: refund {sale_return.refund_amount}")
    return sale_return


def update_return(return_id: int, data: Optional[Dict[str, Any]], session) -> SaleReturn:
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    try:
        sale_return = get_return(session, return_id)
        if 'reason' in data:
            sale_return.reason = require_text(data.get('reason'), 'reason')
        if 'refund_amount' in data:
            sale_return.refund_amount = _parse_refund(data.get('refund_amount'), sale_return.sale)
        if 'items' in data:
            sale_return.items_data = _parse_items(data.get('items'))
        session.commit()
    except PosError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[RETURNS] Database error updating return {return_id}: {e}")
        raise PersistenceError('Failed to update return')

    return sale_return


def delete_return(return_id: int, session) -> None:
    sale_return = get_return(session, return_id)
    try:
        session.delete(sale_return)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[RETURNS] Database error deleting return {return_id}: {e}")
        raise PersistenceError('Failed to delete return')
