"""Inventory management: item CRUD, search and direct stock adjustment."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.models import InventoryItem, SaleLine
from app.exceptions import PosError, ValidationError, NotFoundError, ConflictError, PersistenceError
from app.services.cache_service import invalidate_dashboard
from app.stores import PosStore
from app.utils.payload import parse_decimal, parse_int, clean_text, is_missing

logger = logging.getLogger(__name__)

STOCK_OPERATIONS = ('add', 'subtract', 'set')


def list_items(session) -> List[InventoryItem]:
    return (
        session.query(InventoryItem)
        .order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
        .all()
    )


def search_items(session, query: Optional[str]) -> List[InventoryItem]:
    """Items whose name contains the query (case-insensitive), ordered by name."""
    if is_missing(query):
        raise ValidationError('Search query is required')
    pattern = f"%{query.strip()}%"
    return (
        session.query(InventoryItem)
        .filter(InventoryItem.name.ilike(pattern))
        .order_by(InventoryItem.name)
        .all()
    )


def get_item(session, item_id: int) -> InventoryItem:
    item = session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError('Item not found', {'item_id': item_id})
    return item


def get_item_by_sku(session, sku: str) -> InventoryItem:
    item = session.query(InventoryItem).filter(InventoryItem.sku == sku).first()
    if item is None:
        raise NotFoundError('Item not found', {'sku': sku})
    return item


def low_stock_items(session, threshold: Optional[int] = None) -> List[InventoryItem]:
    """
    Items that need reordering.

    With a threshold: quantity <= threshold. Without: quantity <= the item's own min_stock.
    """
    query = session.query(InventoryItem)
    if threshold is None:
        query = query.filter(InventoryItem.quantity <= InventoryItem.min_stock)
    else:
        query = query.filter(InventoryItem.quantity <= threshold)
    return query.order_by(InventoryItem.quantity.asc(), InventoryItem.name).all()


def _parse_item_payload(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate a full item body (create and update share the same rules)."""
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    name = clean_text(data.get('item_name'))
    sku = clean_text(data.get('sku'))
    if not name or not sku or is_missing(data.get('buy_price')) or is_missing(data.get('sell_price')):
        raise ValidationError('Item name, SKU, buy price, and sell price are required')

    buy_price = parse_decimal(data.get('buy_price'), 'buy_price')
    sell_price = parse_decimal(data.get('sell_price'), 'sell_price')
    if buy_price < 0 or sell_price < 0:
        raise ValidationError('Prices cannot be negative')

    quantity = parse_int(data.get('quantity'), 'quantity', default=0)
    if quantity < 0:
        raise ValidationError('Quantity cannot be negative')

    min_stock = parse_int(data.get('min_stock'), 'min_stock', default=0)
    if min_stock < 0:
        raise ValidationError('Minimum stock cannot be negative')

    return {
        'name': name,
        'sku': sku,
        'category': clean_text(data.get('category')),
        'supplier': clean_text(data.get('supplier')),
        'buy_price': buy_price,
        'sell_price': sell_price,
        'quantity': quantity,
        'min_stock': min_stock,
        'description': clean_text(data.get('description')),
        'barcode': clean_text(data.get('barcode')),
    }


def _ensure_sku_free(session, sku: str, exclude_id: Optional[int] = None):
    query = session.query(InventoryItem.id).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise ConflictError('SKU already exists', {'sku': sku})


def create_item(data: Dict[str, Any], session) -> InventoryItem:
    """
    Create an inventory item.

    Raises:
        ValidationError: missing fields or negative values
        ConflictError: SKU already exists
    """
    fields = _parse_item_payload(data)

    try:
        _ensure_sku_free(session, fields['sku'])
        item = InventoryItem(**fields)
        session.add(item)
        session.commit()
    except PosError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError('SKU already exists', {'sku': fields['sku']})
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[INVENTORY] Database error creating item: {e}")
        raise PersistenceError('Failed to create item')

    logger.info(f"[INVENTORY] Item {item.sku} created (qty {item.quantity})")
    invalidate_dashboard()
    return item


def update_item(item_id: int, data: Dict[str, Any], session) -> InventoryItem:
    """Replace every editable field of an item, quantity included."""
    fields = _parse_item_payload(data)

    try:
        item = get_item(session, item_id)
        _ensure_sku_free(session, fields['sku'], exclude_id=item_id)
        for attr, value in fields.items():
            setattr(item, attr, value)
        session.commit()
    except PosError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError('SKU already exists', {'sku': fields['sku']})
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[INVENTORY] Database error updating item {item_id}: {e}")
        raise PersistenceError('Failed to update item')

    invalidate_dashboard()
    return item


def delete_item(item_id: int, session) -> None:
    """
    Delete an item that no sale references.

    Raises:
        NotFoundError: item does not exist
        ConflictError: item appears on existing sales
    """
    try:
        item = get_item(session, item_id)
        in_use = session.query(SaleLine.id).filter(SaleLine.item_id == item_id).first()
        if in_use is not None:
            raise ConflictError(
                'Item is referenced by existing sales and cannot be deleted',
                {'item_id': item_id}
            )
        session.delete(item)
        session.commit()
    except PosError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError('Item is referenced by existing sales and cannot be deleted', {'item_id': item_id})
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[INVENTORY] Database error deleting item {item_id}: {e}")
        raise PersistenceError('Failed to delete item')

    logger.info(f"[INVENTORY] Item {item_id} deleted")
    invalidate_dashboard()


def adjust_stock(item_id: int, data: Optional[Dict[str, Any]], store: PosStore) -> Dict[str, Any]:
    """
    Apply a direct stock adjustment to one item.

    - add: quantity + n
    - subtract: quantity - n, floored at 0
    - set: n

    Raises:
        ValidationError: missing/negative quantity or unknown operation
        NotFoundError: item does not exist
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    operation = data.get('operation')
    if is_missing(data.get('quantity')) or is_missing(operation):
        raise ValidationError('Quantity and operation are required')
    if operation not in STOCK_OPERATIONS:
        raise ValidationError('Operation must be add, subtract, or set')

    quantity = parse_int(data.get('quantity'), 'quantity', minimum=0)

    try:
        new_quantity = store.adjust_quantity(item_id, quantity, operation)
        if new_quantity is None:
            raise NotFoundError('Item not found', {'item_id': item_id})
        store.commit()
    except PosError:
        store.rollback()
        raise
    except SQLAlchemyError as e:
        store.rollback()
        logger.exception(f"[INVENTORY] Database error adjusting item {item_id}: {e}")
        raise PersistenceError('Failed to update quantity')

    logger.info(f"[INVENTORY] Item {item_id}: {operation} {quantity} -> {new_quantity}")
    invalidate_dashboard()

    return {
        'message': 'Quantity updated successfully',
        'item_id': item_id,
        'operation': operation,
        'quantity': new_quantity,
    }
