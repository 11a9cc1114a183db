"""Service for deleting sales with stock restore."""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.exceptions import PosError, NotFoundError, ConflictError, PersistenceError
from app.stores import PosStore

logger = logging.getLogger(__name__)


def delete_sale_with_restore(sale_id: int, store: PosStore) -> dict:
    """
    Delete a sale and put its quantities back into inventory.

    Steps:
    1. Read the sale lines (quantities are needed before the cascade removes them)
    2. Delete the sale (lines and returns go with it)
    3. Add each line quantity back to its item
    4. Commit, or roll back so the sale is never gone with stock un-restored

    Returns:
        dict with message, sale_id and restored quantities per item

    Raises:
        NotFoundError: sale does not exist
        PersistenceError: database failure (transaction rolled back)
    """
    try:
        sale = store.get_sale(sale_id)
        if sale is None:
            raise NotFoundError('Sale not found', {'sale_id': sale_id})
        invoice = sale.invoice

        # Step 1: quantities before cascade
        restore = [(line.item_id, line.item_name, line.quantity) for line in store.get_sale_lines(sale_id)]

        # Step 2: delete sale
        if not store.delete_sale(sale_id):
            raise NotFoundError('Sale not found', {'sale_id': sale_id})

        # Step 3: restore stock
        restored = []
        for item_id, item_name, quantity in restore:
            if not store.increment_stock(item_id, quantity):
                raise NotFoundError(f'Item not found: {item_id}', {'item_id': item_id})
            restored.append({'item_id': item_id, 'item_name': item_name, 'quantity': quantity})

        # Step 4: commit
        store.commit()

    except PosError:
        store.rollback()
        raise
    except IntegrityError as e:
        store.rollback()
        logger.warning(f"[SALES] Integrity error deleting sale {sale_id}: {e.orig}")
        raise ConflictError('Sale is still referenced and cannot be deleted')
    except SQLAlchemyError as e:
        store.rollback()
        logger.exception(f"[SALES] Database error deleting sale {sale_id}: {e}")
        raise PersistenceError('Failed to delete sale')
    except Exception:
        store.rollback()
        raise

    logger.info(f"[SALES] Sale {invoice} deleted, {len(restored)} lines restored to stock")

    from app.services.cache_service import invalidate_dashboard
    invalidate_dashboard()

    return {
        'message': 'Sale deleted successfully and inventory restored',
        'sale_id': sale_id,
        'restored_items': restored,
    }
