"""SQLAlchemy implementation of PosStore (PostgreSQL, MySQL and SQLite)."""
from typing import List, Optional

from sqlalchemy import case

from app.models import InventoryItem, Sale, SaleLine
from app.stores.base import PosStore


class SqlAlchemyStore(PosStore):
    """PosStore backed by a SQLAlchemy session (plain or scoped)."""

    def __init__(self, session):
        self.session = session

    def get_item(self, item_id: int) -> Optional[InventoryItem]:
        return self.session.get(InventoryItem, item_id)

    def decrement_stock(self, item_id: int, quantity: int) -> bool:
        # UPDATE inventory SET quantity = quantity - :n WHERE id = :id AND quantity >= :n
        updated = (
            self.session.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.quantity >= quantity)
            .update(
                {InventoryItem.quantity: InventoryItem.quantity - quantity},
                synchronize_session='fetch'
            )
        )
        return updated == 1

    def increment_stock(self, item_id: int, quantity: int) -> bool:
        updated = (
            self.session.query(InventoryItem)
            .filter(InventoryItem.id == item_id)
            .update(
                {InventoryItem.quantity: InventoryItem.quantity + quantity},
                synchronize_session='fetch'
            )
        )
        return updated == 1

    def adjust_quantity(self, item_id: int, quantity: int, operation: str) -> Optional[int]:
        if operation == 'add':
            new_value = InventoryItem.quantity + quantity
        elif operation == 'subtract':
            # Floors at zero
            new_value = case(
                (InventoryItem.quantity > quantity, InventoryItem.quantity - quantity),
                else_=0
            )
        elif operation == 'set':
            new_value = quantity
        else:
            raise ValueError(f'Unknown stock operation: {operation}')

        updated = (
            self.session.query(InventoryItem)
            .filter(InventoryItem.id == item_id)
            .update({InventoryItem.quantity: new_value}, synchronize_session='fetch')
        )
        if not updated:
            return None

        return (
            self.session.query(InventoryItem.quantity)
            .filter(InventoryItem.id == item_id)
            .scalar()
        )

    def add_sale(self, sale: Sale) -> Sale:
        self.session.add(sale)
        self.session.flush()
        return sale

    def add_sale_line(self, line: SaleLine) -> SaleLine:
        self.session.add(line)
        self.session.flush()
        return line

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        return self.session.get(Sale, sale_id)

    def get_sale_lines(self, sale_id: int) -> List[SaleLine]:
        return (
            self.session.query(SaleLine)
            .filter(SaleLine.sale_id == sale_id)
            .order_by(SaleLine.id)
            .all()
        )

    def delete_sale(self, sale_id: int) -> bool:
        sale = self.get_sale(sale_id)
        if sale is None:
            return False
        # ORM cascade removes lines and returns
        self.session.delete(sale)
        self.session.flush()
        return True

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
