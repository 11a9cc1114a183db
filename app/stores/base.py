"""Storage interface used by the sale workflows."""
from abc import ABC, abstractmethod
from typing import List, Optional


class PosStore(ABC):
    """
    What the sale creation/deletion workflows need from persistence.

    Everything written through a store belongs to one transaction that ends
    with commit() or rollback(). Implementations must make decrement_stock a
    single conditional update so two concurrent sales cannot both take the
    last units of an item.
    """

    @abstractmethod
    def get_item(self, item_id: int):
        """Return the inventory item or None."""

    @abstractmethod
    def decrement_stock(self, item_id: int, quantity: int) -> bool:
        """Take quantity units off the item only if at least that many are on hand.

        Returns False when the item does not have enough stock (nothing changed).
        """

    @abstractmethod
    def increment_stock(self, item_id: int, quantity: int) -> bool:
        """Put quantity units back. Returns False if the item no longer exists."""

    @abstractmethod
    def adjust_quantity(self, item_id: int, quantity: int, operation: str) -> Optional[int]:
        """Apply add/subtract/set to one item and return the new quantity (None if missing)."""

    @abstractmethod
    def add_sale(self, sale):
        """Insert a sale header and assign its id."""

    @abstractmethod
    def add_sale_line(self, line):
        """Insert one sale line."""

    @abstractmethod
    def get_sale(self, sale_id: int):
        """Return the sale or None."""

    @abstractmethod
    def get_sale_lines(self, sale_id: int) -> List:
        """Return the lines of a sale, in insertion order."""

    @abstractmethod
    def delete_sale(self, sale_id: int) -> bool:
        """Delete a sale and its lines. Returns False if it does not exist."""

    @abstractmethod
    def commit(self):
        pass

    @abstractmethod
    def rollback(self):
        pass
