"""Turns a desired item list into item upserts, deletes and stock moves."""

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationFailure
from .ledger import StockLedger
from .logger import logger
from .models import Order, OrderItem, Product
from .repositories import OrderItemRepository, ProductRepository


class DesiredItem(Protocol):
    """Shape of one entry of a desired item list.

    ``id`` set means "update this item in place"; ``id`` unset means
    "create a new item for ``product_id``". ``price`` unset keeps the
    current snapshot, or takes the product's price for new references.
    """

    id: Optional[str]
    product_id: Optional[str]
    quantity: int
    price: Optional[Decimal]


class OrderReconciler:
    """Applies a desired item list to an order inside the caller's transaction.

    Existing items named by id are updated, entries without an id become new
    items, and existing items left out of the list are deleted. Stock moves
    for all of these are netted per product and applied through the ledger
    before any item row changes, so a shortage is detected before anything
    is written. Product rows are locked in ascending id order.
    """

    def __init__(self, products: ProductRepository, items: OrderItemRepository, ledger: StockLedger):
        self._products = products
        self._items = items
        self._ledger = ledger

    @classmethod
    def for_session(cls, session: Session) -> "OrderReconciler":
        products = ProductRepository(session)
        return cls(products, OrderItemRepository(session), StockLedger(products))

    def reconcile(self, order: Order, desired_items: Sequence[DesiredItem]) -> list[OrderItem]:
        """Make ``order.items`` match ``desired_items``.

        Args:
            order: Order loaded in the current session.
            desired_items: Complete list of items the order should hold.

        Returns:
            list[OrderItem]: The order's items after reconciliation.

        Raises:
            ValidationFailure: If an entry is malformed.
            NotFoundError: If an item id or product id does not exist.
            InsufficientStockError: If a product cannot cover its net debit.
        """
        self._validate(desired_items)

        existing = {item.id: item for item in order.items}
        deltas: dict[str, int] = defaultdict(int)
        updates: list[tuple[OrderItem, DesiredItem, str]] = []
        creates: list[DesiredItem] = []

        for entry in desired_items:
            if entry.id is None:
                deltas[entry.product_id] += entry.quantity
                creates.append(entry)
                continue

            item = existing.get(entry.id)
            if item is None:
                raise NotFoundError("order_item", entry.id)
            target_product_id = entry.product_id or item.product_id
            if target_product_id != item.product_id:
                deltas[item.product_id] -= item.quantity
                deltas[target_product_id] += entry.quantity
            else:
                deltas[target_product_id] += entry.quantity - item.quantity
            updates.append((item, entry, target_product_id))

        kept_ids = {entry.id for entry in desired_items if entry.id is not None}
        removed = [item for item_id, item in existing.items() if item_id not in kept_ids]
        for item in removed:
            deltas[item.product_id] -= item.quantity

        products = self._apply_stock_deltas(deltas)

        for item in removed:
            order.items.remove(item)
            self._items.delete(item)

        for item, entry, target_product_id in updates:
            if target_product_id != item.product_id:
                product = products[target_product_id]
                item.product = product
                item.price = entry.price if entry.price is not None else product.price
            elif entry.price is not None:
                item.price = entry.price
            item.quantity = entry.quantity

        for entry in creates:
            product = products[entry.product_id]
            item = OrderItem(
                product=product,
                quantity=entry.quantity,
                price=entry.price if entry.price is not None else product.price,
            )
            order.items.append(item)
            self._items.add(item)

        self._items.flush()
        logger.info(
            f"Reconciled order {order.id} | created={len(creates)} | updated={len(updates)} | removed={len(removed)}"
        )
        return list(order.items)

    def _apply_stock_deltas(self, deltas: dict[str, int]) -> dict[str, Product]:
        """Debit positive deltas, credit negative ones; lock untouched products too."""
        products: dict[str, Product] = {}
        for product_id in sorted(deltas):
            delta = deltas[product_id]
            if delta > 0:
                products[product_id] = self._ledger.debit(product_id, delta)
            elif delta < 0:
                products[product_id] = self._ledger.credit(product_id, -delta)
            else:
                product = self._products.get_for_update(product_id)
                if product is None:
                    raise NotFoundError("product", product_id)
                products[product_id] = product
        return products

    @staticmethod
    def _validate(desired_items: Sequence[DesiredItem]) -> None:
        seen_ids: set[str] = set()
        for position, entry in enumerate(desired_items):
            if entry.id is None and not entry.product_id:
                raise ValidationFailure(f"Item {position} needs either an id or a product id")
            if not isinstance(entry.quantity, int) or entry.quantity <= 0:
                raise ValidationFailure(f"Item {position} quantity must be a positive integer, got {entry.quantity}")
            if entry.price is not None and Decimal(entry.price) < 0:
                raise ValidationFailure(f"Item {position} price must not be negative, got {entry.price}")
            if entry.id is not None:
                if entry.id in seen_ids:
                    raise ValidationFailure(f"Order item {entry.id} appears more than once", "order_item", entry.id)
                seen_ids.add(entry.id)
