"""Per-entity data access bound to one open session."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .models import Order, OrderItem, Product


class ProductRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, product_id: str) -> Optional[Product]:
        return self._session.get(Product, product_id)

    def get_for_update(self, product_id: str) -> Optional[Product]:
        """Load a product and hold a row lock on it until the transaction ends."""
        stmt = select(Product).where(Product.id == product_id).with_for_update().execution_options(populate_existing=True)
        return self._session.scalars(stmt).one_or_none()

    def list_all(self) -> list[Product]:
        return list(self._session.scalars(select(Product).order_by(Product.name)))

    def add(self, product: Product) -> Product:
        self._session.add(product)
        self._session.flush()
        return product

    def delete(self, product: Product) -> None:
        self._session.delete(product)
        self._session.flush()


class OrderRepository:
    def __init__(self, session: Session):
        self._session = session

    def _live(self):
        return (
            select(Order)
            .where(Order.deleted.is_(False))
            .options(selectinload(Order.items).selectinload(OrderItem.product))
        )

    def get_live(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        """Load a non-deleted order with its items and products.

        With ``for_update`` the order row stays locked until the transaction
        ends, serializing concurrent mutations of the same order.
        """
        stmt = self._live().where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update(of=Order).execution_options(populate_existing=True)
        return self._session.scalars(stmt).one_or_none()

    def list_live(self) -> list[Order]:
        return list(self._session.scalars(self._live().order_by(Order.created_at)))

    def add(self, order: Order) -> Order:
        self._session.add(order)
        self._session.flush()
        return order

    def save(self, order: Order) -> Order:
        self._session.flush()
        return order


class OrderItemRepository:
    def __init__(self, session: Session):
        self._session = session

    def add(self, item: OrderItem) -> OrderItem:
        self._session.add(item)
        return item

    def delete(self, item: OrderItem) -> None:
        self._session.delete(item)

    def flush(self) -> None:
        self._session.flush()

    def count_for_product(self, product_id: str) -> int:
        stmt = select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product_id)
        return self._session.scalar(stmt) or 0
