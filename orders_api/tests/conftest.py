"""Test fixtures for the Orders API tests."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from orders_api.database import Database
from orders_api.indexer import OrderSearchIndexer
from orders_api.models import Order, OrderItem, Product
from orders_api.producer import OrderEventProducer
from orders_api.products import ProductService
from orders_api.service import OrderService


@pytest.fixture
def database(tmp_path):
    """Create a file-backed SQLite record store with foreign keys enforced.

    Returns:
        Database: Store with an empty schema.
    """
    db = Database(f"sqlite:///{tmp_path / 'orders.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def mock_producer():
    """Kafka publisher stand-in recording every event."""
    return MagicMock(spec=OrderEventProducer)


@pytest.fixture
def mock_indexer():
    """Search indexer stand-in recording every document."""
    return MagicMock(spec=OrderSearchIndexer)


@pytest.fixture
def order_service(database, mock_producer, mock_indexer):
    return OrderService(database, mock_producer, mock_indexer)


@pytest.fixture
def product_service(database):
    return ProductService(database)


@pytest.fixture
def make_product(database):
    """Factory inserting a product and returning its id."""

    def _make(name: str = "Mouse Gamer RGB", price: str = "129.90", stock_qty: int = 10) -> str:
        with database.session_scope() as session:
            product = Product(name=name, price=Decimal(price), stock_qty=stock_qty)
            session.add(product)
            session.flush()
            return product.id

    return _make


@pytest.fixture
def stock_of(database):
    """Read a product's current stock straight from the record store."""

    def _stock(product_id: str) -> int:
        with database.session_scope() as session:
            return session.get(Product, product_id).stock_qty

    return _stock


@pytest.fixture
def reserved_of(database):
    """Sum the quantities of every order item, live or soft-deleted, for a product."""

    def _reserved(product_id: str) -> int:
        with database.session_scope() as session:
            stmt = select(func.coalesce(func.sum(OrderItem.quantity), 0)).where(OrderItem.product_id == product_id)
            return session.scalar(stmt)

    return _reserved


@pytest.fixture
def order_count(database):
    """Count order rows, including soft-deleted ones."""

    def _count() -> int:
        with database.session_scope() as session:
            return session.scalar(select(func.count()).select_from(Order))

    return _count
