"""Tests for desired-item reconciliation."""

from decimal import Decimal

import pytest

from orders_api.errors import InsufficientStockError, NotFoundError, ValidationFailure
from orders_api.models import Order
from orders_api.reconciler import OrderReconciler
from orders_api.repositories import OrderRepository
from orders_api.schemas import OrderItemInput, ProductUpdate


@pytest.fixture
def new_order(database):
    """Create an order through the reconciler and return its id and item ids by product."""

    def _create(*entries: OrderItemInput) -> tuple[str, dict[str, str]]:
        with database.session_scope() as session:
            order = OrderRepository(session).add(Order())
            items = OrderReconciler.for_session(session).reconcile(order, list(entries))
            return order.id, {item.product_id: item.id for item in items}

    return _create


@pytest.fixture
def reconcile(database):
    """Apply a desired list to an existing order and return the resulting items."""

    def _reconcile(order_id: str, *entries: OrderItemInput):
        with database.session_scope() as session:
            order = OrderRepository(session).get_live(order_id, for_update=True)
            items = OrderReconciler.for_session(session).reconcile(order, list(entries))
            return [(item.id, item.product_id, item.quantity, item.price) for item in items]

    return _reconcile


def test_create_debits_every_new_item(new_order, make_product, stock_of):
    mouse = make_product("Mouse", "129.90", 10)
    keyboard = make_product("Keyboard", "349.90", 5)

    _, item_ids = new_order(
        OrderItemInput(product_id=mouse, quantity=2),
        OrderItemInput(product_id=keyboard, quantity=5, price=Decimal("300.00")),
    )

    assert set(item_ids) == {mouse, keyboard}
    assert stock_of(mouse) == 8
    assert stock_of(keyboard) == 0


def test_price_snapshot_survives_catalog_changes(new_order, reconcile, make_product, product_service):
    mouse = make_product("Mouse", "129.90", 10)
    order_id, item_ids = new_order(OrderItemInput(product_id=mouse, quantity=1))

    product_service.update(mouse, ProductUpdate(price=Decimal("99.90")))
    items = reconcile(
        order_id,
        OrderItemInput(id=item_ids[mouse], quantity=2),
        OrderItemInput(product_id=mouse, quantity=1),
    )

    prices = {item_id: price for item_id, _, _, price in items}
    assert prices.pop(item_ids[mouse]) == Decimal("129.90")
    assert list(prices.values()) == [Decimal("99.90")]


def test_increase_debits_only_the_difference(new_order, reconcile, make_product, stock_of):
    p1 = make_product(stock_qty=10)
    order_id, item_ids = new_order(OrderItemInput(product_id=p1, quantity=2))
    assert stock_of(p1) == 8

    items = reconcile(order_id, OrderItemInput(id=item_ids[p1], product_id=p1, quantity=5))

    assert stock_of(p1) == 5
    assert [(item_id, quantity) for item_id, _, quantity, _ in items] == [(item_ids[p1], 5)]


def test_decrease_credits_the_difference(new_order, reconcile, make_product, stock_of):
    p1 = make_product(stock_qty=10)
    order_id, item_ids = new_order(OrderItemInput(product_id=p1, quantity=6))

    reconcile(order_id, OrderItemInput(id=item_ids[p1], quantity=1))

    assert stock_of(p1) == 9


def test_omitted_items_are_deleted_and_credited(new_order, reconcile, make_product, stock_of):
    p1 = make_product("P1", stock_qty=10)
    p2 = make_product("P2", stock_qty=10)
    order_id, item_ids = new_order(
        OrderItemInput(product_id=p1, quantity=2),
        OrderItemInput(product_id=p2, quantity=1),
    )
    assert stock_of(p2) == 9

    items = reconcile(order_id, OrderItemInput(id=item_ids[p1], product_id=p1, quantity=2))

    assert [item_id for item_id, *_ in items] == [item_ids[p1]]
    assert stock_of(p1) == 8
    assert stock_of(p2) == 10


def test_product_change_moves_the_full_quantity(new_order, reconcile, make_product, stock_of):
    p1 = make_product("P1", "10.00", stock_qty=10)
    p2 = make_product("P2", "25.50", stock_qty=10)
    order_id, item_ids = new_order(OrderItemInput(product_id=p1, quantity=2))

    [(item_id, product_id, quantity, price)] = reconcile(
        order_id, OrderItemInput(id=item_ids[p1], product_id=p2, quantity=3)
    )

    assert (item_id, product_id, quantity) == (item_ids[p1], p2, 3)
    assert price == Decimal("25.50")
    assert stock_of(p1) == 10
    assert stock_of(p2) == 7


def test_moves_within_one_product_are_netted(new_order, reconcile, make_product, stock_of):
    """Dropping one item and adding another for the same product only debits the net amount."""
    p1 = make_product(stock_qty=4)
    order_id, _ = new_order(OrderItemInput(product_id=p1, quantity=4))
    assert stock_of(p1) == 0

    reconcile(order_id, OrderItemInput(product_id=p1, quantity=3))

    assert stock_of(p1) == 1


def test_unknown_item_id_is_an_error(new_order, reconcile, make_product, stock_of):
    p1 = make_product(stock_qty=10)
    order_id, _ = new_order(OrderItemInput(product_id=p1, quantity=2))

    with pytest.raises(NotFoundError) as exc_info:
        reconcile(order_id, OrderItemInput(id="not-an-item", product_id=p1, quantity=2))

    assert exc_info.value.entity == "order_item"
    assert exc_info.value.entity_id == "not-an-item"
    assert stock_of(p1) == 8


def test_item_of_another_order_is_not_found(new_order, reconcile, make_product):
    p1 = make_product(stock_qty=10)
    order_a, _ = new_order(OrderItemInput(product_id=p1, quantity=1))
    _, other_items = new_order(OrderItemInput(product_id=p1, quantity=1))

    with pytest.raises(NotFoundError):
        reconcile(order_a, OrderItemInput(id=other_items[p1], quantity=1))


def test_unknown_product_is_an_error(new_order, make_product, stock_of):
    p1 = make_product(stock_qty=10)

    with pytest.raises(NotFoundError) as exc_info:
        new_order(OrderItemInput(product_id=p1, quantity=2), OrderItemInput(product_id="ghost", quantity=1))

    assert exc_info.value.entity_id == "ghost"
    assert stock_of(p1) == 10


def test_shortage_rolls_back_every_change(new_order, reconcile, make_product, stock_of, reserved_of):
    p1 = make_product("P1", stock_qty=10)
    p2 = make_product("P2", stock_qty=5)
    order_id, item_ids = new_order(OrderItemInput(product_id=p1, quantity=2))

    with pytest.raises(InsufficientStockError):
        reconcile(
            order_id,
            OrderItemInput(id=item_ids[p1], quantity=1),
            OrderItemInput(product_id=p2, quantity=6),
        )

    assert stock_of(p1) == 8
    assert stock_of(p2) == 5
    assert reserved_of(p1) == 2
    assert reserved_of(p2) == 0


def test_entry_without_id_or_product_is_rejected(new_order, make_product):
    make_product()
    entry = OrderItemInput.model_construct(id=None, product_id=None, quantity=1, price=None)

    with pytest.raises(ValidationFailure):
        new_order(entry)


def test_duplicate_item_ids_are_rejected(new_order, reconcile, make_product):
    p1 = make_product(stock_qty=10)
    order_id, item_ids = new_order(OrderItemInput(product_id=p1, quantity=1))

    with pytest.raises(ValidationFailure):
        reconcile(
            order_id,
            OrderItemInput(id=item_ids[p1], quantity=1),
            OrderItemInput(id=item_ids[p1], quantity=2),
        )
