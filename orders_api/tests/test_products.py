"""Tests for catalog operations."""

from decimal import Decimal

import pytest

from orders_api.errors import NotFoundError, ProductInUseError
from orders_api.schemas import OrderItemInput, ProductCreate, ProductUpdate


def test_create_and_find_product(product_service):
    created = product_service.create(ProductCreate(name="Hub USB-C 7 em 1", price=Decimal("159.90"), stock_qty=60))

    found = product_service.find_one(created.id)

    assert found.name == "Hub USB-C 7 em 1"
    assert found.price == Decimal("159.90")
    assert found.stock_qty == 60


def test_list_products_sorted_by_name(product_service, make_product):
    make_product("Webcam")
    make_product("Headset")

    assert [product.name for product in product_service.list_products()] == ["Headset", "Webcam"]


def test_partial_update_keeps_other_fields(product_service, make_product):
    product_id = make_product("Mouse", "129.90", 10)

    updated = product_service.update(product_id, ProductUpdate(stock_qty=3))

    assert updated.stock_qty == 3
    assert updated.name == "Mouse"
    assert updated.price == Decimal("129.90")


def test_update_missing_product(product_service):
    with pytest.raises(NotFoundError):
        product_service.update("missing", ProductUpdate(name="Anything"))


def test_delete_product(product_service, make_product):
    product_id = make_product()

    product_service.delete(product_id)

    with pytest.raises(NotFoundError):
        product_service.find_one(product_id)
    with pytest.raises(NotFoundError):
        product_service.delete(product_id)


def test_delete_refused_while_soft_deleted_order_references_product(product_service, order_service, make_product):
    product_id = make_product()
    order = order_service.create([OrderItemInput(product_id=product_id, quantity=1)])
    order_service.delete(order.id)

    with pytest.raises(ProductInUseError) as exc_info:
        product_service.delete(product_id)

    assert exc_info.value.entity_id == product_id
    assert product_service.find_one(product_id).id == product_id
