"""Pydantic models for requests, responses, events and search documents."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import OrderStatus


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProductCreate(CamelModel):
    """Payload for adding a product to the catalog.

    Attributes:
        name (str): Display name.
        price (Decimal): Unit price, exact decimal with at most two places.
        stock_qty (int): Units available, never negative.
    """

    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    stock_qty: int = Field(..., ge=0)

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Mouse Gamer RGB", "price": "129.90", "stockQty": 50}}
    )


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    stock_qty: Optional[int] = Field(None, ge=0)


class ProductView(CamelModel):
    id: str
    name: str
    price: Decimal
    stock_qty: int
    created_at: datetime
    updated_at: datetime


class OrderItemInput(CamelModel):
    """One entry of a desired item list.

    Attributes:
        id (str | None): Existing item to update in place; omit to create a new item.
        product_id (str | None): Product to reference; required when ``id`` is omitted.
        quantity (int): Units wanted, at least one.
        price (Decimal | None): Unit price snapshot; defaults to the product's price.
    """

    id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: int = Field(..., gt=0)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def require_id_or_product(self):
        if self.id is None and self.product_id is None:
            raise ValueError("productId is required when id is omitted")
        return self

    model_config = ConfigDict(
        json_schema_extra={"example": {"productId": "11111111-1111-1111-1111-111111111111", "quantity": 2, "price": "29.99"}}
    )


class OrderCreate(CamelModel):
    """Payload for creating an order.

    Attributes:
        status (OrderStatus | None): Initial status, PENDING when omitted.
        items (list[OrderItemInput]): Items to reserve, at least one.
    """

    status: Optional[OrderStatus] = None
    items: list[OrderItemInput] = Field(..., min_length=1)

    @field_validator("items")
    def reject_item_ids(cls, items):
        """New orders have no items to update, so ids are not accepted."""
        if any(item.id is not None for item in items):
            raise ValueError("items of a new order must not carry an id")
        return items


class OrderUpdate(CamelModel):
    """Payload for updating an order.

    ``items``, when present, is the complete list the order should hold:
    entries with an id are updated, entries without one are created, and
    items left out are removed.
    """

    status: Optional[OrderStatus] = None
    items: Optional[list[OrderItemInput]] = None


class OrderItemView(CamelModel):
    id: str
    product: ProductView
    quantity: int
    price: Decimal


class OrderView(CamelModel):
    id: str
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemView]


class LeanOrderItem(CamelModel):
    """Item projection used by events and search documents."""

    product_id: str
    quantity: int
    price: Decimal


class OrderEvent(CamelModel):
    """Body of order-created and order-updated messages."""

    id: str
    status: OrderStatus
    items: list[LeanOrderItem]


class IndexedOrderDocument(CamelModel):
    """Denormalized order stored in the search index."""

    id: str
    status: OrderStatus
    created_at: datetime
    items: list[LeanOrderItem] = Field(default_factory=list)


class SearchFilters(CamelModel):
    """Search criteria; every filter given must match.

    Attributes:
        id (str | None): Exact order id.
        status (OrderStatus | None): Exact status.
        from_date (datetime | None): Lower bound on ``createdAt``, inclusive.
        to_date (datetime | None): Upper bound on ``createdAt``, inclusive.
        item (str | None): Product id the order must contain.
    """

    id: Optional[str] = None
    status: Optional[OrderStatus] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    item: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.from_date is None or self.to_date is None:
            return self
        if (self.from_date.tzinfo is None) != (self.to_date.tzinfo is None):
            raise ValueError("fromDate and toDate must both carry a timezone or both omit it")
        if self.from_date > self.to_date:
            raise ValueError("fromDate must not be after toDate")
        return self


def lean_items(items) -> list[LeanOrderItem]:
    return [LeanOrderItem(product_id=item.product_id, quantity=item.quantity, price=item.price) for item in items]
