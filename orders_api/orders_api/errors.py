"""Error kinds raised by order and product operations."""

from typing import Optional


class OrdersError(Exception):
    """Base class for failures reported back to the caller.

    Attributes:
        entity: Kind of record involved ("order", "product", "order_item").
        entity_id: Identifier of that record, when known.
    """

    def __init__(self, message: str, entity: Optional[str] = None, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        detail = {"error": type(self).__name__, "message": self.message}
        if self.entity:
            detail["entity"] = self.entity
        if self.entity_id:
            detail["id"] = self.entity_id
        return detail


class NotFoundError(OrdersError):
    """An order, product or order item does not exist."""

    def __init__(self, entity: str, entity_id: Optional[str]):
        label = entity.replace("_", " ").capitalize()
        super().__init__(f"{label} not found: {entity_id}", entity=entity, entity_id=entity_id)


class InsufficientStockError(OrdersError):
    """A debit asked for more units than the product has in stock."""

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            entity="product",
            entity_id=product_id,
        )
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict:
        detail = super().to_dict()
        detail.update(requested=self.requested, available=self.available)
        return detail


class ValidationFailure(OrdersError):
    """A desired item entry is malformed."""


class ProductInUseError(OrdersError):
    """A product cannot be deleted while order items reference it."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product {product_id} is referenced by order items and cannot be deleted",
            entity="product",
            entity_id=product_id,
        )
