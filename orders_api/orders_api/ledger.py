"""Stock debit/credit against the caller's open transaction."""

from .errors import InsufficientStockError, NotFoundError, ValidationFailure
from .logger import logger
from .models import Product
from .repositories import ProductRepository


class StockLedger:
    """Adjusts product stock inside an existing transaction.

    The ledger never commits. Each operation locks the product row
    (``SELECT ... FOR UPDATE``) before reading it, so concurrent orders
    against the same product cannot lose each other's writes.

    Attributes:
        _products: Repository bound to the caller's session.
    """

    def __init__(self, products: ProductRepository):
        self._products = products

    def _load(self, product_id: str, quantity: int) -> Product:
        if quantity <= 0:
            raise ValidationFailure(f"Stock adjustment must be positive, got {quantity}", "product", product_id)
        product = self._products.get_for_update(product_id)
        if product is None:
            raise NotFoundError("product", product_id)
        return product

    def debit(self, product_id: str, quantity: int) -> Product:
        """Take ``quantity`` units out of stock.

        Raises:
            NotFoundError: If the product does not exist.
            InsufficientStockError: If fewer than ``quantity`` units remain.
        """
        product = self._load(product_id, quantity)
        if product.stock_qty < quantity:
            raise InsufficientStockError(product_id, requested=quantity, available=product.stock_qty)
        product.stock_qty -= quantity
        logger.debug(f"Debited {quantity} from product {product_id}, stock now {product.stock_qty}")
        return product

    def credit(self, product_id: str, quantity: int) -> Product:
        """Return ``quantity`` units to stock.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = self._load(product_id, quantity)
        product.stock_qty += quantity
        logger.debug(f"Credited {quantity} to product {product_id}, stock now {product.stock_qty}")
        return product
