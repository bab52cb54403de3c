"""Product catalog operations."""

from sqlalchemy.exc import IntegrityError

from .database import Database
from .errors import NotFoundError, ProductInUseError
from .logger import logger
from .models import Product
from .repositories import OrderItemRepository, ProductRepository
from .schemas import ProductCreate, ProductUpdate, ProductView


class ProductService:
    """CRUD over the product catalog.

    Stock edited here is the on-hand quantity; orders adjust it through the
    stock ledger instead.
    """

    def __init__(self, database: Database):
        self._database = database

    def create(self, data: ProductCreate) -> ProductView:
        with self._database.session_scope() as session:
            product = ProductRepository(session).add(Product(**data.model_dump()))
            view = ProductView.model_validate(product)
        logger.info(f"Product {view.id} created")
        return view

    def list_products(self) -> list[ProductView]:
        with self._database.session_scope() as session:
            return [ProductView.model_validate(product) for product in ProductRepository(session).list_all()]

    def find_one(self, product_id: str) -> ProductView:
        with self._database.session_scope() as session:
            product = ProductRepository(session).get(product_id)
            if product is None:
                raise NotFoundError("product", product_id)
            return ProductView.model_validate(product)

    def update(self, product_id: str, data: ProductUpdate) -> ProductView:
        with self._database.session_scope() as session:
            products = ProductRepository(session)
            product = products.get_for_update(product_id)
            if product is None:
                raise NotFoundError("product", product_id)
            for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(product, field, value)
            session.flush()
            view = ProductView.model_validate(product)
        logger.info(f"Product {product_id} updated")
        return view

    def delete(self, product_id: str) -> None:
        """Remove a product that no order item references.

        Raises:
            NotFoundError: If the product does not exist.
            ProductInUseError: If order items, live or soft-deleted, reference it.
        """
        try:
            with self._database.session_scope() as session:
                products = ProductRepository(session)
                product = products.get_for_update(product_id)
                if product is None:
                    raise NotFoundError("product", product_id)
                if OrderItemRepository(session).count_for_product(product_id):
                    raise ProductInUseError(product_id)
                products.delete(product)
        except IntegrityError as e:
            raise ProductInUseError(product_id) from e
        logger.info(f"Product {product_id} deleted")
