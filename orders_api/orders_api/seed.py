"""Demo catalog inserted into an empty products table."""

from decimal import Decimal

from .config import load_settings
from .database import Database
from .logger import logger
from .models import Product
from .repositories import ProductRepository

SEED_PRODUCTS = [
    ("Mouse Gamer RGB", "129.90", 50),
    ("Teclado Mecânico", "349.90", 35),
    ("Monitor 27\" IPS", "1399.00", 15),
    ("Headset Bluetooth", "219.90", 40),
    ("Webcam Full HD", "189.90", 25),
    ("Cadeira Ergonômica", "999.00", 8),
    ("Notebook i5 16GB", "3999.00", 5),
    ("Hub USB-C 7 em 1", "159.90", 60),
]


def run_seed(database: Database) -> int:
    """Insert the demo products unless the catalog already has rows.

    Returns:
        int: Number of products inserted.
    """
    database.create_all()
    with database.session_scope() as session:
        products = ProductRepository(session)
        if products.list_all():
            logger.info("Products already present, skipping seed")
            return 0
        for name, price, stock_qty in SEED_PRODUCTS:
            products.add(Product(name=name, price=Decimal(price), stock_qty=stock_qty))
    logger.info(f"Seeded {len(SEED_PRODUCTS)} products")
    return len(SEED_PRODUCTS)


if __name__ == "__main__":
    run_seed(Database(load_settings().database_url))
