"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime

from txbackfill.database import Product, Transaction, connect, init_database
from txbackfill.logger import StructuredLogger, reset_logger
from txbackfill.storage import ProductStore, TransactionStore


@pytest.fixture(autouse=True)
def fresh_logger():
    """Each test starts without a cached global logger."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def db_url(tmp_path) -> str:
    """URL of an initialized, empty SQLite database."""
    url = f"sqlite:///{tmp_path / 'marketplace.db'}"
    init_database(url)
    return url


@pytest.fixture
def session(db_url):
    with connect(db_url) as session:
        yield session


@pytest.fixture
def products(session) -> ProductStore:
    return ProductStore(session)


@pytest.fixture
def transactions(session) -> TransactionStore:
    return TransactionStore(session)


@pytest.fixture
def quiet_logger(tmp_path) -> StructuredLogger:
    """Logger writing only to a file under tmp_path."""
    return StructuredLogger(name="test", log_dir=tmp_path / "logs", enable_console=False)


@pytest.fixture
def sold_at() -> datetime:
    return datetime(2024, 3, 1, 12, 30)


@pytest.fixture
def add_product(session):
    """Insert a product row directly and return it."""

    def _add(product_id, is_sold=True, seller_id="S", sold_to_id="B", price=100.0, sold_at=None):
        product = Product(
            id=product_id,
            is_sold=is_sold,
            seller_id=seller_id,
            sold_to_id=sold_to_id,
            price=price,
            sold_at=sold_at,
        )
        session.add(product)
        session.commit()
        return product

    return _add


@pytest.fixture
def count_transactions(session):
    def _count(**filters) -> int:
        return session.query(Transaction).filter_by(**filters).count()

    return _count
