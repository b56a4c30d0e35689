"""
Database schema and connection management.

Products and transactions live in any SQLAlchemy-supported database
(SQLite locally and in tests).
"""

from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .errors import FatalJobError

Base = declarative_base()


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    ONLINE = "online"


def _new_id() -> str:
    return uuid4().hex


class Product(Base):
    """Catalog product, created and owned by the marketplace."""

    __tablename__ = "products"

    id = Column(String, primary_key=True)
    is_sold = Column(Boolean, nullable=False, default=False)
    seller_id = Column(String, nullable=False)
    sold_to_id = Column(String, nullable=True)  # null while unsold or buyer unknown
    price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    sold_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Transaction(Base):
    """Completed (or pending) sale of a product between a seller and a buyer."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=_new_id)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    seller_id = Column(String, nullable=False)
    buyer_id = Column(String, nullable=False)
    price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    status = Column(String, nullable=False)  # TransactionStatus value
    payment_method = Column(String, nullable=False)  # PaymentMethod value
    transaction_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


def get_engine(database_url: str):
    """
    Create an engine for the given URL.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        SQLAlchemy engine
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url)


def init_database(database_url: str) -> None:
    """
    Initialize database and create tables.

    Args:
        database_url: SQLAlchemy database URL
    """
    engine = get_engine(database_url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()


def get_session(engine):
    """
    Get database session.

    Args:
        engine: Engine returned by get_engine()

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=engine)
    return Session()


@contextmanager
def connect(database_url: str):
    """
    Open the single store connection for a run and yield its session.

    The session is closed and the engine disposed when the block exits,
    whether it finished or raised.

    Raises:
        FatalJobError: If the database cannot be reached
    """
    try:
        engine = get_engine(database_url)
    except (SQLAlchemyError, ValueError, OSError, ImportError) as e:  # ImportError: DBAPI driver not installed
        raise FatalJobError(f"Invalid database URL: {e}") from e

    session = get_session(engine)
    try:
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise FatalJobError(f"Could not connect to database: {e}") from e
        yield session
    finally:
        session.close()
        engine.dispose()
