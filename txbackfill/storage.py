"""
Record stores over a SQLAlchemy session.

Each store exposes the same three operations the backfill needs:
find, find_one and create. Filters are plain field-equality mappings.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .database import Product, Transaction
from .errors import FatalJobError


class RecordStore:
    """Query/create access to one table."""

    model = None

    def __init__(self, session):
        self.session = session

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def find(self, filters: Dict[str, Any]) -> List[Any]:
        try:
            return self.session.query(self.model).filter_by(**filters).all()
        except SQLAlchemyError as e:
            self._fail(f"Failed to query {self.name}", e)

    def find_one(self, filters: Dict[str, Any]) -> Optional[Any]:
        try:
            return self.session.query(self.model).filter_by(**filters).first()
        except SQLAlchemyError as e:
            self._fail(f"Failed to query {self.name}", e)

    def create(self, fields: Dict[str, Any]) -> Any:
        """
        Insert a record and commit immediately.

        Returns:
            The persisted record, with generated defaults (id) populated
        """
        record = self.model(**fields)
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail(f"Failed to create {self.name} record", e)
        return record

    def _fail(self, message: str, error: Exception):
        self.session.rollback()
        raise FatalJobError(f"{message}: {error}") from error


class ProductStore(RecordStore):
    model = Product


class TransactionStore(RecordStore):
    model = Transaction
