"""
Tests for storage.py - find/find_one/create over SQLAlchemy sessions.
"""

import pytest
from datetime import datetime

from txbackfill.database import connect
from txbackfill.errors import FatalJobError
from txbackfill.storage import ProductStore, TransactionStore


class TestFind:
    def test_find_filters_by_equality(self, products, add_product):
        add_product("P1", is_sold=True)
        add_product("P2", is_sold=False, sold_to_id=None)
        add_product("P3", is_sold=True, seller_id="OTHER")

        sold = products.find({"is_sold": True})
        sold_by_s = products.find({"is_sold": True, "seller_id": "S"})

        assert {p.id for p in sold} == {"P1", "P3"}
        assert [p.id for p in sold_by_s] == ["P1"]

    def test_find_returns_empty_list(self, products):
        assert products.find({"is_sold": True}) == []

    def test_find_one_returns_none_when_absent(self, transactions):
        assert transactions.find_one({"product_id": "nope"}) is None


class TestCreate:
    def test_create_generates_id(self, transactions, add_product):
        add_product("P1")

        txn = transactions.create({
            "product_id": "P1",
            "seller_id": "S",
            "buyer_id": "B",
            "price": 12.5,
            "status": "completed",
            "payment_method": "cash",
            "transaction_date": datetime(2024, 1, 1),
        })

        assert txn.id
        assert transactions.find_one({"id": txn.id}).price == 12.5

    def test_rejected_write_raises_fatal_error(self, transactions, add_product):
        """A constraint violation surfaces as FatalJobError and the session stays usable."""
        add_product("P1")

        with pytest.raises(FatalJobError, match="Failed to create transactions record"):
            transactions.create({"product_id": "P1", "seller_id": "S"})

        assert transactions.find({}) == []


class TestQueryErrors:
    def test_missing_table_raises_fatal_error(self, tmp_path):
        """Querying a database without the schema is fatal."""
        url = f"sqlite:///{tmp_path / 'empty.db'}"

        with connect(url) as session:
            with pytest.raises(FatalJobError, match="Failed to query products") as exc_info:
                ProductStore(session).find({"is_sold": True})

        assert exc_info.value.__cause__ is not None

    def test_find_one_missing_table(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'empty.db'}"

        with connect(url) as session:
            with pytest.raises(FatalJobError):
                TransactionStore(session).find_one({"product_id": "P1"})
