"""Shared fixtures: a throwaway SQLite store per test."""
import tempfile
import unittest
from datetime import date
from pathlib import Path

from auth import AuthService
from data_client import DataClient
from database import init_db, make_engine, make_session_factory
from errors import DataAccessError


class StoreTestCase(unittest.TestCase):
    """Fresh database file, data client and signed-up user for every test."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.engine = make_engine(f"sqlite:///{Path(self._tmpdir.name) / 'test.db'}")
        init_db(self.engine)
        self.session_factory = make_session_factory(self.engine)
        self.client = DataClient(self.session_factory)
        self.auth = AuthService(self.session_factory)
        self.session = self.auth.sign_up("alice@example.com", "secret1", "Alice")

    def tearDown(self):
        self.engine.dispose()
        self._tmpdir.cleanup()

    def add_wallet(self, name="Main", balance=0.0, session=None, **extra):
        values = {"user_id": (session or self.session).user_id, "name": name, "balance": balance}
        values.update(extra)
        return self.client.insert("wallets", values)

    def add_category(self, name, tx_type="expense", color="#F59E0B", user_id="__mine__"):
        return self.client.insert("categories", {
            "user_id": self.session.user_id if user_id == "__mine__" else user_id,
            "name": name,
            "type": tx_type,
            "color": color,
        })

    def add_transaction(self, wallet, tx_type, amount, when=None, category=None, description="Test", session=None):
        return self.client.insert("transactions", {
            "user_id": (session or self.session).user_id,
            "wallet_id": wallet["id"],
            "category_id": category["id"] if category else None,
            "type": tx_type,
            "amount": amount,
            "description": description,
            "date": when or date.today(),
        })


class FailingClient(DataClient):
    """Data client whose every call fails like an unreachable store."""

    def __init__(self):
        super().__init__(session_factory=lambda: None)
        self.calls = []

    def select(self, collection, *args, **kwargs):
        self.calls.append(("select", collection))
        raise DataAccessError("connection refused")

    def insert(self, collection, values):
        self.calls.append(("insert", collection))
        raise DataAccessError("connection refused")

    def update(self, collection, row_id, values, filters=None):
        self.calls.append(("update", collection))
        raise DataAccessError("connection refused")

    def delete(self, collection, row_id, filters=None):
        self.calls.append(("delete", collection))
        raise DataAccessError("connection refused")
