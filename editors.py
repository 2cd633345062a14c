"""
editors.py
----------
Create/update/delete lifecycles for wallets and transactions.

Every successful write is followed by a full reload of the affected list;
there is no local patching. A failed write is logged, the reload is
skipped and the editor's rows stay as they were.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from data_client import CancelToken, DataClient, fetch_concurrently, parse_date
from errors import DataAccessError, ValidationError
from logger import get_logger

log = get_logger("editors")

WALLET_TYPES = ("personal", "business", "investment")
WALLET_COLORS = ("#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6", "#EC4899", "#06B6D4", "#84CC16")
DEFAULT_WALLET_COLOR = WALLET_COLORS[0]
DEFAULT_CURRENCY = "BRL"

TRANSACTION_TYPES = ("income", "expense")
TYPE_FILTERS = ("all",) + TRANSACTION_TYPES


# --- Forms ---

@dataclass
class WalletForm:
    name: str = ""
    type: str = "personal"
    color: str = DEFAULT_WALLET_COLOR
    currency: str = DEFAULT_CURRENCY
    balance: float = 0.0

    @classmethod
    def from_row(cls, row: dict) -> "WalletForm":
        return cls(
            name=row.get("name") or "",
            type=row.get("type") or "personal",
            color=row.get("color") or DEFAULT_WALLET_COLOR,
            currency=row.get("currency") or DEFAULT_CURRENCY,
            balance=float(row.get("balance") or 0),
        )

    def to_values(self) -> Dict[str, object]:
        name = (self.name or "").strip()
        if not name:
            raise ValidationError("Wallet name is required")
        if self.type not in WALLET_TYPES:
            raise ValidationError(f"Wallet type must be one of: {', '.join(WALLET_TYPES)}")
        currency = (self.currency or "").strip().upper()
        if len(currency) != 3:
            raise ValidationError("Currency must be a 3-letter code")
        try:
            balance = round(float(self.balance), 2)
        except (TypeError, ValueError):
            raise ValidationError("Balance must be a number") from None
        return {
            "name": name,
            "type": self.type,
            "color": self.color or DEFAULT_WALLET_COLOR,
            "currency": currency,
            "balance": balance,
        }


@dataclass
class TransactionForm:
    type: str = "expense"
    amount: str = ""
    description: str = ""
    date: date = field(default_factory=date.today)
    wallet_id: str = ""
    category_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "TransactionForm":
        return cls(
            type=row.get("type") or "expense",
            amount=str(row.get("amount") if row.get("amount") is not None else ""),
            description=row.get("description") or "",
            date=parse_date(row.get("date")) or date.today(),
            wallet_id=row.get("wallet_id") or "",
            category_id=row.get("category_id") or None,
        )

    def set_type(self, tx_type: str) -> None:
        """Switch income/expense. Any chosen category belongs to the old type, so it is cleared."""
        if tx_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown transaction type '{tx_type}'")
        self.type = tx_type
        self.category_id = None

    def available_categories(self, categories: List[dict]) -> List[dict]:
        return [c for c in categories if c.get("type") == self.type]

    def to_values(self) -> Dict[str, object]:
        if self.type not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown transaction type '{self.type}'")
        try:
            amount = round(float(self.amount), 2)
        except (TypeError, ValueError):
            raise ValidationError("Amount is required") from None
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        description = (self.description or "").strip()
        if not description:
            raise ValidationError("Description is required")
        if not self.wallet_id:
            raise ValidationError("Select a wallet")
        tx_date = parse_date(self.date)
        if tx_date is None:
            raise ValidationError("Date is required")
        return {
            "type": self.type,
            "amount": amount,
            "description": description,
            "date": tx_date,
            "wallet_id": self.wallet_id,
            "category_id": self.category_id or None,
        }


def filter_by_type(transactions: List[dict], filter_type: str = "all") -> List[dict]:
    if filter_type == "all":
        return list(transactions)
    return [t for t in transactions if t.get("type") == filter_type]


# --- Editors ---

class _EntityEditor:
    collection = ""
    entity = ""

    def __init__(self, client: DataClient, session, cancel: Optional[CancelToken] = None):
        self.client = client
        self.session = session
        self.cancel = cancel

    @property
    def _mine(self) -> dict:
        return {"user_id": self.session.user_id}

    def load(self) -> bool:
        raise NotImplementedError

    def _mutate_then_reload(self, action: str, mutation: Callable[[], object]) -> bool:
        """Run one write and, only if it went through, reload the list."""
        try:
            mutation()
        except DataAccessError:
            log.exception("Error %s %s", action, self.entity)
            return False
        log.info("%s %s", action.capitalize(), self.entity)
        self.load()
        return True

    def create(self, form) -> bool:
        values = form.to_values()
        values["user_id"] = self.session.user_id
        return self._mutate_then_reload("creating", lambda: self.client.insert(self.collection, values))

    def update(self, row_id: str, form) -> bool:
        values = form.to_values()
        return self._mutate_then_reload(
            "updating", lambda: self.client.update(self.collection, row_id, values, filters=self._mine),
        )

    def delete(self, row_id: str, confirmed: bool = False) -> bool:
        """Hard delete. Nothing happens unless the user confirmed."""
        if not confirmed:
            return False
        return self._mutate_then_reload(
            "deleting", lambda: self.client.delete(self.collection, row_id, filters=self._mine),
        )


class WalletEditor(_EntityEditor):
    collection = "wallets"
    entity = "wallet"

    def __init__(self, client: DataClient, session, cancel: Optional[CancelToken] = None):
        super().__init__(client, session, cancel)
        self.wallets: List[dict] = []

    def load(self) -> bool:
        try:
            [wallets] = fetch_concurrently(
                [lambda: self.client.select(self.collection, filters=self._mine, order_by="created_at")],
                self.cancel,
            )
        except DataAccessError:
            log.exception("Error fetching wallets")
            return False
        self.wallets = wallets
        return True

    def new_form(self) -> WalletForm:
        return WalletForm()

    def edit_form(self, wallet: dict) -> WalletForm:
        return WalletForm.from_row(wallet)


class TransactionEditor(_EntityEditor):
    collection = "transactions"
    entity = "transaction"

    def __init__(self, client: DataClient, session, cancel: Optional[CancelToken] = None):
        super().__init__(client, session, cancel)
        self.transactions: List[dict] = []
        self.wallets: List[dict] = []
        self.categories: List[dict] = []

    def load(self) -> bool:
        try:
            transactions, wallets, categories = fetch_concurrently(
                [
                    lambda: self.client.select(self.collection, filters=self._mine, order_by="date", descending=True),
                    lambda: self.client.select(
                        "wallets", filters=self._mine, order_by="created_at", columns=("id", "name"),
                    ),
                    # shared defaults have no owner
                    lambda: self.client.select(
                        "categories", filters={"user_id": [self.session.user_id, None]},
                        order_by="name", columns=("id", "name", "type"),
                    ),
                ],
                self.cancel,
            )
        except DataAccessError:
            log.exception("Error fetching transactions")
            return False
        self.transactions = transactions
        self.wallets = wallets
        self.categories = categories
        return True

    def new_form(self) -> TransactionForm:
        form = TransactionForm()
        if self.wallets:
            form.wallet_id = self.wallets[0]["id"]
        return form

    def edit_form(self, transaction: dict) -> TransactionForm:
        return TransactionForm.from_row(transaction)

    def category_options(self, form: TransactionForm) -> List[dict]:
        return form.available_categories(self.categories)

    def _check_references(self, form: TransactionForm) -> None:
        """The wallet and category must be ones this editor loaded for the user."""
        if form.wallet_id not in {w["id"] for w in self.wallets}:
            raise ValidationError("Select one of your wallets")
        if form.category_id and form.category_id not in {c["id"] for c in self.category_options(form)}:
            raise ValidationError("Select one of your categories")

    def create(self, form: TransactionForm) -> bool:
        self._check_references(form)
        return super().create(form)

    def update(self, row_id: str, form: TransactionForm) -> bool:
        self._check_references(form)
        return super().update(row_id, form)
