"""
assistant.py
------------
Rule-based chat assistant. It takes a fresh snapshot of the user's wallets
and recent transactions, picks a canned reply by keyword and fills it in.
No model inference and no external calls.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from data_client import CancelToken, DataClient, fetch_concurrently
from errors import DataAccessError, ValidationError
from formatting import format_currency
from logger import get_logger

log = get_logger("assistant")

RECENT_LIMIT = 20

GREETING = (
    "Hello! I'm your financial assistant. I can help you with insights about your finances, "
    "answer questions, and provide recommendations. How can I assist you today?"
)
NO_DATA_REPLY = (
    "I apologize, but I'm having trouble accessing your financial data at the moment. "
    "Please try again later."
)
ERROR_REPLY = "I apologize, but I encountered an error. Please try again."

TIPS = (
    "Track every transaction to understand where your money goes.",
    "Create a budget and stick to it - allocate 50% to needs, 30% to wants, and 20% to savings.",
    "Build an emergency fund covering 3-6 months of expenses.",
    "Review your subscriptions and cancel unused ones.",
    "Use the envelope method - allocate specific amounts to different spending categories.",
)

# First topic whose keywords appear in the message wins
TOPICS = (
    ("balance", ("balance", "total")),
    ("income", ("income",)),
    ("expenses", ("expense", "spending")),
    ("savings", ("save", "saving")),
    ("wallets", ("wallet",)),
    ("advice", ("advice", "tip", "help")),
)


@dataclass(frozen=True)
class FinancialContext:
    wallets_count: int = 0
    total_balance: float = 0.0
    recent_income: float = 0.0
    recent_expenses: float = 0.0
    transactions_count: int = 0


def build_context(wallets: List[dict], transactions: List[dict]) -> FinancialContext:
    return FinancialContext(
        wallets_count=len(wallets),
        total_balance=sum(float(w.get("balance") or 0) for w in wallets),
        recent_income=sum(float(t.get("amount") or 0) for t in transactions if t.get("type") == "income"),
        recent_expenses=sum(float(t.get("amount") or 0) for t in transactions if t.get("type") == "expense"),
        transactions_count=len(transactions),
    )


def match_topic(message: str) -> Optional[str]:
    lowered = message.lower()
    for topic, keywords in TOPICS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return None


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


@dataclass
class ChatMessage:
    role: str  # 'user' or 'assistant'
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AssistantResponder:
    """Maps a free-text question to a data-backed reply.

    ``rng`` only drives the tip picked for advice questions; pass a seeded
    ``random.Random`` to make it repeatable.
    """

    def __init__(
        self,
        client: DataClient,
        session=None,
        rng: Optional[random.Random] = None,
        currency: str = "BRL",
        locale: str = "pt-BR",
    ):
        self.client = client
        self.session = session
        self.rng = rng or random.Random()
        self.currency = currency
        self.locale = locale

    def _money(self, amount: float) -> str:
        return format_currency(amount, self.currency, self.locale)

    def snapshot(self, cancel: Optional[CancelToken] = None) -> Optional[FinancialContext]:
        """Wallet count and balance plus income/expense over the latest transactions.

        Without a signed-in user there is nothing to read, so the snapshot is empty.
        """
        if self.session is None:
            return FinancialContext()
        mine = {"user_id": self.session.user_id}
        try:
            wallets, transactions = fetch_concurrently(
                [
                    lambda: self.client.select("wallets", filters=mine, columns=("id", "balance")),
                    lambda: self.client.select(
                        "transactions", filters=mine, order_by="date", descending=True,
                        limit=RECENT_LIMIT, columns=("type", "amount"),
                    ),
                ],
                cancel,
            )
        except DataAccessError:
            log.exception("Error fetching financial context")
            return None
        return build_context(wallets, transactions)

    def generate(self, message: str, context: Optional[FinancialContext]) -> str:
        if context is None:
            return NO_DATA_REPLY

        topic = match_topic(message)
        if topic is None:
            return self._fallback(message)
        return getattr(self, f"_reply_{topic}")(context)

    def _reply_balance(self, ctx: FinancialContext) -> str:
        return (
            f"Your current total balance is {self._money(ctx.total_balance)} "
            f"across {ctx.wallets_count} wallet{_plural(ctx.wallets_count)}."
        )

    def _reply_income(self, ctx: FinancialContext) -> str:
        if ctx.recent_income > ctx.recent_expenses:
            verdict = "Great job! Your income is higher than your expenses."
        else:
            verdict = "Consider increasing your income streams or reducing expenses."
        return f"Your recent income is {self._money(ctx.recent_income)}. {verdict}"

    def _reply_expenses(self, ctx: FinancialContext) -> str:
        if ctx.recent_expenses > ctx.recent_income:
            verdict = "You're spending more than you're earning. Consider reviewing your budget."
        else:
            verdict = "Good job managing your expenses!"
        return f"Your recent expenses total {self._money(ctx.recent_expenses)}. {verdict}"

    def _reply_savings(self, ctx: FinancialContext) -> str:
        savings = ctx.recent_income - ctx.recent_expenses
        rate = (savings / ctx.recent_income) * 100 if ctx.recent_income > 0 else 0.0
        return (
            f"Based on your recent transactions, you're saving approximately {self._money(savings)} "
            f"({rate:.1f}% of income). "
            "Financial experts recommend saving at least 20% of your income."
        )

    def _reply_wallets(self, ctx: FinancialContext) -> str:
        return (
            f"You currently have {ctx.wallets_count} wallet{_plural(ctx.wallets_count)} set up. "
            "Consider organizing your finances by creating separate wallets for different purposes "
            "like personal, business, or investments."
        )

    def _reply_advice(self, ctx: FinancialContext) -> str:
        return self.rng.choice(TIPS)

    @staticmethod
    def _fallback(message: str) -> str:
        return (
            f'I understand you\'re asking about "{message}". Here\'s what I can help you with:\n\n'
            "• Check your balance and financial overview\n"
            "• Analyze your income and expenses\n"
            "• Calculate your savings rate\n"
            "• Provide budgeting tips and advice\n"
            "• Help manage your wallets\n\n"
            "Feel free to ask me anything about your finances!"
        )

    def respond(self, message: str) -> str:
        """Answer one message and record the exchange in the chat log."""
        message = (message or "").strip()
        if not message:
            raise ValidationError("Message is empty")

        reply = self.generate(message, self.snapshot())
        self._log_exchange(message, reply)
        return reply

    def _log_exchange(self, message: str, reply: str) -> None:
        if self.session is None:
            return
        try:
            self.client.insert("ai_chat_logs", {
                "user_id": self.session.user_id,
                "message": message,
                "response": reply,
                "context": {},
            })
        except DataAccessError:
            log.exception("Error saving chat log")


class Conversation:
    """Transcript kept by the chat panel for the lifetime of a page session."""

    def __init__(self, responder: AssistantResponder):
        self.responder = responder
        self.messages: List[ChatMessage] = [ChatMessage("assistant", GREETING)]

    def send(self, text: str) -> Optional[ChatMessage]:
        text = (text or "").strip()
        if not text:
            return None
        self.messages.append(ChatMessage("user", text))
        try:
            reply = self.responder.respond(text)
        except Exception:
            log.exception("Error generating assistant response")
            reply = ERROR_REPLY
        answer = ChatMessage("assistant", reply)
        self.messages.append(answer)
        return answer
