"""Tests for the rule-based financial assistant."""
import random
import unittest

from assistant import (
    ERROR_REPLY,
    GREETING,
    NO_DATA_REPLY,
    TIPS,
    AssistantResponder,
    Conversation,
    FinancialContext,
    build_context,
    match_topic,
)
from auth import UserSession
from data_client import DataClient
from errors import DataAccessError, ValidationError
from support import FailingClient, StoreTestCase

CONTEXT = FinancialContext(
    wallets_count=2,
    total_balance=150.0,
    recent_income=200.0,
    recent_expenses=75.0,
    transactions_count=3,
)


class FixedTip(random.Random):
    def choice(self, seq):
        return seq[2]


class TestTopicMatching(unittest.TestCase):

    def test_keywords_are_case_insensitive(self):
        self.assertEqual(match_topic("What's my BALANCE?"), "balance")
        self.assertEqual(match_topic("How much am I Spending?"), "expenses")

    def test_first_listed_topic_wins(self):
        # mentions both balance and income
        self.assertEqual(match_topic("total income please"), "balance")
        self.assertEqual(match_topic("income vs expense"), "income")
        self.assertEqual(match_topic("wallet tips"), "wallets")

    def test_no_topic(self):
        self.assertIsNone(match_topic("what's the weather like?"))


class TestBuildContext(unittest.TestCase):

    def test_sums_by_type(self):
        ctx = build_context(
            [{"balance": 100.0}, {"balance": 50.0}],
            [{"type": "income", "amount": 200.0}, {"type": "expense", "amount": 50.0}, {"type": "expense", "amount": 25.0}],
        )
        self.assertEqual(ctx, CONTEXT)

    def test_empty(self):
        self.assertEqual(build_context([], []), FinancialContext())


class TestGenerate(unittest.TestCase):

    def setUp(self):
        self.responder = AssistantResponder(FailingClient(), rng=FixedTip())

    def test_balance(self):
        reply = self.responder.generate("What is my balance?", CONTEXT)
        self.assertEqual(reply, "Your current total balance is R$ 150,00 across 2 wallets.")

    def test_balance_single_wallet(self):
        ctx = FinancialContext(wallets_count=1, total_balance=1234.5)
        self.assertEqual(
            self.responder.generate("total?", ctx),
            "Your current total balance is R$ 1.234,50 across 1 wallet.",
        )

    def test_income_verdict(self):
        reply = self.responder.generate("how is my income", CONTEXT)
        self.assertIn("R$ 200,00", reply)
        self.assertIn("Great job!", reply)

        reply = self.responder.generate("income", FinancialContext(recent_income=10, recent_expenses=10))
        self.assertIn("Consider increasing your income streams", reply)

    def test_expense_verdict(self):
        self.assertIn("Good job managing your expenses!", self.responder.generate("my expenses", CONTEXT))
        overspent = FinancialContext(recent_income=10, recent_expenses=30)
        self.assertIn("spending more than you're earning", self.responder.generate("spending", overspent))

    def test_savings_rate(self):
        reply = self.responder.generate("how much do I save?", CONTEXT)
        self.assertIn("R$ 125,00", reply)
        self.assertIn("(62.5% of income)", reply)
        self.assertIn("at least 20%", reply)

    def test_savings_without_income(self):
        reply = self.responder.generate("savings", FinancialContext(recent_expenses=40))
        self.assertIn("(0.0% of income)", reply)
        self.assertIn("-40,00", reply)

    def test_wallets(self):
        self.assertTrue(self.responder.generate("wallets?", CONTEXT).startswith("You currently have 2 wallets set up."))

    def test_advice_uses_injected_rng(self):
        self.assertEqual(self.responder.generate("any tips?", CONTEXT), TIPS[2])

    def test_advice_with_seeded_rng_is_repeatable(self):
        first = AssistantResponder(FailingClient(), rng=random.Random(7)).generate("advice", CONTEXT)
        second = AssistantResponder(FailingClient(), rng=random.Random(7)).generate("advice", CONTEXT)
        self.assertEqual(first, second)
        self.assertIn(first, TIPS)

    def test_fallback_echoes_message(self):
        reply = self.responder.generate("what's the weather like?", CONTEXT)
        self.assertTrue(reply.startswith(
            'I understand you\'re asking about "what\'s the weather like?". Here\'s what I can help you with:'
        ))
        self.assertIn("• Calculate your savings rate", reply)

    def test_missing_context_apologises(self):
        self.assertEqual(self.responder.generate("balance", None), NO_DATA_REPLY)

    def test_other_currency(self):
        responder = AssistantResponder(FailingClient(), currency="USD", locale="en-US")
        self.assertIn("$ 150.00", responder.generate("balance", CONTEXT))


class TestRespond(StoreTestCase):

    def setUp(self):
        super().setUp()
        wallet = self.add_wallet("Main", balance=100.0)
        self.add_wallet("Savings", balance=50.0)
        self.add_transaction(wallet, "income", 200.0)
        self.add_transaction(wallet, "expense", 75.0)
        self.responder = AssistantResponder(self.client, self.session, rng=FixedTip())

    def test_answers_from_live_snapshot(self):
        reply = self.responder.respond("  what's my balance?  ")
        self.assertEqual(reply, "Your current total balance is R$ 150,00 across 2 wallets.")

    def test_snapshot_counts_only_own_data(self):
        other = self.auth.sign_up("bob@example.com", "secret2")
        self.add_wallet("Bob's", balance=999.0, session=other)
        ctx = self.responder.snapshot()
        self.assertEqual((ctx.wallets_count, ctx.total_balance), (2, 150.0))
        self.assertEqual((ctx.recent_income, ctx.recent_expenses, ctx.transactions_count), (200.0, 75.0, 2))

    def test_without_session_nothing_is_read(self):
        other = self.auth.sign_up("bob@example.com", "secret2")
        self.add_wallet("Bob's", balance=1000.0, session=other)

        responder = AssistantResponder(self.client)
        self.assertEqual(responder.snapshot(), FinancialContext())
        self.assertEqual(responder.respond("balance"), "Your current total balance is R$ 0,00 across 0 wallets.")
        self.assertEqual(self.client.select("ai_chat_logs"), [])

    def test_exchange_is_logged(self):
        reply = self.responder.respond("income?")
        [entry] = self.client.select("ai_chat_logs", filters={"user_id": self.session.user_id})
        self.assertEqual(entry["message"], "income?")
        self.assertEqual(entry["response"], reply)

    def test_empty_message_rejected(self):
        with self.assertRaises(ValidationError):
            self.responder.respond("   ")
        self.assertEqual(self.client.select("ai_chat_logs"), [])

    def test_store_failure_apologises(self):
        failing = FailingClient()
        responder = AssistantResponder(failing, self.session)
        with self.assertLogs("finance_tracker.assistant", level="ERROR"):
            self.assertEqual(responder.respond("balance"), NO_DATA_REPLY)
        self.assertIn(("insert", "ai_chat_logs"), failing.calls)

    def test_chat_log_failure_does_not_block_reply(self):
        class ReadOnlyClient(DataClient):
            def insert(self, collection, values):
                raise DataAccessError("read-only")

        responder = AssistantResponder(ReadOnlyClient(self.session_factory), self.session)
        with self.assertLogs("finance_tracker.assistant", level="ERROR"):
            reply = responder.respond("balance")
        self.assertIn("R$ 150,00", reply)


class TestConversation(unittest.TestCase):

    def test_starts_with_greeting(self):
        convo = Conversation(AssistantResponder(FailingClient()))
        self.assertEqual([(m.role, m.content) for m in convo.messages], [("assistant", GREETING)])

    def test_send_appends_user_and_reply(self):
        convo = Conversation(AssistantResponder(FailingClient(), UserSession("u1", "a@example.com")))
        with self.assertLogs("finance_tracker.assistant", level="ERROR"):
            answer = convo.send("balance")
        self.assertEqual(answer.content, NO_DATA_REPLY)
        self.assertEqual([m.role for m in convo.messages], ["assistant", "user", "assistant"])

    def test_blank_input_is_ignored(self):
        convo = Conversation(AssistantResponder(FailingClient()))
        self.assertIsNone(convo.send("  "))
        self.assertEqual(len(convo.messages), 1)

    def test_unexpected_error_becomes_apology(self):
        class Broken(AssistantResponder):
            def respond(self, message):
                raise RuntimeError("boom")

        convo = Conversation(Broken(FailingClient()))
        with self.assertLogs("finance_tracker.assistant", level="ERROR"):
            answer = convo.send("hi")
        self.assertEqual(answer.content, ERROR_REPLY)


if __name__ == "__main__":
    unittest.main()
