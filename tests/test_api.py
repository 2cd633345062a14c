"""Tests for the JSON API."""
import random
from datetime import date

from fastapi.testclient import TestClient

from api_server import app, get_auth, get_client, get_rng
from assistant import TIPS
from support import FailingClient, StoreTestCase

CREDENTIALS = ("alice@example.com", "secret1")


class FirstTip(random.Random):
    def choice(self, seq):
        return seq[0]


class ApiTestCase(StoreTestCase):

    def setUp(self):
        super().setUp()
        app.dependency_overrides[get_client] = lambda: self.client
        app.dependency_overrides[get_auth] = lambda: self.auth
        app.dependency_overrides[get_rng] = lambda: FirstTip()
        self.api = TestClient(app)

        wallet = self.add_wallet("Main", balance=150.0)
        food = self.add_category("Food", color="#EF4444")
        self.add_transaction(wallet, "income", 200.0, when=date(2026, 9, 1))
        self.add_transaction(wallet, "expense", 75.0, when=date(2026, 10, 2), category=food)

    def tearDown(self):
        app.dependency_overrides.clear()
        super().tearDown()


class TestAuthRequired(ApiTestCase):

    def test_health_is_public(self):
        self.assertEqual(self.api.get("/health").json(), {"status": "ok"})

    def test_missing_credentials(self):
        self.assertEqual(self.api.get("/reports/summary").status_code, 401)

    def test_wrong_password(self):
        resp = self.api.get("/reports/summary", auth=("alice@example.com", "nope!!"))
        self.assertEqual(resp.status_code, 401)

    def test_request_session_is_closed(self):
        self.api.get("/health")
        self.api.get("/reports/summary", auth=CREDENTIALS)
        # only the session opened by the fixture's sign-up remains
        self.assertEqual(len(self.auth._active), 1)

    def test_each_request_sees_only_its_users_data(self):
        bob = self.auth.sign_up("bob@example.com", "secret2")
        self.add_wallet("Bob's", balance=1000.0, session=bob)
        alice = self.api.post("/assistant", json={"message": "balance"}, auth=CREDENTIALS).json()
        bob_reply = self.api.post("/assistant", json={"message": "balance"}, auth=("bob@example.com", "secret2")).json()
        self.assertIn("R$ 150,00", alice["response"])
        self.assertIn("R$ 1.000,00", bob_reply["response"])


class TestReports(ApiTestCase):

    def test_summary(self):
        resp = self.api.get("/reports/summary", params={"today": "2026-10-19"}, auth=CREDENTIALS)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual([m["month"] for m in body["monthly"]],
                         ["May 2026", "Jun 2026", "Jul 2026", "Aug 2026", "Sep 2026", "Oct 2026"])
        self.assertEqual(body["monthly"][4], {"month": "Sep 2026", "income": 200.0, "expense": 0.0, "net": 200.0})
        self.assertEqual(body["categories"], [{"name": "Food", "value": 75.0, "color": "#EF4444"}])
        self.assertEqual((body["total_income"], body["total_expense"], body["net_balance"]), (200.0, 75.0, 125.0))

    def test_export(self):
        resp = self.api.get("/reports/export.csv", params={"today": "2026-10-19"}, auth=CREDENTIALS)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("text/csv"))
        self.assertIn("financial-report-2026-10-19.csv", resp.headers["content-disposition"])
        lines = resp.text.splitlines()
        self.assertEqual(lines[0], "Month,Income,Expense,Net")
        self.assertEqual(lines[-1], "Oct 2026,0.00,75.00,-75.00")
        self.assertEqual(len(lines), 7)

    def test_store_outage_returns_empty_report(self):
        app.dependency_overrides[get_client] = lambda: FailingClient()
        with self.assertLogs("finance_tracker.reports", level="ERROR"):
            resp = self.api.get("/reports/summary", auth=CREDENTIALS)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["monthly"], [])


class TestAssistant(ApiTestCase):

    def test_balance_question(self):
        resp = self.api.post("/assistant", json={"message": "What is my balance?"}, auth=CREDENTIALS)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["response"], "Your current total balance is R$ 150,00 across 1 wallet.")

    def test_advice_uses_injected_rng(self):
        resp = self.api.post("/assistant", json={"message": "any advice?"}, auth=CREDENTIALS)
        self.assertEqual(resp.json()["response"], TIPS[0])

    def test_blank_message_rejected(self):
        resp = self.api.post("/assistant", json={"message": "   "}, auth=CREDENTIALS)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(self.client.select("ai_chat_logs"), [])

    def test_exchange_logged(self):
        self.api.post("/assistant", json={"message": "income?"}, auth=CREDENTIALS)
        [entry] = self.client.select("ai_chat_logs")
        self.assertEqual(entry["user_id"], self.session.user_id)
