"""Tests for seeding default categories and the demo account."""
from seed_db import DEFAULT_CATEGORIES, DEMO_EMAIL, DEMO_PASSWORD, seed_categories, seed_demo_user
from support import StoreTestCase


class TestSeed(StoreTestCase):

    def test_default_categories_are_shared(self):
        self.assertEqual(seed_categories(self.session_factory), len(DEFAULT_CATEGORIES))
        rows = self.client.select("categories", filters={"user_id": None})
        self.assertEqual(len(rows), len(DEFAULT_CATEGORIES))
        self.assertEqual({r["type"] for r in rows}, {"income", "expense"})

    def test_seeding_twice_adds_nothing(self):
        seed_categories(self.session_factory)
        self.assertEqual(seed_categories(self.session_factory), 0)

    def test_demo_user_created_once(self):
        self.assertTrue(seed_demo_user(self.session_factory))
        self.assertFalse(seed_demo_user(self.session_factory))
        self.assertEqual(self.auth.sign_in(DEMO_EMAIL, DEMO_PASSWORD).email, DEMO_EMAIL)
