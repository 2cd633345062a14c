"""Tests for page routing and redirects."""
import unittest

from routes import PROTECTED_ROUTES, PUBLIC_ROUTES, normalize_path, resolve


class TestResolve(unittest.TestCase):

    def test_protected_pages_need_a_session(self):
        for path in PROTECTED_ROUTES:
            with self.subTest(path=path):
                self.assertEqual(resolve(path, signed_in=False), "/login")
                self.assertEqual(resolve(path, signed_in=True), path)

    def test_public_pages_skipped_when_signed_in(self):
        for path in PUBLIC_ROUTES:
            with self.subTest(path=path):
                self.assertEqual(resolve(path, signed_in=False), path)
                self.assertEqual(resolve(path, signed_in=True), "/")

    def test_unknown_paths_go_home(self):
        self.assertEqual(resolve("/nope", signed_in=True), "/")
        self.assertEqual(resolve("/nope", signed_in=False), "/login")
        self.assertEqual(resolve(None, signed_in=True), "/")

    def test_normalize_path(self):
        self.assertEqual(normalize_path("wallets/"), "/wallets")
        self.assertEqual(normalize_path("/reports?x=1"), "/reports")
        self.assertEqual(normalize_path(""), "/")


if __name__ == "__main__":
    unittest.main()
