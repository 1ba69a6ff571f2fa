"""Unit tests for app.core.security: bcrypt hashing and password strength rules."""

import unittest

from app.core.security import (
    check_password_strength,
    hash_password,
    validate_password_strength,
    verify_password,
)
from app.services.exceptions import WeakPasswordError

STRONG = "Abcdef1!"


class TestHashPassword(unittest.TestCase):
    def test_hash_is_not_plaintext_and_verifies(self) -> None:
        hashed = hash_password(STRONG, rounds=4)
        self.assertNotIn(STRONG, hashed)
        self.assertTrue(hashed.startswith("$2"))
        self.assertTrue(verify_password(STRONG, hashed))

    def test_same_password_gets_different_salts(self) -> None:
        self.assertNotEqual(hash_password(STRONG, rounds=4), hash_password(STRONG, rounds=4))

    def test_rounds_are_encoded_in_hash(self) -> None:
        self.assertIn("$05$", hash_password(STRONG, rounds=5))

    def test_mismatch_returns_false(self) -> None:
        hashed = hash_password(STRONG, rounds=4)
        self.assertFalse(verify_password("Abcdef1?", hashed))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(verify_password(STRONG, "not-a-bcrypt-hash"))
        self.assertFalse(verify_password(STRONG, ""))


class TestPasswordStrength(unittest.TestCase):
    """A password with every class is accepted; dropping any one class is reported."""

    def test_strong_password_has_no_missing_requirements(self) -> None:
        self.assertEqual(check_password_strength(STRONG), [])
        validate_password_strength(STRONG)

    def test_each_missing_class_is_named(self) -> None:
        cases = {
            "abcdef1!": "uppercase",
            "ABCDEF1!": "lowercase",
            "Abcdefg!": "digit",
            "Abcdefg1": "symbol",
            "Abc1!": "length",
        }
        for password, requirement in cases.items():
            with self.subTest(password=password):
                self.assertEqual(check_password_strength(password), [requirement])
                with self.assertRaises(WeakPasswordError) as ctx:
                    validate_password_strength(password)
                self.assertEqual(ctx.exception.missing, [requirement])

    def test_several_missing_classes_are_all_reported(self) -> None:
        with self.assertRaises(WeakPasswordError) as ctx:
            validate_password_strength("abc")
        self.assertEqual(ctx.exception.missing, ["length", "uppercase", "digit", "symbol"])
        self.assertIn("uppercase letter", ctx.exception.message)
        self.assertIn("special character", ctx.exception.message)

    def test_symbol_must_come_from_allowed_set(self) -> None:
        self.assertEqual(check_password_strength("Abcdefg1~"), ["symbol"])
        self.assertEqual(check_password_strength('Abcdefg1"'), [])

    def test_overlong_password_is_rejected(self) -> None:
        self.assertIn("max_length", check_password_strength(STRONG + "a" * 130))


if __name__ == "__main__":
    unittest.main()
