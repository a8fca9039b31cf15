import unittest

import jwt

from taskmaxxing import auth
from taskmaxxing.app import app


class ValidatorTests(unittest.TestCase):
    def test_validate_email(self):
        self.assertTrue(auth.validate_email("ada@example.com"))
        self.assertFalse(auth.validate_email("ada@example"))
        self.assertFalse(auth.validate_email("ada example@x.com"))

    def test_validate_password(self):
        self.assertEqual(auth.validate_password("Secret123"), (True, ""))
        cases = {
            "Sh0rt": "at least 8 characters",
            "secret123": "uppercase",
            "SECRET123": "lowercase",
            "SecretPass": "number",
        }
        for password, fragment in cases.items():
            ok, message = auth.validate_password(password)
            self.assertFalse(ok)
            self.assertIn(fragment, message)

    def test_validate_name(self):
        self.assertTrue(auth.validate_name("Al")[0])
        self.assertFalse(auth.validate_name("A")[0])
        self.assertFalse(auth.validate_name("x" * 51)[0])

    def test_sanitize_input(self):
        self.assertEqual(auth.sanitize_input("  <b>Ada</b> "), "bAda/b")

    def test_cookie_max_age(self):
        self.assertEqual(auth.cookie_max_age("forever"), 31536000)
        self.assertEqual(auth.cookie_max_age("week"), 604800)
        self.assertEqual(auth.cookie_max_age(None), 86400)
        self.assertEqual(auth.cookie_max_age("month"), 86400)

    def test_password_hashing(self):
        hashed = auth.hash_password("Secret123")
        self.assertNotEqual(hashed, "Secret123")
        self.assertTrue(auth.verify_password("Secret123", hashed))
        self.assertFalse(auth.verify_password("Secret124", hashed))


class TokenTests(unittest.TestCase):
    def test_round_trip(self):
        with app.app_context():
            token = auth.create_token({"userId": 7, "email": "ada@example.com"})
            payload = auth.verify_token(token)
        self.assertEqual(payload["userId"], 7)
        self.assertIn("exp", payload)

    def test_rejects_foreign_signature(self):
        token = jwt.encode({"userId": 7}, "some-other-secret", algorithm="HS256")
        with app.app_context():
            self.assertIsNone(auth.verify_token(token))
            self.assertIsNone(auth.verify_token("not-a-token"))


if __name__ == "__main__":
    unittest.main()
