import unittest
from datetime import timedelta

from fitsnap.utils.security import (
    SHARE_TOKEN_ALPHABET,
    SHARE_TOKEN_LENGTH,
    create_access_token,
    decode_access_token,
    generate_share_token,
    hash_password,
    is_well_formed_share_token,
    verify_password,
)


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        self.assertNotEqual(hashed, "correct horse")
        self.assertTrue(verify_password("correct horse", hashed))
        self.assertFalse(verify_password("wrong horse", hashed))


class AccessTokenTests(unittest.TestCase):
    def test_round_trip(self):
        payload = decode_access_token(create_access_token(42))
        self.assertIsNotNone(payload)
        self.assertEqual(payload.sub, 42)

    def test_expired_token_is_rejected(self):
        token = create_access_token(42, expires_delta=timedelta(seconds=-10))
        self.assertIsNone(decode_access_token(token))

    def test_garbage_token_is_rejected(self):
        self.assertIsNone(decode_access_token("not-a-jwt"))


class ShareTokenTests(unittest.TestCase):
    def test_length_and_alphabet(self):
        token = generate_share_token()
        self.assertEqual(len(token), SHARE_TOKEN_LENGTH)
        self.assertEqual(len(token), 24)
        self.assertTrue(set(token) <= set(SHARE_TOKEN_ALPHABET))
        self.assertTrue(token.isalnum())

    def test_tokens_are_unique(self):
        tokens = {generate_share_token() for _ in range(200)}
        self.assertEqual(len(tokens), 200)

    def test_well_formed_check(self):
        self.assertTrue(is_well_formed_share_token(generate_share_token()))
        self.assertFalse(is_well_formed_share_token("short"))
        self.assertFalse(is_well_formed_share_token("a" * 23 + "-"))
        self.assertFalse(is_well_formed_share_token(""))


if __name__ == "__main__":
    unittest.main()
