import unittest

from warehouse.core.credentials import (
    KEY_LENGTH,
    SALT_LENGTH,
    generate_password,
    generate_salt,
    hash_password,
    verify_password,
)


class TestCredentials(unittest.TestCase):
    def test_hash_is_deterministic_per_salt(self):
        salt = generate_salt()
        self.assertEqual(len(salt), SALT_LENGTH)
        first = hash_password("correct horse", salt)
        self.assertEqual(len(first), KEY_LENGTH)
        self.assertEqual(first, hash_password("correct horse", salt))
        self.assertNotEqual(first, hash_password("correct horse", generate_salt()))

    def test_verify_password(self):
        salt = generate_salt()
        digest = hash_password("correct horse", salt)
        self.assertTrue(verify_password("correct horse", salt, digest))
        self.assertFalse(verify_password("wrong horse", salt, digest))

    def test_generated_password_is_alphanumeric(self):
        password = generate_password()
        self.assertEqual(len(password), 32)
        self.assertTrue(password.isalnum())
        self.assertEqual(len(generate_password(12)), 12)


if __name__ == "__main__":
    unittest.main()
