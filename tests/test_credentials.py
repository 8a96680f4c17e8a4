from __future__ import annotations

import unittest

from cryptography.fernet import Fernet

from app.security import CredentialResolutionError, CredentialResolver, encrypt_secret
from fakes import make_connection

SECRET = "unit-test-encryption-key"


class TestCredentialResolver(unittest.TestCase):
    def test_decrypts_password_and_service_key(self) -> None:
        connection = make_connection(
            password=encrypt_secret("s3cret", secret=SECRET),
            config={"ssl": True, "serviceKey": encrypt_secret("svc", secret=SECRET)},
        )

        config = CredentialResolver(secret=SECRET).resolve(connection)

        self.assertEqual(config.password, "s3cret")
        self.assertEqual(config.service_key, "svc")
        self.assertTrue(config.ssl)
        self.assertEqual(config.host, connection.host)
        self.assertNotIn("s3cret", repr(config))

    def test_missing_password_resolves_to_empty(self) -> None:
        connection = make_connection(password=None, config=None)

        config = CredentialResolver(secret=SECRET).resolve(connection)

        self.assertEqual(config.password, "")
        self.assertIsNone(config.service_key)
        self.assertFalse(config.ssl)

    def test_token_from_another_key_is_rejected(self) -> None:
        foreign_token = Fernet(Fernet.generate_key()).encrypt(b"s3cret").decode("utf-8")
        connection = make_connection(password=foreign_token, config={})

        with self.assertRaises(CredentialResolutionError):
            CredentialResolver(secret=SECRET).resolve(connection)

    def test_missing_key_is_rejected(self) -> None:
        connection = make_connection(password="anything", config={})

        with self.assertRaises(CredentialResolutionError):
            CredentialResolver(secret=None).resolve(connection)


if __name__ == "__main__":
    unittest.main()
