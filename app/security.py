"""
app/security.py

Credential encryption helpers and the connection credential resolver.
"""

from __future__ import annotations

import base64
import hashlib
from functools import lru_cache
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from app.config import get_credential_settings
from app.connectors.base import ConnectorConfig
from db.models.external_connection import ExternalConnection


class CredentialResolutionError(RuntimeError):
    """
    Raised when stored credentials cannot be decrypted into a connector config.
    """


def _derive_key(secret: str) -> bytes:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _build_fernet(secret: str | None) -> Fernet:
    if not secret:
        raise CredentialResolutionError("CREDENTIALS_ENCRYPTION_KEY is not configured.")
    return Fernet(_derive_key(secret))


def encrypt_secret(plain: str, *, secret: str) -> str:
    """
    Encrypt a credential for storage on an ExternalConnection row.
    """

    return _build_fernet(secret).encrypt(plain.encode("utf-8")).decode("utf-8")


class CredentialResolver:
    """
    Turns an ExternalConnection's stored secrets into a ConnectorConfig.
    """

    def __init__(self, *, secret: str | None) -> None:
        self._secret = secret

    def resolve(self, connection: ExternalConnection) -> ConnectorConfig:
        config: dict[str, Any] = connection.config or {}
        password = self._decrypt(connection.password, label="password") if connection.password else ""
        service_key = config.get("serviceKey")
        decrypted_service_key = self._decrypt(service_key, label="serviceKey") if service_key else None

        return ConnectorConfig(
            host=connection.host,
            port=connection.port or None,
            database=connection.database,
            username=connection.username,
            password=password,
            ssl=bool(config.get("ssl", False)),
            service_key=decrypted_service_key,
        )

    def _decrypt(self, token: str, *, label: str) -> str:
        fernet = _build_fernet(self._secret)
        try:
            return fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise CredentialResolutionError(f"Stored {label} could not be decrypted.") from exc


@lru_cache(maxsize=1)
def get_credential_resolver() -> CredentialResolver:
    """
    Build and cache the resolver from environment settings.
    """

    return CredentialResolver(secret=get_credential_settings().encryption_key)
