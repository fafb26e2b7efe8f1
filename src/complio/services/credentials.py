"""Encryption of integration connection credentials at rest.

Credentials are serialized to JSON and encrypted with Fernet. The Fernet key
is derived from ``settings.credentials_encryption_key`` with PBKDF2-HMAC-SHA256
and a random per-value salt, stored alongside the token as ``salt_b64:token``.
"""

import base64
import os
from datetime import datetime

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from complio.config import settings
from complio.errors.exceptions import CredentialError

_SALT_BYTES = 16
_KDF_ITERATIONS = 100_000


class ConnectionCredentials(BaseModel):
    """Provider credentials. Each provider uses a subset of these fields."""

    model_config = ConfigDict(extra="forbid")

    access_token: str | None = None
    refresh_token: str | None = None
    api_key: str | None = None
    service_account_key: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    tenant_id: str | None = None
    domain: str | None = None
    region: str | None = None
    expires_at: datetime | None = None


def _derive_key(secret: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=_KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode()))


def encrypt_credentials(credentials: ConnectionCredentials, secret: str | None = None) -> str:
    """Encrypt credentials into a ``salt_b64:token`` string."""
    salt = os.urandom(_SALT_BYTES)
    fernet = Fernet(_derive_key(secret or settings.credentials_encryption_key, salt))
    token = fernet.encrypt(credentials.model_dump_json(exclude_none=True).encode())
    return f"{base64.urlsafe_b64encode(salt).decode()}:{token.decode()}"


def decrypt_credentials(encrypted: str, secret: str | None = None) -> ConnectionCredentials:
    """Decrypt a value produced by :func:`encrypt_credentials`.

    Raises:
        CredentialError: malformed value, wrong key, or unparseable payload.
    """
    if not encrypted or ":" not in encrypted:
        raise CredentialError("Encrypted credentials are malformed")

    salt_b64, token = encrypted.split(":", 1)
    try:
        salt = base64.urlsafe_b64decode(salt_b64.encode())
    except ValueError as exc:
        raise CredentialError("Encrypted credentials are malformed") from exc

    fernet = Fernet(_derive_key(secret or settings.credentials_encryption_key, salt))
    try:
        payload = fernet.decrypt(token.encode())
    except InvalidToken as exc:
        raise CredentialError("Credentials could not be decrypted") from exc

    try:
        return ConnectionCredentials.model_validate_json(payload)
    except PydanticValidationError as exc:
        raise CredentialError("Decrypted credentials are not valid") from exc
