"""Credential encryption tests."""

import base64

import pytest

from complio.errors.exceptions import CredentialError
from complio.services.credentials import (
    ConnectionCredentials,
    decrypt_credentials,
    encrypt_credentials,
)


def test_round_trip_preserves_fields():
    creds = ConnectionCredentials(access_token="tok", refresh_token="ref", tenant_id="t-1")
    restored = decrypt_credentials(encrypt_credentials(creds, secret="k1"), secret="k1")
    assert restored == creds


def test_value_is_salt_and_token():
    encrypted = encrypt_credentials(ConnectionCredentials(api_key="abc"), secret="k1")
    salt_b64, token = encrypted.split(":", 1)
    assert len(base64.urlsafe_b64decode(salt_b64)) == 16
    assert "abc" not in encrypted
    assert token


def test_same_input_encrypts_differently():
    creds = ConnectionCredentials(api_key="abc")
    assert encrypt_credentials(creds, secret="k1") != encrypt_credentials(creds, secret="k1")


def test_wrong_key_raises_credential_error():
    encrypted = encrypt_credentials(ConnectionCredentials(api_key="abc"), secret="k1")
    with pytest.raises(CredentialError):
        decrypt_credentials(encrypted, secret="k2")


@pytest.mark.parametrize("value", ["", "no-separator", "c2FsdA==:garbage"])
def test_malformed_value_raises_credential_error(value):
    with pytest.raises(CredentialError):
        decrypt_credentials(value, secret="k1")


def test_unknown_credential_fields_are_rejected():
    with pytest.raises(ValueError):
        ConnectionCredentials(password="hunter2")
