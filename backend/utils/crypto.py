"""Fernet encryption/decryption for marketplace API credentials."""

import os

from cryptography.fernet import Fernet, InvalidToken


def _get_fernet() -> Fernet:
    key = os.environ.get("MARKETPLACE_ENCRYPTION_KEY", "")
    if not key:
        raise RuntimeError("MARKETPLACE_ENCRYPTION_KEY is not set")
    return Fernet(key.encode())


def encrypt_value(plaintext: str) -> str:
    """Encrypt a plaintext string and return the Fernet token as str."""
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_value(token: str) -> str:
    """Decrypt a Fernet token and return the plaintext string."""
    try:
        return _get_fernet().decrypt(token.encode()).decode()
    except InvalidToken as exc:
        raise RuntimeError("Stored credential cannot be decrypted with the current key") from exc


def mask_secret(value: str | None) -> str:
    return "********" if value else ""
