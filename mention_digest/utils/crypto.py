"""Encryption of stored Slack access tokens."""
import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from mention_digest.exceptions import ConfigurationError, TokenDecryptionError


class TokenCipher:
    """Encrypt and decrypt access tokens using a key derived from a secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ConfigurationError("TOKEN_ENCRYPTION_KEY is required to store access tokens")
        self._fernet = Fernet(self._derive_key(secret))

    def encrypt(self, value: str) -> str:
        return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise TokenDecryptionError("Failed to decrypt access token") from e

    @staticmethod
    def _derive_key(secret: str) -> bytes:
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest)
