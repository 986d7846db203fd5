"""
Decryption of secure channel settings.

Secure settings are stored as Fernet tokens (AES-128-CBC + HMAC). The
notifiers never see ciphertext: they call a DecryptFunc with the setting
name and a plaintext fallback, and get the decrypted value back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from cryptography.fernet import Fernet, InvalidToken

from alert_dispatch.exceptions import ConfigValidationError

if TYPE_CHECKING:
    from alert_dispatch.channel_config import ChannelConfig, DecryptFunc
    from alert_dispatch.config import SecretsConfig

logger = structlog.get_logger(__name__)


class FernetDecrypter:
    """
    Fernet cipher for secure settings.

    Args:
        key: urlsafe base64 encoded 32-byte Fernet key.
    """

    def __init__(self, key: str | bytes) -> None:
        self._fernet = Fernet(key)

    @classmethod
    def from_config(cls, config: SecretsConfig) -> FernetDecrypter | None:
        """Build the cipher from config, or None when no key is configured."""
        key = config.resolve_key()
        if not key:
            logger.debug("secrets_key_not_configured", key_env=config.key_env)
            return None
        return cls(key)

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key."""
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Raises:
            InvalidToken: If the token is malformed or was made with another key.
        """
        return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")


def decrypter_for(config: ChannelConfig, cipher: FernetDecrypter | None) -> DecryptFunc:
    """
    Build the DecryptFunc for one channel.

    The returned function yields the decrypted secure setting when the
    channel has one under that name, and the fallback otherwise.
    """
    secure = dict(config.secure_settings)

    def decrypt(field: str, fallback: str) -> str:
        token = secure.get(field)
        if not token:
            return fallback
        if cipher is None:
            raise ConfigValidationError.invalid_setting(
                field, f"No decryption key configured for secure setting '{field}'"
            )
        try:
            return cipher.decrypt(token)
        except (InvalidToken, UnicodeError) as e:
            logger.warning(
                "secure_setting_decrypt_failed",
                channel_uid=config.uid,
                setting=field,
            )
            raise ConfigValidationError(
                message=f"Failed to decrypt secure setting '{field}'",
                context={"setting": field},
                cause=e,
            ) from e

    return decrypt
