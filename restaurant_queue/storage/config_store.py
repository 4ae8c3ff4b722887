"""Encrypted gateway credentials stored in SQLite via a master key."""

import base64
import hashlib
import logging

import aiosqlite
from cryptography.fernet import Fernet, InvalidToken

from restaurant_queue.models.enums import NotificationChannel
from restaurant_queue.models.settings import CHANNEL_SECRETS, RestaurantSettings

logger = logging.getLogger(__name__)

_PBKDF2_SALT = b"restaurant-queue-v1"
_PBKDF2_ITERATIONS = 100_000


def derive_fernet_key(master_key: str) -> bytes:
    """Derive a Fernet-compatible key from a master key string via PBKDF2."""
    dk = hashlib.pbkdf2_hmac(
        "sha256", master_key.encode(), _PBKDF2_SALT, _PBKDF2_ITERATIONS,
    )
    return base64.urlsafe_b64encode(dk)


def secret_key(channel: NotificationChannel, field: str) -> str:
    """Config key for a channel credential, e.g. ``msegat_api_key``."""
    return f"{channel.value}_{field}"


class ConfigStore:
    """Read/write encrypted values in the ``app_config`` table.

    Args:
        connection: An open aiosqlite connection (shared with DatabaseManager).
        master_key: The plaintext master key used to derive the Fernet key.
    """

    def __init__(self, connection: aiosqlite.Connection, master_key: str) -> None:
        self.connection = connection
        self._fernet = Fernet(derive_fernet_key(master_key))

    async def get(self, key: str) -> str | None:
        """Return the decrypted value for *key*, or ``None`` if missing."""
        cursor = await self.connection.execute(
            "SELECT value FROM app_config WHERE key = ?", (key,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return self._fernet.decrypt(row[0]).decode()
        except InvalidToken:
            logger.warning("Failed to decrypt config key %s", key)
            return None

    async def set(self, key: str, value: str) -> None:
        """Encrypt and store *value* under *key* (upsert)."""
        encrypted = self._fernet.encrypt(value.encode())
        await self.connection.execute(
            "INSERT INTO app_config (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, encrypted),
        )
        await self.connection.commit()

    # ── Channel credentials ───────────────────────────────────────────────

    async def save_channel_secrets(self, settings: RestaurantSettings) -> RestaurantSettings:
        """Move non-empty channel credentials into the store.

        Returns:
            A copy of *settings* with the credential fields blanked, safe to
            persist as plain JSON.
        """
        stripped = settings.model_copy(deep=True)
        for channel, fields in CHANNEL_SECRETS.items():
            config = getattr(stripped.notifications, channel.value)
            for field in fields:
                value = getattr(config, field)
                if value:
                    await self.set(secret_key(channel, field), value)
                setattr(config, field, "")
        return stripped

