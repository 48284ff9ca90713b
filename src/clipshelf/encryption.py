# region Docstring
"""
clipshelf.encryption
AES-256-GCM encryption of clipboard item content.
Overview:
- EncryptionHelper encrypts text into a combined `nonce || ciphertext || tag`
    blob and decrypts it back. Failures return None instead of raising.
- The 256-bit key lives in a file (StoreSettings.encryption_key_path). It is
    created with owner-only permissions on the first encryption and reused
    afterwards.
Contents:
- EncryptionHelper:
    - encrypt(text) -> Optional[bytes]
    - decrypt(data) -> Optional[str]
    - delete_key()
- helper_for(path) -> EncryptionHelper: one shared helper per key file.
- default_helper() -> EncryptionHelper: helper for the configured key file.
"""
# endregion
# region Imports
import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from clipshelf.config import StoreSettings, get_settings
from clipshelf.logger import logger as app_logger

logger = app_logger.getChild("encryption")

NONCE_SIZE = 12
TAG_SIZE = 16
KEY_BITS = 256


# endregion
# region EncryptionHelper
class EncryptionHelper:
    """
    Encrypts and decrypts item content with a key stored in a file.

    Attributes:
        key_path (Path): File holding the raw 32-byte key.
    """

    def __init__(self, key_path: Path):
        self.key_path = Path(key_path)
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<EncryptionHelper(key_path='{self.key_path.as_posix()}')>"

    def encrypt(self, text: str) -> Optional[bytes]:
        """Encrypt `text` as UTF-8. Returns None when no key can be loaded or created."""
        key = self._get_or_create_key()
        if key is None:
            return None
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(key).encrypt(nonce, text.encode("utf-8"), None)

    def decrypt(self, data: bytes) -> Optional[str]:
        """
        Decrypt a blob produced by encrypt().

        Returns None for empty, truncated or tampered data, data sealed with
        another key, or when no key exists yet.
        """
        if len(data) < NONCE_SIZE + TAG_SIZE:
            return None
        key = self._load_key()
        if key is None:
            return None
        try:
            plain = AESGCM(key).decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None)
            return plain.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            logger.warning("Decryption failed: %s", type(e).__name__)
            return None

    def delete_key(self) -> None:
        """Remove the key file. Content encrypted with it can no longer be read."""
        with self._lock:
            self._key = None
            self.key_path.unlink(missing_ok=True)

    def _load_key(self) -> Optional[bytes]:
        with self._lock:
            if self._key is not None:
                return self._key
            try:
                key = self.key_path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.error("Unable to read key file %s: %s", self.key_path, e)
                return None
            if len(key) != KEY_BITS // 8:
                logger.error("Key file %s does not hold a 256-bit key", self.key_path)
                return None
            self._key = key
            return key

    def _get_or_create_key(self) -> Optional[bytes]:
        key = self._load_key()
        if key is not None:
            return key
        with self._lock:
            if self._key is not None:
                return self._key
            key = AESGCM.generate_key(bit_length=KEY_BITS)
            try:
                self.key_path.parent.mkdir(parents=True, exist_ok=True)
                try:
                    fd = os.open(
                        self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600
                    )
                except FileExistsError:
                    # Created by another process since _load_key().
                    key = self.key_path.read_bytes()
                else:
                    with os.fdopen(fd, "wb") as f:
                        f.write(key)
            except OSError as e:
                logger.error("Unable to create key file %s: %s", self.key_path, e)
                return None
            self._key = key
            logger.info("Created encryption key at %s", self.key_path)
            return key


# endregion
# region Factories
@lru_cache
def helper_for(key_path: Path) -> EncryptionHelper:
    """Shared helper for a key file, so every caller sees the same cached key."""
    return EncryptionHelper(Path(key_path))


def default_helper() -> EncryptionHelper:
    """Helper for the key file of the configured StoreSettings."""
    return helper_for(get_settings(StoreSettings).encryption_key_path)


# endregion

__all__ = ["EncryptionHelper", "default_helper", "helper_for"]
