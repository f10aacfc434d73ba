"""
Wallet Module - Signing Key Loading
===================================
Finds the private key for the run's single account.

Sources, in order:
1. ``PRIVATE_KEY`` from the environment (a local ``.env`` is loaded first)
2. The encrypted keystore written by ``somnia-bot setup``

Keystore format:
- PBKDF2-HMAC-SHA256 key derivation (600k iterations)
- Fernet (AES-128-CBC) encryption
- Unique salt per encryption
- File permissions 0o600 (owner-only)
"""

import os
import json
import base64
import secrets
from pathlib import Path
from typing import Callable, Optional
from datetime import datetime

from dotenv import find_dotenv, load_dotenv
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .utils import ConfigurationError, logger, validate_private_key

ENV_VAR = "PRIVATE_KEY"


class SecureKeyManager:
    """
    Manages encryption and decryption of the private key file.

    Uses PBKDF2-HMAC-SHA256 with 600,000 iterations for key derivation,
    and Fernet (AES-128-CBC) for encryption.
    """

    KEY_FILE = ".bot_wallet.enc"
    ITERATIONS = 600_000  # OWASP 2023 recommended minimum

    def __init__(self, key_file: Optional[str] = None):
        self.key_file = Path(key_file or self.KEY_FILE)

    def _derive_key(self, password: str, salt: bytes, iterations: int) -> bytes:
        """
        Derive encryption key from password using PBKDF2.

        Args:
            password: User password
            salt: Random salt (16 bytes)
            iterations: KDF rounds stored alongside the ciphertext

        Returns:
            URL-safe base64-encoded key for Fernet
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def encrypt_and_save(self, private_key: str, password: str):
        """
        Encrypt and save a private key.

        Raises:
            ConfigurationError: If the key is not 32 bytes of hex
        """
        if not validate_private_key(private_key):
            raise ConfigurationError("Invalid private key format")

        salt = secrets.token_bytes(16)
        encrypted = Fernet(self._derive_key(password, salt, self.ITERATIONS)).encrypt(private_key.encode())

        data = {
            "salt": base64.b64encode(salt).decode(),
            "encrypted_key": encrypted.decode(),
            "version": 2,
            "created": datetime.now().isoformat(),
            "iterations": self.ITERATIONS
        }

        with open(self.key_file, 'w') as f:
            json.dump(data, f)

        # Set owner-only permissions (Unix)
        os.chmod(self.key_file, 0o600)
        logger.info(f"Encrypted key saved to {self.key_file}")

    def load_and_decrypt(self, password: str) -> str:
        """
        Load and decrypt the private key.

        Raises:
            ConfigurationError: If the file is missing, malformed, or the
                password is wrong
        """
        if not self.key_file.exists():
            raise ConfigurationError(f"No wallet file found at {self.key_file}. Run setup first.")

        try:
            with open(self.key_file, 'r') as f:
                data = json.load(f)
            salt = base64.b64decode(data["salt"])
            encrypted_key = data["encrypted_key"].encode()
            iterations = data.get("iterations", self.ITERATIONS)
        except (OSError, ValueError, KeyError) as e:
            raise ConfigurationError(f"Unreadable wallet file {self.key_file}: {e}") from e

        try:
            decrypted = Fernet(self._derive_key(password, salt, iterations)).decrypt(encrypted_key)
        except InvalidToken as e:
            raise ConfigurationError("Failed to decrypt wallet. Wrong password?") from e

        return decrypted.decode()

    def exists(self) -> bool:
        """Check if encrypted key file exists."""
        return self.key_file.exists()


def load_private_key(
    key_file: Optional[str] = None,
    password_prompt: Optional[Callable[[], str]] = None,
) -> str:
    """
    Return the signing key, failing fast when none is available.

    Args:
        key_file: Encrypted keystore path
        password_prompt: Called to obtain the keystore password

    Raises:
        ConfigurationError: No usable key in the environment or keystore
    """
    load_dotenv(find_dotenv(usecwd=True))

    private_key = os.environ.get(ENV_VAR, "").strip()
    if private_key:
        if not validate_private_key(private_key):
            raise ConfigurationError(f"{ENV_VAR} is set but is not a valid private key")
        return private_key

    manager = SecureKeyManager(key_file)
    if manager.exists() and password_prompt is not None:
        return manager.load_and_decrypt(password_prompt())

    raise ConfigurationError(
        f"{ENV_VAR} not found in environment or .env file, and no encrypted wallet at {manager.key_file}"
    )
