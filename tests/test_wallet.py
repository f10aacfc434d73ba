"""
Tests for private key loading and the encrypted keystore.

Run with: pytest tests/ -v
"""

import os
import json
import stat

import pytest

from somnia_bot.wallet import ENV_VAR, SecureKeyManager, load_private_key
from somnia_bot.utils import ConfigurationError

PRIVATE_KEY = "0x" + "a" * 64
PASSWORD = "test_password_123"


@pytest.fixture
def fast_kdf(monkeypatch):
    monkeypatch.setattr(SecureKeyManager, "ITERATIONS", 1000)


@pytest.fixture
def no_env_key(monkeypatch, tmp_path):
    monkeypatch.delenv(ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSecureKeyManager:
    """Tests for wallet encryption/decryption."""

    def test_encrypt_and_save(self, tmp_path, fast_kdf):
        key_file = tmp_path / "test_wallet.enc"
        manager = SecureKeyManager(str(key_file))

        manager.encrypt_and_save(PRIVATE_KEY, PASSWORD)
        assert manager.exists()

        data = json.loads(key_file.read_text())
        assert data["version"] == 2
        assert data["iterations"] == 1000
        assert PRIVATE_KEY not in key_file.read_text()

        if os.name != 'nt':
            assert stat.S_IMODE(key_file.stat().st_mode) == 0o600

    def test_load_and_decrypt(self, tmp_path, fast_kdf):
        manager = SecureKeyManager(str(tmp_path / "test_wallet.enc"))
        manager.encrypt_and_save(PRIVATE_KEY, PASSWORD)
        assert manager.load_and_decrypt(PASSWORD) == PRIVATE_KEY

    def test_load_with_wrong_password(self, tmp_path, fast_kdf):
        manager = SecureKeyManager(str(tmp_path / "test_wallet.enc"))
        manager.encrypt_and_save(PRIVATE_KEY, PASSWORD)
        with pytest.raises(ConfigurationError):
            manager.load_and_decrypt("wrong_password")

    def test_load_missing_file(self, tmp_path):
        manager = SecureKeyManager(str(tmp_path / "nope.enc"))
        assert not manager.exists()
        with pytest.raises(ConfigurationError):
            manager.load_and_decrypt(PASSWORD)

    def test_load_corrupt_file(self, tmp_path):
        key_file = tmp_path / "test_wallet.enc"
        key_file.write_text("{not json")
        with pytest.raises(ConfigurationError):
            SecureKeyManager(str(key_file)).load_and_decrypt(PASSWORD)

    def test_rejects_invalid_key(self, tmp_path):
        manager = SecureKeyManager(str(tmp_path / "test_wallet.enc"))
        with pytest.raises(ConfigurationError):
            manager.encrypt_and_save("0x1234", PASSWORD)
        assert not manager.exists()


class TestLoadPrivateKey:
    """Environment first, keystore second, otherwise fail."""

    def test_env_key(self, monkeypatch, no_env_key):
        monkeypatch.setenv(ENV_VAR, PRIVATE_KEY)
        assert load_private_key() == PRIVATE_KEY

    def test_invalid_env_key(self, monkeypatch, no_env_key):
        monkeypatch.setenv(ENV_VAR, "garbage")
        with pytest.raises(ConfigurationError):
            load_private_key()

    def test_dotenv_file(self, tmp_path, no_env_key):
        (tmp_path / ".env").write_text(f"{ENV_VAR}={PRIVATE_KEY}\n")
        try:
            assert load_private_key() == PRIVATE_KEY
        finally:
            os.environ.pop(ENV_VAR, None)

    def test_keystore_fallback(self, tmp_path, no_env_key, fast_kdf):
        key_file = str(tmp_path / "wallet.enc")
        SecureKeyManager(key_file).encrypt_and_save(PRIVATE_KEY, PASSWORD)
        assert load_private_key(key_file, password_prompt=lambda: PASSWORD) == PRIVATE_KEY

    def test_missing_key_fails(self, tmp_path, no_env_key):
        with pytest.raises(ConfigurationError):
            load_private_key(str(tmp_path / "wallet.enc"), password_prompt=lambda: PASSWORD)
