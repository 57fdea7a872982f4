"""
Remote backend credentials.

Resolves the Supabase endpoint URL and anon key in priority order:

1. ``SUPABASE_URL`` / ``SUPABASE_ANON_KEY`` environment variables
2. Encrypted config file ``<data_dir>/supabase-config.enc``
3. Plain config file ``<data_dir>/supabase-config.json``
4. Local development fallback (never in production)

The encrypted file uses AES-256-CBC with PKCS7 padding, stored as
``<iv hex>:<ciphertext hex>``. The key is the SHA-256 digest of the data
directory path, so a file is only readable on the installation that wrote it.
"""

import hashlib
import json
import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import Settings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "supabase-config.json"
ENCRYPTED_CONFIG_FILE_NAME = "supabase-config.enc"

URL_ENV_VAR = "SUPABASE_URL"
ANON_KEY_ENV_VAR = "SUPABASE_ANON_KEY"

# Default endpoint of a locally started Supabase stack (`supabase start`)
DEVELOPMENT_FALLBACK_URL = "http://127.0.0.1:54321"
DEVELOPMENT_FALLBACK_ANON_KEY = "local-development-anon-key"


@dataclass(frozen=True)
class RemoteConfig:
    """Endpoint URL and access key of the remote backend."""

    url: str
    anon_key: str
    source: str = "unknown"

    def to_file_payload(self) -> dict[str, str]:
        return {"url": self.url, "anonKey": self.anon_key}


def config_path(data_dir: Path, encrypted: bool = False) -> Path:
    """Path of the (plain or encrypted) config file inside ``data_dir``."""
    return data_dir / (ENCRYPTED_CONFIG_FILE_NAME if encrypted else CONFIG_FILE_NAME)


def _encryption_key(data_dir: Path) -> bytes:
    return hashlib.sha256(str(data_dir).encode("utf-8")).digest()


def encrypt_text(text: str, key: bytes) -> str:
    """Encrypt ``text`` into the ``iv:ciphertext`` hex format."""
    iv = secrets.token_bytes(16)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{encrypted.hex()}"


def decrypt_text(payload: str, key: bytes) -> str:
    """Reverse of :func:`encrypt_text`."""
    iv_hex, _, encrypted_hex = payload.strip().partition(":")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(bytes.fromhex(iv_hex))).decryptor()
    padded = decryptor.update(bytes.fromhex(encrypted_hex)) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")


def _from_payload(data: Any, source: str) -> Optional[RemoteConfig]:
    if not isinstance(data, dict):
        return None
    url = data.get("url")
    anon_key = data.get("anonKey")
    if isinstance(url, str) and url and isinstance(anon_key, str) and anon_key:
        return RemoteConfig(url=url, anon_key=anon_key, source=source)
    return None


def load_remote_config(
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
) -> RemoteConfig:
    """
    Resolve the remote backend configuration.

    Args:
        settings: Application settings (data directory and environment)
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        The first complete configuration found

    Raises:
        ConfigurationError: If nothing is configured in a production build
    """
    environ = os.environ if environ is None else environ

    url = environ.get(URL_ENV_VAR)
    anon_key = environ.get(ANON_KEY_ENV_VAR)
    if url and anon_key:
        return RemoteConfig(url=url, anon_key=anon_key, source="environment")

    encrypted_path = config_path(settings.data_dir, encrypted=True)
    if encrypted_path.exists():
        try:
            decrypted = decrypt_text(
                encrypted_path.read_text(encoding="utf-8"),
                _encryption_key(settings.data_dir),
            )
            config = _from_payload(json.loads(decrypted), "encrypted-file")
            if config:
                logger.info(f"Remote config loaded from {encrypted_path}")
                return config
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read encrypted remote config {encrypted_path}: {e}")

    plain_path = config_path(settings.data_dir)
    if plain_path.exists():
        try:
            config = _from_payload(json.loads(plain_path.read_text(encoding="utf-8")), "file")
            if config:
                logger.info(f"Remote config loaded from {plain_path}")
                return config
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read remote config {plain_path}: {e}")

    if not settings.is_production:
        logger.warning("Using development fallback remote config")
        return RemoteConfig(
            url=DEVELOPMENT_FALLBACK_URL,
            anon_key=DEVELOPMENT_FALLBACK_ANON_KEY,
            source="development-fallback",
        )

    raise ConfigurationError(
        "Remote backend configuration not found.\n\n"
        f"Create a configuration file at:\n{plain_path}\n\n"
        "Format:\n"
        "{\n"
        '  "url": "https://xxxxx.supabase.co",\n'
        '  "anonKey": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."\n'
        "}"
    )


def save_remote_config(settings: Settings, config: RemoteConfig, encrypted: bool = True) -> Path:
    """
    Persist the remote configuration into the data directory.

    Returns:
        Path of the written file
    """
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    path = config_path(settings.data_dir, encrypted=encrypted)
    payload = json.dumps(config.to_file_payload())

    if encrypted:
        path.write_text(encrypt_text(payload, _encryption_key(settings.data_dir)), encoding="utf-8")
        logger.info(f"Remote config saved encrypted to {path}")
    else:
        path.write_text(json.dumps(config.to_file_payload(), indent=2), encoding="utf-8")
        logger.info(f"Remote config saved to {path}")

    return path
