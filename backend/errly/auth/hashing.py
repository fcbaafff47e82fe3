"""
Project API keys.

An SDK authenticates every event with its project's raw key, so lookups
happen on the hot ingestion path. Keys are 256 random bits, which makes a
single SHA-256 pass sufficient; slow password hashes are not needed.

Stored per project:
  api_key_hash    sha256 hex of the raw key (unique, used for lookup)
  api_key_prefix  first 12 chars ("errly_" + 6 hex) for display only
"""

import hashlib
import secrets

KEY_PREFIX = "errly_"
DISPLAY_PREFIX_LENGTH = 12


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    """
    Issue a key for a new project.

    Returns (raw_key, key_hash, prefix). The raw key is not persisted
    anywhere; whoever calls this shows it to the user once.
    """
    raw_key = KEY_PREFIX + secrets.token_hex(32)
    return raw_key, hash_api_key(raw_key), raw_key[:DISPLAY_PREFIX_LENGTH]
