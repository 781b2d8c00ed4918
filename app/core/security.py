"""
API key generation and hashing.

Keys look like ``sk_live_<43 url-safe chars>``. Only the SHA-256 hex digest
is stored; the first 12 characters are kept as a display prefix so a key
can be recognized in listings without exposing it.
"""
import hashlib
import secrets
from dataclasses import dataclass

API_KEY_PREFIX = "sk_live_"
DISPLAY_PREFIX_LENGTH = 12
KEY_RANDOM_BYTES = 32


@dataclass(frozen=True)
class GeneratedApiKey:
    plaintext: str
    key_hash: str
    display_prefix: str


def hash_api_key(plaintext: str) -> str:
    """SHA-256 hex digest of a presented key."""
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


def display_prefix(plaintext: str) -> str:
    return plaintext[:DISPLAY_PREFIX_LENGTH]


def generate_api_key() -> GeneratedApiKey:
    """Create a new random key. The plaintext must be shown once and discarded."""
    plaintext = API_KEY_PREFIX + secrets.token_urlsafe(KEY_RANDOM_BYTES)
    return GeneratedApiKey(
        plaintext=plaintext,
        key_hash=hash_api_key(plaintext),
        display_prefix=display_prefix(plaintext),
    )
