"""Ed25519 signing of record content.

Secret keys are configured as 128 hex characters: the NaCl 64-byte layout
of a 32-byte seed followed by the 32-byte public key. A key that does not
decode, has the wrong length, or whose public half does not belong to its
seed is rejected with :class:`SigningKeyError`; that failure is local to
the job holding the key.
"""

from __future__ import annotations

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from apiwatch.core.errors import SigningKeyError

SECRET_KEY_LENGTH = 64
SEED_LENGTH = 32
SIGNATURE_LENGTH = 64


def _signing_key(secret_key_hex: str) -> SigningKey:
    try:
        raw = bytes.fromhex(secret_key_hex)
    except ValueError as e:
        raise SigningKeyError("secret key is not valid hex", cause=e)
    if len(raw) != SECRET_KEY_LENGTH:
        raise SigningKeyError(
            f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(raw)}"
        )

    key = SigningKey(raw[:SEED_LENGTH])
    if key.verify_key.encode() != raw[SEED_LENGTH:]:
        raise SigningKeyError("secret key public half does not match its seed")
    return key


def sign(secret_key_hex: str, message: bytes) -> bytes:
    """Sign ``message`` and return the 64-byte detached signature.

    Raises:
        SigningKeyError: If the key material is unusable.
    """
    return _signing_key(secret_key_hex).sign(message).signature


def public_key(secret_key_hex: str) -> bytes:
    """Return the 32-byte public key of a configured secret key."""
    return _signing_key(secret_key_hex).verify_key.encode()


def verify(public_key_bytes: bytes, message: bytes, signature: bytes) -> bool:
    """Check a detached signature against a raw 32-byte public key."""
    try:
        VerifyKey(public_key_bytes).verify(message, signature)
    except (BadSignatureError, ValueError):
        return False
    return True


def generate_secret_key() -> str:
    """Create a fresh key in the configured hex layout (seed ‖ public key)."""
    key = SigningKey.generate()
    return (key.encode() + key.verify_key.encode()).hex()
