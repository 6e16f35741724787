"""bcrypt password hashing.

The salt is generated per hash and embedded in the output, so the same
plaintext never hashes to the same string twice.
"""
import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10

# bcrypt only considers the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plaintext: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of *plaintext*."""
    hashed = bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plaintext: str, hashed: str) -> bool:
    """Check *plaintext* against a stored hash.

    Returns False on a mismatch and also when *hashed* is not a valid
    bcrypt hash, so callers only ever see a boolean.
    """
    try:
        return bcrypt.checkpw(_encode(plaintext), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning("Password verification against malformed hash: %s", e)
        return False
