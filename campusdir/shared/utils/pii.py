"""PII handling utilities: no raw emails or student numbers in logs.

Principal emails and student numbers are hashed before they are written
to log records.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


# Salt is loaded from configuration at startup
_PII_SALT: Optional[str] = None


def configure_pii_salt(salt: str) -> None:
    """Configure the PII hashing salt.

    Must be called during application startup before any PII hashing.

    Args:
        salt: Secret salt value

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < 32:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": 32}
        )
        raise ValueError("PII salt must be at least 32 characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: Optional[str]) -> str:
    """Hash a PII value for safe logging.

    Uses SHA-256 with a secret salt to create a consistent,
    non-reversible hash of emails and student numbers.

    Args:
        value: The PII value to hash; None hashes as an empty string

    Returns:
        Hashed string safe for logging

    Raises:
        RuntimeError: If PII salt has not been configured

    Example:
        >>> hash_pii("s253149@example.ac.jp")
        'a1b2c3d4e5f6...'  # 64-char hex string
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    salted = f"{_PII_SALT}{value or ''}"
    return hashlib.sha256(salted.encode()).hexdigest()
