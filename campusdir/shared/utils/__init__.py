"""Shared utilities for the campus directory."""
from .pii import hash_pii, configure_pii_salt
from .star_sign import get_star_sign, STAR_SIGNS

__all__ = ["hash_pii", "configure_pii_salt", "get_star_sign", "STAR_SIGNS"]
