"""Cryptography utilities"""

import secrets


def generate_token(length: int = 32) -> str:
    """
    Generate an opaque, URL-safe random token

    Args:
        length: Number of random bytes

    Returns:
        URL-safe base64 string
    """
    return secrets.token_urlsafe(length)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks

    Args:
        a: First string
        b: Second string

    Returns:
        True if strings are equal, False otherwise
    """
    return secrets.compare_digest(a.encode(), b.encode())


def mask_token(value: str | None, visible: int = 8) -> str | None:
    """Shorten a code or token for log output"""
    if not value:
        return value
    return value[:visible] + "..."
