"""PKCE code challenge verification (RFC 7636)"""

import base64
import hashlib
import hmac

from oauth_service.schemas.oauth import CodeChallengeMethod


def compute_code_challenge(code_verifier: str, method: str | None = None) -> str:
    """
    Compute the code challenge for a verifier

    Args:
        code_verifier: Verifier sent by the client at the token endpoint
        method: "S256" or "plain"; a missing method means "plain"

    Returns:
        Code challenge string

    Raises:
        ValueError: If the method is not supported
    """
    if method is None or method == CodeChallengeMethod.PLAIN.value:
        return code_verifier

    if method == CodeChallengeMethod.S256.value:
        digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    raise ValueError(f"Unsupported code challenge method: {method}")


def verify_code_verifier(code_verifier: str, code_challenge: str, method: str | None = None) -> bool:
    """Check a verifier against the stored challenge using constant-time comparison"""
    try:
        computed = compute_code_challenge(code_verifier, method)
    except ValueError:
        return False
    return hmac.compare_digest(computed.encode("utf-8"), code_challenge.encode("utf-8"))
