"""Service modules"""

from oauth_service.services.grants import (
    AuthorizationCodeGrant,
    GrantHandler,
    RefreshTokenGrant,
    create_grant_handler,
)
from oauth_service.services.pkce import compute_code_challenge, verify_code_verifier

__all__ = [
    "GrantHandler",
    "AuthorizationCodeGrant",
    "RefreshTokenGrant",
    "create_grant_handler",
    "compute_code_challenge",
    "verify_code_verifier",
]
