"""Pydantic schemas"""

from oauth_service.schemas.oauth import (
    AuthorizationCodeInfo,
    CodeChallengeMethod,
    GrantType,
    OAuthClientInfo,
    TokenErrorResponse,
    TokenInfo,
    TokenResponse,
)

__all__ = [
    "GrantType",
    "CodeChallengeMethod",
    "OAuthClientInfo",
    "AuthorizationCodeInfo",
    "TokenInfo",
    "TokenResponse",
    "TokenErrorResponse",
]
