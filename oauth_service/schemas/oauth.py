"""OAuth schemas"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class GrantType(str, Enum):
    """OAuth2 grant types accepted by the token endpoint"""

    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


class CodeChallengeMethod(str, Enum):
    """PKCE code challenge methods (RFC 7636)"""

    PLAIN = "plain"
    S256 = "S256"


class OAuthClientInfo(BaseModel):
    """Registered client application, as seen by the token endpoint"""

    client_id: str
    client_secret: str | None = None
    name: str = ""
    redirect_uris: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def is_confidential(self) -> bool:
        return bool(self.client_secret)


class AuthorizationCodeInfo(BaseModel):
    """Single-use authorization code created by the consent flow"""

    code: str
    client_id: str
    user_id: str
    redirect_uri: str
    scopes: list[str] = Field(default_factory=list)
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    expires_at: datetime

    model_config = {"from_attributes": True}


class TokenInfo(BaseModel):
    """Issued access/refresh token pair"""

    id: str
    access_token: str
    refresh_token: str
    client_id: str
    user_id: str
    scopes: list[str] = Field(default_factory=list)
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime
    revoked: bool = False
    revoked_at: datetime | None = None
    parent_id: str | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """OAuth2 token response"""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str
    scope: str


class TokenErrorResponse(BaseModel):
    """OAuth2 error response"""

    error: str
    error_description: str | None = None
