"""Database models"""

from oauth_service.models.authorization_code import AuthorizationCode
from oauth_service.models.database import Base, async_session_maker, close_db, init_db
from oauth_service.models.oauth_client import OAuthClient
from oauth_service.models.oauth_token import OAuthToken

__all__ = [
    "Base",
    "async_session_maker",
    "init_db",
    "close_db",
    "OAuthClient",
    "AuthorizationCode",
    "OAuthToken",
]
