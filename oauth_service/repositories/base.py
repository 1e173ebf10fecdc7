"""
Storage ports used by the grant handlers.

The handlers only see these interfaces. Concrete implementations live in
``repositories.sqlalchemy`` (relational store) and ``repositories.memory``
(development and tests).
"""

from abc import ABC, abstractmethod
from datetime import datetime

from oauth_service.schemas.oauth import AuthorizationCodeInfo, OAuthClientInfo, TokenInfo


class ClientRepository(ABC):
    """Read-only lookup of registered client applications"""

    @abstractmethod
    async def find_by_client_id(self, client_id: str) -> OAuthClientInfo | None:
        """
        Find a client by its public identifier.

        Args:
            client_id: Public client identifier

        Returns:
            OAuthClientInfo or None if not registered
        """


class AuthorizationCodeRepository(ABC):
    """Persistence of single-use authorization codes"""

    @abstractmethod
    async def create(
        self,
        client_id: str,
        user_id: str,
        redirect_uri: str,
        scopes: list[str],
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        expires_at: datetime | None = None,
    ) -> AuthorizationCodeInfo:
        """
        Create a code for an approved consent request.

        The code value is generated by the store. ``expires_at`` defaults to
        now plus the configured authorization code lifetime.
        """

    @abstractmethod
    async def find_by_code(self, code: str) -> AuthorizationCodeInfo | None:
        """Read a code without consuming it"""

    @abstractmethod
    async def find_and_delete(self, code: str) -> AuthorizationCodeInfo | None:
        """
        Atomically consume a code.

        Of any number of concurrent callers for the same code, exactly one
        receives the code; every other caller receives None.
        """

    @abstractmethod
    async def delete_expired(self) -> int:
        """Delete expired codes and return how many were removed"""


class TokenRepository(ABC):
    """Persistence of issued access/refresh token pairs"""

    @abstractmethod
    async def create(
        self,
        client_id: str,
        user_id: str,
        scopes: list[str],
        parent_id: str | None = None,
    ) -> TokenInfo:
        """
        Issue a new token pair.

        Token values and expiry times are generated by the store.
        """

    @abstractmethod
    async def find_active_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        """Find an unrevoked token by its refresh token"""

    @abstractmethod
    async def find_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        """Find a token by its refresh token, revoked or not"""

    @abstractmethod
    async def revoke(self, token_id: str) -> bool:
        """
        Revoke a token if it is still active.

        Returns:
            True only if this call performed the revocation
        """

    @abstractmethod
    async def revoke_lineage(self, client_id: str, user_id: str) -> int:
        """Revoke every active token of a client/user pair"""

    @abstractmethod
    async def delete_expired(self) -> int:
        """Delete tokens whose refresh token has expired"""


class UnitOfWork(ABC):
    """
    Groups the three repositories over a single transaction.

    Usage:
        >>> async with uow:
        ...     code = await uow.codes.find_and_delete(value)
        ...     token = await uow.tokens.create(...)

    Leaving the block normally commits; leaving it with an exception rolls
    back, except for ``OAuthError`` which still commits so that expiry
    side effects (deleted codes, revoked tokens) persist.
    """

    clients: ClientRepository
    codes: AuthorizationCodeRepository
    tokens: TokenRepository

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork":
        ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
