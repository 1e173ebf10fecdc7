"""
In-memory implementations of the storage ports.

Used by tests and by the ``memory`` storage backend for local development.
Every operation yields to the event loop once, the way a real store call
would, and then checks and mutates state without further suspension, so
concurrent callers interleave between operations but never inside one.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from oauth_service.core.config import settings
from oauth_service.repositories.base import (
    AuthorizationCodeRepository,
    ClientRepository,
    TokenRepository,
    UnitOfWork,
)
from oauth_service.schemas.oauth import AuthorizationCodeInfo, OAuthClientInfo, TokenInfo
from oauth_service.utils.crypto import generate_token


@dataclass
class InMemoryStorage:
    """Shared state behind the in-memory repositories"""

    clients: dict[str, OAuthClientInfo] = field(default_factory=dict)
    codes: dict[str, AuthorizationCodeInfo] = field(default_factory=dict)
    tokens: dict[str, TokenInfo] = field(default_factory=dict)

    def add_client(
        self,
        client_id: str,
        client_secret: str | None = None,
        redirect_uris: list[str] | None = None,
        name: str = "",
    ) -> OAuthClientInfo:
        client = OAuthClientInfo(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uris=redirect_uris or [],
            name=name or client_id,
        )
        self.clients[client_id] = client
        return client


class InMemoryClientRepository(ClientRepository):
    def __init__(self, storage: InMemoryStorage):
        self._storage = storage

    async def find_by_client_id(self, client_id: str) -> OAuthClientInfo | None:
        await asyncio.sleep(0)
        return self._storage.clients.get(client_id)


class InMemoryAuthorizationCodeRepository(AuthorizationCodeRepository):
    def __init__(self, storage: InMemoryStorage, code_lifetime: int | None = None):
        self._storage = storage
        self._code_lifetime = code_lifetime or settings.authorization_code_lifetime

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
        await asyncio.sleep(0)
        if expires_at is None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._code_lifetime)

        code = AuthorizationCodeInfo(
            code=generate_token(),
            client_id=client_id,
            user_id=user_id,
            redirect_uri=redirect_uri,
            scopes=list(scopes),
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            expires_at=expires_at,
        )
        self._storage.codes[code.code] = code
        return code.model_copy()

    async def find_by_code(self, code: str) -> AuthorizationCodeInfo | None:
        await asyncio.sleep(0)
        found = self._storage.codes.get(code)
        return found.model_copy() if found else None

    async def find_and_delete(self, code: str) -> AuthorizationCodeInfo | None:
        await asyncio.sleep(0)
        return self._storage.codes.pop(code, None)

    async def delete_expired(self) -> int:
        await asyncio.sleep(0)
        now = datetime.now(timezone.utc)
        expired = [key for key, code in self._storage.codes.items() if code.expires_at <= now]
        for key in expired:
            del self._storage.codes[key]
        return len(expired)


class InMemoryTokenRepository(TokenRepository):
    def __init__(
        self,
        storage: InMemoryStorage,
        access_lifetime: int | None = None,
        refresh_lifetime: int | None = None,
    ):
        self._storage = storage
        self._access_lifetime = access_lifetime or settings.access_token_lifetime
        self._refresh_lifetime = refresh_lifetime or settings.refresh_token_lifetime

    async def create(
        self,
        client_id: str,
        user_id: str,
        scopes: list[str],
        parent_id: str | None = None,
    ) -> TokenInfo:
        await asyncio.sleep(0)
        now = datetime.now(timezone.utc)
        token = TokenInfo(
            id=str(uuid.uuid4()),
            access_token=generate_token(),
            refresh_token=generate_token(),
            client_id=client_id,
            user_id=user_id,
            scopes=list(scopes),
            access_token_expires_at=now + timedelta(seconds=self._access_lifetime),
            refresh_token_expires_at=now + timedelta(seconds=self._refresh_lifetime),
            parent_id=parent_id,
        )
        self._storage.tokens[token.id] = token
        return token.model_copy()

    async def find_active_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        await asyncio.sleep(0)
        for token in self._storage.tokens.values():
            if token.refresh_token == refresh_token and not token.revoked:
                return token.model_copy()
        return None

    async def find_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        await asyncio.sleep(0)
        for token in self._storage.tokens.values():
            if token.refresh_token == refresh_token:
                return token.model_copy()
        return None

    async def revoke(self, token_id: str) -> bool:
        await asyncio.sleep(0)
        token = self._storage.tokens.get(token_id)
        if token is None or token.revoked:
            return False
        token.revoked = True
        token.revoked_at = datetime.now(timezone.utc)
        return True

    async def revoke_lineage(self, client_id: str, user_id: str) -> int:
        await asyncio.sleep(0)
        count = 0
        for token in self._storage.tokens.values():
            if token.client_id == client_id and token.user_id == user_id and not token.revoked:
                token.revoked = True
                token.revoked_at = datetime.now(timezone.utc)
                count += 1
        return count

    async def delete_expired(self) -> int:
        await asyncio.sleep(0)
        now = datetime.now(timezone.utc)
        expired = [
            key for key, token in self._storage.tokens.items()
            if token.refresh_token_expires_at <= now
        ]
        for key in expired:
            del self._storage.tokens[key]
        return len(expired)


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of Work over InMemoryStorage; writes apply immediately"""

    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        self.clients = InMemoryClientRepository(self.storage)
        self.codes = InMemoryAuthorizationCodeRepository(self.storage)
        self.tokens = InMemoryTokenRepository(self.storage)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None
