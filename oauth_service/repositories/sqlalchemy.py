"""
SQLAlchemy implementations of the storage ports.

Consumption of codes and rotation of refresh tokens are expressed as
conditional DELETE / UPDATE statements whose affected row count decides the
winner, so concurrent requests for the same code or token cannot both
succeed.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from oauth_service.core.config import logger, settings
from oauth_service.core.exceptions import OAuthError
from oauth_service.models import AuthorizationCode, OAuthClient, OAuthToken
from oauth_service.repositories.base import (
    AuthorizationCodeRepository,
    ClientRepository,
    TokenRepository,
    UnitOfWork,
)
from oauth_service.schemas.oauth import AuthorizationCodeInfo, OAuthClientInfo, TokenInfo
from oauth_service.utils.crypto import generate_token, mask_token


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _code_to_info(model: AuthorizationCode) -> AuthorizationCodeInfo:
    info = AuthorizationCodeInfo.model_validate(model)
    info.expires_at = _as_utc(info.expires_at)
    return info


def _token_to_info(model: OAuthToken) -> TokenInfo:
    info = TokenInfo.model_validate(model)
    info.access_token_expires_at = _as_utc(info.access_token_expires_at)
    info.refresh_token_expires_at = _as_utc(info.refresh_token_expires_at)
    info.revoked_at = _as_utc(info.revoked_at)
    return info


class SQLAlchemyClientRepository(ClientRepository):
    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_by_client_id(self, client_id: str) -> OAuthClientInfo | None:
        result = await self._db.execute(
            select(OAuthClient).where(OAuthClient.client_id == client_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return OAuthClientInfo.model_validate(model)


class SQLAlchemyAuthorizationCodeRepository(AuthorizationCodeRepository):
    def __init__(self, db: AsyncSession, code_lifetime: int | None = None):
        self._db = db
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
        if expires_at is None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._code_lifetime)

        model = AuthorizationCode(
            code=generate_token(),
            client_id=client_id,
            user_id=user_id,
            redirect_uri=redirect_uri,
            scopes=list(scopes),
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            expires_at=expires_at,
        )
        self._db.add(model)
        await self._db.flush()

        logger.debug(f"Authorization code created for client {client_id}")
        return _code_to_info(model)

    async def find_by_code(self, code: str) -> AuthorizationCodeInfo | None:
        result = await self._db.execute(
            select(AuthorizationCode).where(AuthorizationCode.code == code)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return _code_to_info(model)

    async def find_and_delete(self, code: str) -> AuthorizationCodeInfo | None:
        found = await self.find_by_code(code)
        if found is None:
            return None

        result = await self._db.execute(
            delete(AuthorizationCode)
            .where(AuthorizationCode.code == code)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Authorization code consumed concurrently: {mask_token(code)}")
            return None

        return found

    async def delete_expired(self) -> int:
        result = await self._db.execute(
            delete(AuthorizationCode)
            .where(AuthorizationCode.expires_at <= datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class SQLAlchemyTokenRepository(TokenRepository):
    def __init__(
        self,
        db: AsyncSession,
        access_lifetime: int | None = None,
        refresh_lifetime: int | None = None,
    ):
        self._db = db
        self._access_lifetime = access_lifetime or settings.access_token_lifetime
        self._refresh_lifetime = refresh_lifetime or settings.refresh_token_lifetime

    async def create(
        self,
        client_id: str,
        user_id: str,
        scopes: list[str],
        parent_id: str | None = None,
    ) -> TokenInfo:
        now = datetime.now(timezone.utc)
        model = OAuthToken(
            access_token=generate_token(),
            refresh_token=generate_token(),
            client_id=client_id,
            user_id=user_id,
            scopes=list(scopes),
            access_token_expires_at=now + timedelta(seconds=self._access_lifetime),
            refresh_token_expires_at=now + timedelta(seconds=self._refresh_lifetime),
            revoked=False,
            parent_id=parent_id,
        )
        self._db.add(model)
        await self._db.flush()

        logger.debug(f"Token created: id={model.id}, client={client_id}")
        return _token_to_info(model)

    async def find_active_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        result = await self._db.execute(
            select(OAuthToken)
            .where(
                OAuthToken.refresh_token == refresh_token,
                OAuthToken.revoked.is_(False),
            )
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return _token_to_info(model)

    async def find_by_refresh_token(self, refresh_token: str) -> TokenInfo | None:
        result = await self._db.execute(
            select(OAuthToken)
            .where(OAuthToken.refresh_token == refresh_token)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return _token_to_info(model)

    async def revoke(self, token_id: str) -> bool:
        result = await self._db.execute(
            update(OAuthToken)
            .where(OAuthToken.id == token_id, OAuthToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_lineage(self, client_id: str, user_id: str) -> int:
        result = await self._db.execute(
            update(OAuthToken)
            .where(
                OAuthToken.client_id == client_id,
                OAuthToken.user_id == user_id,
                OAuthToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_expired(self) -> int:
        result = await self._db.execute(
            delete(OAuthToken)
            .where(OAuthToken.refresh_token_expires_at <= datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of Work over one AsyncSession.

    Code consumption and token issuance (or revocation and re-issuance)
    share the session's transaction, so a failure in between rolls the
    whole exchange back.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self._session = self._session_factory()
        self.clients = SQLAlchemyClientRepository(self._session)
        self.codes = SQLAlchemyAuthorizationCodeRepository(self._session)
        self.tokens = SQLAlchemyTokenRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session is None:
            return

        try:
            if exc_type is None or issubclass(exc_type, OAuthError):
                await self._session.commit()
            else:
                logger.warning(
                    f"Rolling back token exchange after {exc_type.__name__}"
                )
                await self._session.rollback()
        finally:
            await self._session.close()
            self._session = None
