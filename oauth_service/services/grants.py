"""Grant handlers for the token endpoint"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from oauth_service.core.config import logger
from oauth_service.core.exceptions import (
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    ServerError,
    UnsupportedGrantTypeError,
)
from oauth_service.repositories.base import (
    AuthorizationCodeRepository,
    ClientRepository,
    TokenRepository,
    UnitOfWork,
)
from oauth_service.schemas.oauth import GrantType, OAuthClientInfo, TokenInfo
from oauth_service.services.pkce import verify_code_verifier
from oauth_service.utils.crypto import constant_time_compare, mask_token


class GrantHandler(ABC):
    """Validates one grant type and issues a token pair"""

    grant_type: GrantType

    def __init__(self, clients: ClientRepository):
        self.clients = clients

    @abstractmethod
    async def handle(self, params: dict[str, str]) -> TokenInfo:
        """
        Exchange the grant for a new token pair.

        Args:
            params: Flat request parameters

        Returns:
            The newly issued token

        Raises:
            OAuthError: If the grant is rejected
        """

    async def _load_client(self, client_id: str) -> OAuthClientInfo:
        client = await self.clients.find_by_client_id(client_id)
        if client is None:
            # The grant references a client row that no longer exists
            logger.error(f"Client {client_id} referenced by a grant is missing")
            raise ServerError("An internal error occurred")
        return client

    @staticmethod
    def _secret_matches(client: OAuthClientInfo, client_secret: str) -> bool:
        if not client.client_secret:
            return False
        return constant_time_compare(client_secret, client.client_secret)


class AuthorizationCodeGrant(GrantHandler):
    """authorization_code grant: single-use code -> token pair"""

    grant_type = GrantType.AUTHORIZATION_CODE

    def __init__(
        self,
        clients: ClientRepository,
        codes: AuthorizationCodeRepository,
        tokens: TokenRepository,
    ):
        super().__init__(clients)
        self.codes = codes
        self.tokens = tokens

    async def handle(self, params: dict[str, str]) -> TokenInfo:
        code_value = params.get("code") or None
        redirect_uri = params.get("redirect_uri") or None
        client_id = params.get("client_id") or None
        client_secret = params.get("client_secret") or None
        code_verifier = params.get("code_verifier") or None

        if not code_value or not redirect_uri or not client_id:
            logger.warning(
                "Missing required parameters for authorization_code grant",
                extra={
                    "has_code": code_value is not None,
                    "has_redirect_uri": redirect_uri is not None,
                    "has_client_id": client_id is not None,
                },
            )
            raise InvalidRequestError("Missing required parameters")

        code = await self.codes.find_by_code(code_value)
        if code is None:
            logger.warning(f"Unknown authorization code: {mask_token(code_value)}")
            raise InvalidGrantError("Invalid authorization code")

        if datetime.now(timezone.utc) >= code.expires_at:
            await self.codes.find_and_delete(code_value)
            logger.info(f"Expired authorization code removed: {mask_token(code_value)}")
            raise InvalidGrantError("Authorization code expired")

        client = await self._load_client(code.client_id)

        if client.client_id != client_id:
            logger.warning(
                f"Client ID mismatch: code={client.client_id}, request={client_id}"
            )
            raise InvalidClientError("Client ID mismatch")

        if client_secret:
            # A supplied secret is authoritative, even for PKCE-bound codes
            if not self._secret_matches(client, client_secret):
                logger.warning(f"Invalid client secret for {client_id}")
                raise InvalidClientError("Invalid client secret", status_code=401)
        elif code.code_challenge:
            if not code_verifier:
                raise InvalidRequestError("Code verifier required")
            if not verify_code_verifier(
                code_verifier, code.code_challenge, code.code_challenge_method
            ):
                logger.warning(f"PKCE verification failed for {client_id}")
                raise InvalidGrantError("Invalid code verifier")
        elif client.is_confidential:
            logger.warning(f"Missing client authentication for {client_id}")
            raise InvalidClientError("Client authentication required", status_code=401)

        if code.redirect_uri != redirect_uri:
            logger.warning(
                f"Redirect URI mismatch for {client_id}",
                extra={"expected": code.redirect_uri, "received": redirect_uri},
            )
            raise InvalidGrantError("Redirect URI mismatch")

        consumed = await self.codes.find_and_delete(code_value)
        if consumed is None:
            logger.warning(f"Authorization code already used: {mask_token(code_value)}")
            raise InvalidGrantError("Invalid authorization code")

        token = await self.tokens.create(
            client_id=consumed.client_id,
            user_id=consumed.user_id,
            scopes=consumed.scopes,
        )

        logger.info(
            f"Authorization code exchanged: user={token.user_id}, client={token.client_id}",
            extra={"token_id": token.id, "scopes": token.scopes},
        )
        return token


class RefreshTokenGrant(GrantHandler):
    """refresh_token grant: rotates a refresh token into a new pair"""

    grant_type = GrantType.REFRESH_TOKEN

    def __init__(
        self,
        clients: ClientRepository,
        tokens: TokenRepository,
        revoke_lineage_on_reuse: bool = False,
    ):
        super().__init__(clients)
        self.tokens = tokens
        self.revoke_lineage_on_reuse = revoke_lineage_on_reuse

    async def handle(self, params: dict[str, str]) -> TokenInfo:
        refresh_token = params.get("refresh_token") or None
        client_id = params.get("client_id") or None
        client_secret = params.get("client_secret") or None

        if not refresh_token or not client_id:
            raise InvalidRequestError("Missing required parameters")

        existing = await self.tokens.find_active_by_refresh_token(refresh_token)
        if existing is None:
            if self.revoke_lineage_on_reuse:
                await self._revoke_lineage_on_reuse(refresh_token)
            logger.warning(f"Unknown or revoked refresh token: {mask_token(refresh_token)}")
            raise InvalidGrantError("Invalid refresh token")

        if datetime.now(timezone.utc) >= existing.refresh_token_expires_at:
            await self.tokens.revoke(existing.id)
            logger.info(f"Expired refresh token revoked: token_id={existing.id}")
            raise InvalidGrantError("Refresh token expired")

        client = await self._load_client(existing.client_id)

        if client.client_id != client_id:
            logger.warning(
                f"Client ID mismatch: token={client.client_id}, request={client_id}"
            )
            raise InvalidClientError("Client ID mismatch")

        if client_secret and not self._secret_matches(client, client_secret):
            logger.warning(f"Invalid client secret for {client_id}")
            raise InvalidClientError("Invalid client secret", status_code=401)

        if not await self.tokens.revoke(existing.id):
            logger.warning(f"Refresh token rotated concurrently: token_id={existing.id}")
            raise InvalidGrantError("Invalid refresh token")

        token = await self.tokens.create(
            client_id=existing.client_id,
            user_id=existing.user_id,
            scopes=existing.scopes,
            parent_id=existing.id,
        )

        logger.info(
            f"Refresh token rotated: user={token.user_id}, client={token.client_id}",
            extra={"token_id": token.id, "parent_id": existing.id},
        )
        return token

    async def _revoke_lineage_on_reuse(self, refresh_token: str) -> None:
        previous = await self.tokens.find_by_refresh_token(refresh_token)
        if previous is None or not previous.revoked:
            return

        count = await self.tokens.revoke_lineage(previous.client_id, previous.user_id)
        logger.warning(
            f"SECURITY: Refresh token reuse detected! Revoked {count} tokens "
            f"for user {previous.user_id}, client {previous.client_id}"
        )


def create_grant_handler(
    grant_type: str | None,
    uow: UnitOfWork,
    revoke_lineage_on_reuse: bool = False,
) -> GrantHandler:
    """
    Select the handler for a grant_type value

    Raises:
        UnsupportedGrantTypeError: For anything but authorization_code / refresh_token
    """
    if grant_type == GrantType.AUTHORIZATION_CODE.value:
        return AuthorizationCodeGrant(uow.clients, uow.codes, uow.tokens)

    if grant_type == GrantType.REFRESH_TOKEN.value:
        return RefreshTokenGrant(
            uow.clients,
            uow.tokens,
            revoke_lineage_on_reuse=revoke_lineage_on_reuse,
        )

    raise UnsupportedGrantTypeError(f"Grant type '{grant_type}' is not supported")
