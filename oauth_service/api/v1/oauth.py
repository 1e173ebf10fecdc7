"""OAuth2 token endpoint"""

import base64
import binascii
from urllib.parse import unquote_plus

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from oauth_service.core.config import logger, settings
from oauth_service.core.dependencies import UnitOfWorkDep
from oauth_service.core.exceptions import (
    InvalidClientError,
    InvalidRequestError,
    MethodNotAllowedError,
    OAuthError,
    ServerError,
)
from oauth_service.schemas.oauth import TokenInfo, TokenResponse
from oauth_service.services.grants import create_grant_handler

router = APIRouter()

ALLOWED_METHODS = "POST, OPTIONS"


@router.options("/token")
async def token_preflight() -> Response:
    """CORS preflight"""
    return Response(status_code=204, headers=_cors_headers())


def method_not_allowed_response() -> JSONResponse:
    """405 for any method other than POST or OPTIONS"""
    return _error_response(MethodNotAllowedError(), headers={"Allow": ALLOWED_METHODS})


@router.post("/token", response_model=TokenResponse)
async def token_endpoint(request: Request, uow: UnitOfWorkDep):
    """
    OAuth2 Token Endpoint

    Supports:
    - Authorization Code Grant: code (+ client_secret or PKCE code_verifier)
      -> access_token + refresh_token
    - Refresh Token Grant: refresh_token -> new access_token + new refresh_token

    The body may be form-encoded or JSON. Client credentials may also be sent
    with HTTP Basic authentication.
    """
    grant_type = None
    client_id = None

    try:
        params = await _parse_body(request)
        _apply_basic_credentials(request, params)

        grant_type = params.get("grant_type")
        client_id = params.get("client_id")
        request.state.grant_type = grant_type
        request.state.client_id = client_id

        async with uow:
            handler = create_grant_handler(
                grant_type,
                uow,
                revoke_lineage_on_reuse=settings.revoke_lineage_on_reuse,
            )
            token = await handler.handle(params)

    except OAuthError as e:
        logger.info(
            f"Token request rejected: {e.error}",
            extra={
                "error": e.error,
                "error_description": e.description,
                "grant_type": grant_type,
                "client_id": client_id,
            },
        )
        return _error_response(e)

    except Exception as e:
        logger.error(
            f"Token endpoint error: {e}",
            exc_info=True,
            extra={
                "error_type": type(e).__name__,
                "grant_type": grant_type,
                "client_id": client_id,
            },
        )
        return _error_response(ServerError("An internal error occurred"))

    return _token_response(token)


async def _parse_body(request: Request) -> dict[str, str]:
    """Read a form-encoded or JSON body into a flat string map"""
    content_type = request.headers.get("content-type", "")

    if (
        "application/x-www-form-urlencoded" in content_type
        or "multipart/form-data" in content_type
    ):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequestError("Request body must be form-encoded or JSON")

    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    # Only string values are parameters, so false or null count as absent
    return {key: value for key, value in body.items() if isinstance(value, str)}


def _apply_basic_credentials(request: Request, params: dict[str, str]) -> None:
    """Fill client_id / client_secret from an HTTP Basic header (RFC 6749, 2.3.1)"""
    header = request.headers.get("authorization")
    if not header:
        return

    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "basic":
        return

    try:
        decoded = base64.b64decode(credentials.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise InvalidClientError("Malformed Basic credentials", status_code=401)

    client_id, separator, client_secret = decoded.partition(":")
    if not separator:
        raise InvalidClientError("Malformed Basic credentials", status_code=401)

    if not params.get("client_id"):
        params["client_id"] = unquote_plus(client_id)
    if not params.get("client_secret") and client_secret:
        params["client_secret"] = unquote_plus(client_secret)


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Headers": settings.cors_allow_headers,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
    }


def _json_headers(extra: dict[str, str] | None = None) -> dict[str, str]:
    headers = _cors_headers()
    headers["Cache-Control"] = "no-store"
    headers["Pragma"] = "no-cache"
    if extra:
        headers.update(extra)
    return headers


def _token_response(token: TokenInfo) -> JSONResponse:
    response = TokenResponse(
        access_token=token.access_token,
        token_type="Bearer",
        expires_in=settings.access_token_lifetime,
        refresh_token=token.refresh_token,
        scope=" ".join(token.scopes),
    )
    return JSONResponse(
        content=response.model_dump(),
        status_code=200,
        headers=_json_headers(),
    )


def _error_response(
    error: OAuthError,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Create OAuth2 error response

    Args:
        error: Error to report to the caller
        headers: Extra response headers

    Returns:
        JSONResponse with error and CORS headers
    """
    return JSONResponse(
        content=error.to_response().model_dump(exclude_none=True),
        status_code=error.status_code,
        headers=_json_headers(headers),
    )
