"""OAuth2 token endpoint errors (RFC 6749, section 5.2)"""

from oauth_service.schemas.oauth import TokenErrorResponse


class OAuthError(Exception):
    """
    Base class for errors returned by the token endpoint

    Attributes:
        error: OAuth2 error code sent to the caller
        description: Human-readable description (optional)
        status_code: HTTP status code of the error response
    """

    error = "server_error"
    status_code = 500

    def __init__(self, description: str | None = None, status_code: int | None = None):
        super().__init__(description or self.error)
        self.description = description
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> TokenErrorResponse:
        return TokenErrorResponse(error=self.error, error_description=self.description)


class InvalidRequestError(OAuthError):
    """Missing or malformed parameters"""

    error = "invalid_request"
    status_code = 400


class InvalidClientError(OAuthError):
    """Unknown client or client authentication failure"""

    error = "invalid_client"
    status_code = 400


class InvalidGrantError(OAuthError):
    """Expired, consumed, revoked or mismatched code / refresh token"""

    error = "invalid_grant"
    status_code = 400


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"
    status_code = 400


class ServerError(OAuthError):
    error = "server_error"
    status_code = 500


class MethodNotAllowedError(OAuthError):
    error = "method_not_allowed"
    status_code = 405
