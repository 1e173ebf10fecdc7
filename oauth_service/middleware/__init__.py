"""Middleware modules"""

from oauth_service.middleware.logging import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
