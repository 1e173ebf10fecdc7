"""Storage ports and their implementations"""

from oauth_service.repositories.base import (
    AuthorizationCodeRepository,
    ClientRepository,
    TokenRepository,
    UnitOfWork,
)
from oauth_service.repositories.memory import InMemoryStorage, InMemoryUnitOfWork
from oauth_service.repositories.sqlalchemy import SQLAlchemyUnitOfWork

__all__ = [
    "ClientRepository",
    "AuthorizationCodeRepository",
    "TokenRepository",
    "UnitOfWork",
    "InMemoryStorage",
    "InMemoryUnitOfWork",
    "SQLAlchemyUnitOfWork",
]
