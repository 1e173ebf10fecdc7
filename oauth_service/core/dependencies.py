"""FastAPI dependencies"""

from typing import Annotated

from fastapi import Depends

from oauth_service.core.config import settings
from oauth_service.models.database import async_session_maker
from oauth_service.repositories import (
    InMemoryStorage,
    InMemoryUnitOfWork,
    SQLAlchemyUnitOfWork,
    UnitOfWork,
)

# Backing state for the "memory" storage backend
memory_storage = InMemoryStorage()


def get_unit_of_work() -> UnitOfWork:
    """Get a unit of work for the configured storage backend"""
    if settings.storage_backend == "memory":
        return InMemoryUnitOfWork(memory_storage)
    return SQLAlchemyUnitOfWork(async_session_maker)


UnitOfWorkDep = Annotated[UnitOfWork, Depends(get_unit_of_work)]
