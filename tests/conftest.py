"""
Pytest configuration and fixtures.
"""
import os

os.environ.setdefault("OAUTH_SERVICE__STORAGE_BACKEND", "memory")
os.environ.setdefault("OAUTH_SERVICE__DB_URL", "sqlite:///:memory:")

import base64
import hashlib
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from oauth_service.core.dependencies import get_unit_of_work
from oauth_service.main import app
from oauth_service.repositories import InMemoryStorage, InMemoryUnitOfWork
from oauth_service.schemas.oauth import AuthorizationCodeInfo, TokenInfo
from oauth_service.utils.crypto import generate_token

REDIRECT_URI = "https://app.example/cb"
PUBLIC_CLIENT_ID = "public-app"
CONFIDENTIAL_CLIENT_ID = "confidential-app"
CLIENT_SECRET = "s3cret-value"
USER_ID = "7b1e0c4a-2f1d-4a8e-9c55-0d2f3b9a6e11"


def s256(verifier: str) -> str:
    """Reference S256 challenge used to build test fixtures"""
    digest = hashlib.sha256(verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


@pytest.fixture
def storage():
    """In-memory storage with one public and one confidential client"""
    storage = InMemoryStorage()
    storage.add_client(PUBLIC_CLIENT_ID, redirect_uris=[REDIRECT_URI])
    storage.add_client(
        CONFIDENTIAL_CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uris=[REDIRECT_URI],
    )
    return storage


@pytest_asyncio.fixture
async def uow(storage):
    async with InMemoryUnitOfWork(storage) as uow:
        yield uow


@pytest.fixture
def make_code(storage):
    """Factory for authorization codes as the consent flow would create them"""

    def _make_code(
        client_id: str = PUBLIC_CLIENT_ID,
        scopes: list[str] | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        expires_in: int = 600,
    ) -> AuthorizationCodeInfo:
        code = AuthorizationCodeInfo(
            code=generate_token(),
            client_id=client_id,
            user_id=USER_ID,
            redirect_uri=REDIRECT_URI,
            scopes=scopes if scopes is not None else ["profile:read", "friends:read"],
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )
        storage.codes[code.code] = code
        return code

    return _make_code


@pytest.fixture
def make_token(storage):
    """Factory for token pairs already issued to a client"""

    def _make_token(
        client_id: str = PUBLIC_CLIENT_ID,
        scopes: list[str] | None = None,
        refresh_expires_in: int = 3600,
        revoked: bool = False,
    ) -> TokenInfo:
        now = datetime.now(timezone.utc)
        token = TokenInfo(
            id=str(uuid.uuid4()),
            access_token=generate_token(),
            refresh_token=generate_token(),
            client_id=client_id,
            user_id=USER_ID,
            scopes=scopes if scopes is not None else ["profile:read"],
            access_token_expires_at=now + timedelta(seconds=3600),
            refresh_token_expires_at=now + timedelta(seconds=refresh_expires_in),
            revoked=revoked,
        )
        storage.tokens[token.id] = token
        return token

    return _make_token


@pytest.fixture
def client(storage):
    """TestClient whose token endpoint uses the in-memory storage"""
    app.dependency_overrides[get_unit_of_work] = lambda: InMemoryUnitOfWork(storage)
    yield TestClient(app)
    app.dependency_overrides.clear()
