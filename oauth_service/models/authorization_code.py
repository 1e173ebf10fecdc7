"""Authorization Code model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from oauth_service.models.database import Base


class AuthorizationCode(Base):
    """Single-use authorization code issued on user consent"""

    __tablename__ = "oauth_authorization_codes"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    code: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Relationships
    client_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("oauth_clients.client_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
    )

    # Grant data
    redirect_uri: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    scopes: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    # PKCE
    code_challenge: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    code_challenge_method: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
    )

    # Expiration
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthorizationCode(id={self.id}, client_id={self.client_id}, user_id={self.user_id})>"
