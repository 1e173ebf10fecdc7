"""OAuth Client model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from oauth_service.models.database import Base


class OAuthClient(Base):
    """
    Third-party application registered through the developer console.

    Rows are written by the console; the token endpoint only reads them.
    """

    __tablename__ = "oauth_clients"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Client identification
    client_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    client_secret: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,  # NULL for public (PKCE-only) clients
    )

    # Client information
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    redirect_uris: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        comment="Exact-match redirect URIs",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<OAuthClient(id={self.id}, client_id={self.client_id}, name={self.name})>"
