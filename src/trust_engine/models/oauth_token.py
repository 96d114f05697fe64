import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from trust_engine.core.postgres import Base


class OAuthAuthorizationCodeORM(Base):
    """Single-use code handed to the client's redirect URI after user consent."""

    __tablename__ = "oauth_authorization_codes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    code: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)

    client_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("oauth_clients.client_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    redirect_uri: Mapped[str] = mapped_column(String(500), nullable=False)
    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Flipped exactly once, by a conditional UPDATE during the token exchange
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )


class OAuthAccessTokenORM(Base):
    __tablename__ = "oauth_access_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    client_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("oauth_clients.client_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )


class OAuthRefreshTokenORM(Base):
    """
    Refresh half of a token pair.

    A pair is created together and rotated together: using a refresh token
    revokes it and its access token, then issues a brand new pair.
    """

    __tablename__ = "oauth_refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    access_token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("oauth_access_tokens.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
