"""
ApiKey model

Developers create API keys to call the platform's public API programmatically.

Flow:
    1. Developer creates a key via POST /developer/api-keys
    2. The plaintext key is returned once and must be stored by the developer
    3. Integration sends: Authorization: Bearer opx_<64 hex chars>
    4. TrustEngine hashes the presented key, looks it up, checks the rate limit
       and records the call in the usage ledger
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from trust_engine.core.postgres import Base


class ApiKeyORM(Base):
    __tablename__ = "api_keys"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Platform user who owns this key
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # SHA-256 of the plaintext key, never the key itself
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    # First characters of the plaintext key (e.g. "opx_a1b2c3d4"), safe to display
    key_prefix: Mapped[str] = mapped_column(String(20), nullable=False)

    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    rate_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    rate_limit_window: Mapped[int] = mapped_column(Integer, nullable=False, default=3600)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ApiKey prefix={self.key_prefix} owner_id={self.owner_id} active={self.is_active}>"
