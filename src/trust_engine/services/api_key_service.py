"""
ApiKeyService

Lifecycle of developer API keys: create, verify, list, update, rotate, revoke.
Also the read side of the usage ledger for the key's owner (statistics) and
for the request pipeline (rate limiting).

Only the SHA-256 of a key and its first characters are stored. The plaintext
leaves this service exactly once, in the result of create_key / rotate_key.
"""

import logging
import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from trust_engine.core.clock import Clock, as_utc, utcnow
from trust_engine.core.config import settings
from trust_engine.core.exceptions import NotFoundError, ServerError, ValidationError
from trust_engine.core.security import secret_hasher
from trust_engine.models.api_key import ApiKeyORM
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.schemas.api_key import (
    ActiveKeyInfo,
    ApiKeyListItem,
    CreatedApiKey,
    RateLimitStatus,
    UsageStats,
)
from trust_engine.schemas.common import normalize_scopes
from trust_engine.services.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "scopes", "rate_limit", "rate_limit_window"})


class ApiKeyService:
    def __init__(self, store: CredentialStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow
        self.ledger = UsageLedger(store)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def create_key(
        self,
        owner_id: str,
        name: str,
        scopes: list[str],
        rate_limit: int | None = None,
        rate_limit_window: int | None = None,
        expires_at: datetime | None = None,
    ) -> CreatedApiKey:
        """
        Issue a new key. The returned `key` is the only copy of the plaintext.

        Defaults: API_KEY_DEFAULT_RATE_LIMIT requests per
        API_KEY_DEFAULT_RATE_LIMIT_WINDOW_SECONDS.
        """
        fields = self._validated(
            {
                "name": name,
                "scopes": scopes,
                "rate_limit": (
                    rate_limit if rate_limit is not None else settings.API_KEY_DEFAULT_RATE_LIMIT
                ),
                "rate_limit_window": (
                    rate_limit_window
                    if rate_limit_window is not None
                    else settings.API_KEY_DEFAULT_RATE_LIMIT_WINDOW_SECONDS
                ),
            }
        )

        async with self.store.transaction():
            created = await self._insert_key(owner_id, expires_at=expires_at, **fields)

        logger.info(f"[api-keys] Created key {created.key_prefix}... id={created.id} owner={owner_id}")
        return created

    async def verify_key(self, plaintext_key: str) -> ActiveKeyInfo | None:
        """
        Resolve a presented key.

        Returns None if the key is unknown, revoked or expired. On success the
        key's last_used_at is set to now.
        """
        if not plaintext_key:
            return None

        now = self.clock()
        async with self.store.transaction():
            api_key = await self.store.api_keys.get_active_by_key_hash(
                secret_hasher.hash(plaintext_key), now
            )
            if api_key is None:
                return None
            await self.store.api_keys.touch_last_used(api_key.id, now)

        return ActiveKeyInfo.model_validate(api_key).model_copy(update={"last_used_at": now})

    async def list_keys(self, owner_id: str) -> list[ApiKeyListItem]:
        keys = await self.store.api_keys.list_by_owner(owner_id)
        return [ApiKeyListItem.model_validate(k) for k in keys]

    async def get_key(self, owner_id: str, key_id: uuid.UUID) -> ApiKeyListItem:
        return ApiKeyListItem.model_validate(await self._get_owned(owner_id, key_id))

    async def update_key(
        self, owner_id: str, key_id: uuid.UUID, fields: dict[str, Any]
    ) -> ApiKeyListItem:
        """Partial update of name, scopes and limits. The active flag is not writable here."""
        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(unknown)}", fields=unknown)
        changes = self._validated(fields)

        async with self.store.transaction():
            api_key = await self._get_owned(owner_id, key_id)
            if changes:
                await self.store.api_keys.update_where(api_key.id, [], changes)
                api_key = await self._get_owned(owner_id, key_id)

        logger.info(f"[api-keys] Updated key {key_id} fields={sorted(changes)}")
        return ApiKeyListItem.model_validate(api_key)

    async def revoke_key(self, owner_id: str, key_id: uuid.UUID) -> None:
        """Deactivate a key for good. Revoking a revoked key is a no-op."""
        async with self.store.transaction():
            api_key = await self._get_owned(owner_id, key_id)
            flipped = await self.store.api_keys.deactivate(api_key.id)

        if flipped:
            logger.info(f"[api-keys] Revoked key {api_key.key_prefix}... id={key_id}")

    async def rotate_key(self, owner_id: str, key_id: uuid.UUID) -> CreatedApiKey:
        """
        Replace a key with a new secret carrying the same name, scopes, limits and expiry.

        Insert-new and revoke-old commit together. The revoke is conditional on
        the old key still being active; if a concurrent revoke or rotation got
        there first the whole transaction rolls back and no new key exists.
        """
        async with self.store.transaction():
            old = await self._get_owned(owner_id, key_id)
            if not old.is_active:
                raise NotFoundError("API key not found or already revoked")

            created = await self._insert_key(
                owner_id,
                name=old.name,
                scopes=list(old.scopes),
                rate_limit=old.rate_limit,
                rate_limit_window=old.rate_limit_window,
                expires_at=old.expires_at,
            )

            if not await self.store.api_keys.deactivate(old.id):
                logger.warning(f"[api-keys] Rotation of {key_id} lost a race; rolling back")
                raise ServerError("API key rotation failed, please retry")

        logger.info(
            f"[api-keys] Rotated key {old.key_prefix}... id={key_id} -> "
            f"{created.key_prefix}... id={created.id}"
        )
        return created

    # ------------------------------------------------------------------ #
    # Usage ledger
    # ------------------------------------------------------------------ #

    async def log_usage(
        self,
        key_id: uuid.UUID,
        endpoint: str,
        method: str,
        status_code: int,
        latency_ms: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Append one ledger row. Best effort: failures are logged, never raised."""
        try:
            async with self.store.transaction():
                await self.ledger.append(
                    api_key_id=key_id,
                    endpoint=endpoint,
                    method=method,
                    status_code=status_code,
                    response_time_ms=latency_ms,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    created_at=self.clock(),
                )
        except Exception as e:
            logger.warning(f"[usage] Could not record call for key {key_id}: {e}")

    async def get_usage_stats(
        self,
        owner_id: str,
        key_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> UsageStats:
        if start and end and start > end:
            raise ValidationError("start_date must be before end_date", fields=["start_date"])

        api_key = await self._get_owned(owner_id, key_id)
        entries = await self.ledger.entries(api_key.id, start, end)

        total = len(entries)
        successes = sum(1 for e in entries if 200 <= e.status_code < 300)
        avg_latency = round(sum(e.response_time_ms for e in entries) / total) if total else 0

        return UsageStats(
            total_requests=total,
            success_count=successes,
            failure_count=total - successes,
            avg_latency_ms=avg_latency,
            by_endpoint=dict(Counter(e.endpoint for e in entries)),
            by_day=dict(Counter(as_utc(e.created_at).date().isoformat() for e in entries)),
        )

    async def check_rate_limit(self, key_id: uuid.UUID) -> RateLimitStatus:
        """
        Count ledger rows in the key's trailing window.

        allowed iff count < rate_limit. reset_at is now + window, an upper
        bound rather than the moment the oldest counted call ages out.
        An unknown key is never allowed.
        """
        now = self.clock()
        api_key = await self.store.api_keys.get(key_id)
        if api_key is None:
            return RateLimitStatus(allowed=False, limit=0, remaining=0, reset_at=now)

        window = timedelta(seconds=api_key.rate_limit_window)
        count = await self.ledger.count_since(api_key.id, now - window)

        return RateLimitStatus(
            allowed=count < api_key.rate_limit,
            limit=api_key.rate_limit,
            remaining=max(0, api_key.rate_limit - count),
            reset_at=now + window,
        )

    async def get_rate_limit_status(self, owner_id: str, key_id: uuid.UUID) -> RateLimitStatus:
        api_key = await self._get_owned(owner_id, key_id)
        return await self.check_rate_limit(api_key.id)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _get_owned(self, owner_id: str, key_id: uuid.UUID) -> ApiKeyORM:
        api_key = await self.store.api_keys.get_for_owner(owner_id, key_id)
        if api_key is None:
            raise NotFoundError("API key not found")
        return api_key

    async def _insert_key(
        self,
        owner_id: str,
        *,
        name: str,
        scopes: list[str],
        rate_limit: int,
        rate_limit_window: int,
        expires_at: datetime | None,
    ) -> CreatedApiKey:
        key, key_hash = secret_hasher.generate_with_hash(settings.API_KEY_PREFIX)
        now = self.clock()

        api_key = await self.store.api_keys.create(
            {
                "id": uuid.uuid4(),
                "owner_id": owner_id,
                "name": name,
                "key_hash": key_hash,
                "key_prefix": key[: settings.API_KEY_DISPLAY_PREFIX_LENGTH],
                "scopes": scopes,
                "rate_limit": rate_limit,
                "rate_limit_window": rate_limit_window,
                "is_active": True,
                "expires_at": expires_at,
                "created_at": now,
                "updated_at": now,
            }
        )
        return CreatedApiKey(key=key, **ApiKeyListItem.model_validate(api_key).model_dump())

    @staticmethod
    def _validated(fields: dict[str, Any]) -> dict[str, Any]:
        invalid: list[str] = []
        changes = dict(fields)

        if "name" in changes and not (changes["name"] or "").strip():
            invalid.append("name")
        for limit in ("rate_limit", "rate_limit_window"):
            if limit in changes and (changes[limit] is None or changes[limit] <= 0):
                invalid.append(limit)
        if "scopes" in changes:
            try:
                changes["scopes"] = normalize_scopes(changes["scopes"] or [])
            except ValueError:
                invalid.append("scopes")

        if invalid:
            raise ValidationError(f"Invalid value for: {', '.join(invalid)}", fields=invalid)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        return changes
