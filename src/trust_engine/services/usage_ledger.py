import uuid
from datetime import datetime

from trust_engine.models.api_usage_log import ApiUsageLogORM
from trust_engine.repositories.credential_store import CredentialStore


class UsageLedger:
    """
    Append-only record of API calls made with API keys.

    This is the only write path into api_usage_logs. Rate limiting and usage
    statistics read from here.
    """

    def __init__(self, store: CredentialStore):
        self.store = store

    async def append(
        self,
        *,
        api_key_id: uuid.UUID,
        endpoint: str,
        method: str,
        status_code: int,
        response_time_ms: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
        created_at: datetime,
    ) -> ApiUsageLogORM:
        return await self.store.usage_logs.create(
            {
                "id": uuid.uuid4(),
                "api_key_id": api_key_id,
                "endpoint": endpoint,
                "method": method.upper(),
                "status_code": status_code,
                "response_time_ms": max(0, response_time_ms),
                "ip_address": ip_address,
                "user_agent": user_agent,
                "created_at": created_at,
            }
        )

    async def count_since(self, api_key_id: uuid.UUID, since: datetime) -> int:
        return await self.store.usage_logs.count_since(api_key_id, since)

    async def entries(
        self,
        api_key_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ApiUsageLogORM]:
        return await self.store.usage_logs.list_between(api_key_id, start, end)
