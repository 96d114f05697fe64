import logging
import time
import uuid

from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from trust_engine.core.postgres import AsyncSessionLocal
from trust_engine.repositories.credential_store import CredentialStore
from trust_engine.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)


async def record_usage(
    api_key_id: uuid.UUID,
    endpoint: str,
    method: str,
    status_code: int,
    latency_ms: int,
    ip_address: str | None,
    user_agent: str | None,
) -> None:
    """Append one ledger row on a session of its own."""
    async with AsyncSessionLocal() as session:
        service = ApiKeyService(CredentialStore(session))
        await service.log_usage(
            api_key_id, endpoint, method, status_code, latency_ms, ip_address, user_agent
        )


class UsageRecorderMiddleware(BaseHTTPMiddleware):
    """
    Record every API-key-authenticated call in the usage ledger.

    The row is written after the response has been sent, so a slow or
    failing ledger never delays or breaks the caller's request.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)

        api_key_id = getattr(request.state, "api_key_id", None)
        if api_key_id is None:
            return response

        response.background = BackgroundTask(
            record_usage,
            api_key_id=api_key_id,
            endpoint=request.url.path,
            method=request.method,
            status_code=response.status_code,
            latency_ms=int((time.perf_counter() - start) * 1000),
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        return response
