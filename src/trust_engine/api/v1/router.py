from fastapi import APIRouter

from trust_engine.api.v1 import developer, oauth, public
from trust_engine.core.health import check_database

api_router = APIRouter()

# Management routes for developers (platform session required)
api_router.include_router(developer.router, prefix="/developer")

# OAuth 2.0 authorization server
api_router.include_router(oauth.router, prefix="/oauth")

# Routes consumed by third-party integrations (API key or OAuth token)
api_router.include_router(public.router, prefix="/public")


@api_router.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    try:
        await check_database()
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
