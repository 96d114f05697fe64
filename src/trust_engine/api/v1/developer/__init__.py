from fastapi import APIRouter

from . import api_keys, oauth_clients

router = APIRouter()

router.include_router(api_keys.router, tags=["developer-api-keys"])
router.include_router(oauth_clients.router, tags=["developer-oauth-clients"])
