from fastapi import APIRouter

from . import principal

router = APIRouter()

router.include_router(principal.router, tags=["public-api"])
