from fastapi import APIRouter

from . import authorize, token, userinfo

router = APIRouter()

router.include_router(authorize.router, tags=["oauth"])
router.include_router(token.router, tags=["oauth"])
router.include_router(userinfo.router, tags=["oauth"])
