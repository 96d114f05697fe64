import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from trust_engine.api.middleware.usage import UsageRecorderMiddleware
from trust_engine.api.v1.router import api_router
from trust_engine.core.config import settings
from trust_engine.core.exceptions import (
    OAuthProtocolError,
    TrustEngineException,
    convert_to_developer_response,
    convert_to_oauth_response,
    to_http_status,
)
from trust_engine.core.postgres import engine

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger(__name__)

# Silence noisy libraries
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

OAUTH_PATH_PREFIX = f"{settings.API_V1_PREFIX}/oauth/"

# OAuth error codes for plain HTTP errors raised on /oauth routes
OAUTH_ERROR_BY_STATUS = {
    status.HTTP_401_UNAUTHORIZED: "invalid_token",
    status.HTTP_403_FORBIDDEN: "access_denied",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "server_error",
}


def _is_oauth_route(request: Request) -> bool:
    return request.url.path.startswith(OAUTH_PATH_PREFIX)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting up TrustEngine...")
    yield
    logger.info("Shutting down TrustEngine...")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
)


origins = (
    settings.CORS_ORIGINS if isinstance(settings.CORS_ORIGINS, list) else [settings.CORS_ORIGINS]
)

app.add_middleware(UsageRecorderMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.exception_handler(OAuthProtocolError)
async def oauth_protocol_error_handler(request: Request, exc: OAuthProtocolError) -> JSONResponse:
    return convert_to_oauth_response(exc)


@app.exception_handler(TrustEngineException)
async def trust_engine_exception_handler(
    request: Request, exc: TrustEngineException
) -> JSONResponse:
    if _is_oauth_route(request):
        status_code = to_http_status(exc)
        oauth_error = OAUTH_ERROR_BY_STATUS.get(status_code, "invalid_request")
        return convert_to_oauth_response(OAuthProtocolError(oauth_error, exc.message, status_code))
    return convert_to_developer_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # ("body", "redirect_uris", 0) -> "redirect_uris.0"
    fields = sorted(
        {
            ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
            for err in exc.errors()
        }
    )
    if _is_oauth_route(request):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "invalid_request",
                "error_description": f"Invalid request parameters: {', '.join(fields)}",
            },
        )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "VALIDATION_ERROR",
            "message": "Validation error",
            "details": {"fields": fields},
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if _is_oauth_route(request):
        content = {
            "error": OAUTH_ERROR_BY_STATUS.get(exc.status_code, "invalid_request"),
            "error_description": exc.detail,
        }
    else:
        content = {
            "success": False,
            "error": HTTPStatus(exc.status_code).name,
            "message": exc.detail,
        }
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    if _is_oauth_route(request):
        content = {"error": "server_error", "error_description": "Internal server error"}
    else:
        content = {"success": False, "error": "SERVER_ERROR", "message": "Internal server error"}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.include_router(api_router, prefix=settings.API_V1_PREFIX)

if __name__ == "__main__":
    uvicorn.run(
        "trust_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
