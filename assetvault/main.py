from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from assetvault.api.v1.router import api_router
from assetvault.core.config import settings
from assetvault.core.errors import AssetVaultError
from assetvault.core.logging import configure_logging
from assetvault.middleware.rate_limit import RedisRateLimitMiddleware
from assetvault.services.object_store import ObjectStoreConfigError

logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(title=settings.app_name, default_response_class=ORJSONResponse, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.rate_limit_enabled:
    app.add_middleware(RedisRateLimitMiddleware)

app.include_router(api_router, prefix=settings.api_prefix)

Instrumentator().instrument(app).expose(app)


@app.exception_handler(AssetVaultError)
async def asset_vault_error_handler(_request: Request, exc: AssetVaultError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(ObjectStoreConfigError)
async def object_store_config_error_handler(_request: Request, exc: ObjectStoreConfigError) -> JSONResponse:
    logger.error("%s", exc)
    return JSONResponse(status_code=500, content={"detail": "File storage is not configured"})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
