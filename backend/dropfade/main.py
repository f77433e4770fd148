# dropfade/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from dropfade.api import drops, uploads
from dropfade.core.config import Settings
from dropfade.core.errors import DropError, Gone
from dropfade.core.rate_limit import limiter
from dropfade.infra.blob_store import build_blob_store
from dropfade.infra.metadata_store import build_metadata_store
from dropfade.services.drop_lifecycle import DropLifecycleManager
from dropfade.services.sweeper import ExpirySweeper
from dropfade.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def build_manager(settings: Settings) -> DropLifecycleManager:
    return DropLifecycleManager(
        metadata=build_metadata_store(settings),
        blobs=build_blob_store(settings),
        settings=settings,
    )


def create_app(settings: Settings | None = None, manager: DropLifecycleManager | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logger(settings.log_level)
    manager = manager or build_manager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if settings.sweep_interval_seconds > 0:
            sweeper = ExpirySweeper(manager, settings.sweep_interval_seconds)
            sweeper.start()
        try:
            yield
        finally:
            if sweeper:
                sweeper.stop()

    app = FastAPI(
        title="DropFade",
        version="1.0.0",
        description="One-time access file and text drops",
        lifespan=lifespan,
    )
    app.state.drops = manager
    app.state.settings = settings
    app.state.limiter = limiter

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DropError)
    def drop_error_handler(request: Request, exc: DropError):
        if isinstance(exc, Gone):
            logger.info("%s %s -> gone (%s)", request.method, request.url.path, exc.reason)
        elif exc.status_code >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        logger.info("%s %s -> malformed request (%s)", request.method, request.url.path, ", ".join(fields))
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(Exception)
    def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Request failed"})

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Register routers
    app.include_router(uploads.router, tags=["Uploads"])
    app.include_router(drops.router, tags=["Drops"])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.get("/health/store")
    def store_health_check():
        if not manager.metadata.ping():
            return JSONResponse(status_code=503, content={"error": "Metadata store unreachable"})
        return {"status": "ok"}

    return app


app = create_app()
