from contextlib import asynccontextmanager
from typing import Callable, Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from core.config import settings
from core.exceptions import register_exception_handlers
from app.startup import configure_logging, run_startup_checks

# ========== Kitchen Display System (KDS) ==========
from modules.kds.routes import router as kds_router
from modules.kds.services.kds_runtime import KDSRuntime

# ========== POS Integration ==========
from modules.pos.routes.pos_routes import router as pos_router

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[], KDSRuntime]


def create_app(runtime_factory: Optional[RuntimeFactory] = None) -> FastAPI:
    """Build the FastAPI application; tests pass their own runtime factory"""

    runtime_factory = runtime_factory or KDSRuntime

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        run_startup_checks(settings)
        runtime = runtime_factory()
        await runtime.start()
        app.state.kds = runtime
        logger.info(f"Kitchen display backend ready with {len(runtime.store)} tickets")
        try:
            yield
        finally:
            await runtime.shutdown()
            app.state.kds = None
            logger.info("Kitchen display backend stopped")

    app = FastAPI(
        title="Kitchen Display Sync API",
        description="Keeps kitchen tickets consistent between the POS and every kitchen display.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(kds_router)
    app.include_router(pos_router)

    @app.get("/healthz", response_class=PlainTextResponse, tags=["health"])
    async def healthz() -> str:
        return "OK"

    return app


configure_logging(settings.log_level)
app = create_app()
