"""
FastAPI backend for the bus-operations dashboard.

Authenticated caching proxy in front of the Notion workspace, with a
scheduled daily sync to the external calendar.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from busops.core.container import Container
from busops.core.errors import BusOpsError
from busops.core.health import set_startup_time
from busops.core.logging import configure_logging, get_logger
from busops.middleware.auth import AuthMiddleware
from busops.routers import auth, system, workspace
from busops.services.accounts import decode_seed_accounts

logger = get_logger(__name__)

SYNC_JOB_ID = "daily-sync"


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled exception", error_type=type(e).__name__,
                         path=request.url.path, exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {str(e)}",
                    "detail": "Internal server error"
                }
            )


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Build the application around a (possibly pre-configured) container."""
    container = container or Container()
    settings = container.settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management."""
        logger.info("Starting bus-operations backend", account_store=settings.account_store)
        set_startup_time()

        if settings.account_store == "database":
            await container.database().startup()

        seeds = decode_seed_accounts(settings.user_accounts)
        if not seeds:
            logger.warning("USER_ACCOUNTS is empty, no accounts seeded")
        repository = container.account_repository()
        added = await repository.seed(seeds)
        logger.info("Accounts ready", seeded=added, total=await repository.count())

        scheduler = container.scheduler()
        if settings.daily_sync:
            scheduler.register_cron_job(SYNC_JOB_ID, settings.sync_cron, container.sync_job().run)
            scheduler.start()
            logger.info("Daily sync scheduled", next_run=scheduler.get_job_info(SYNC_JOB_ID))
        else:
            logger.info("Daily sync disabled")

        yield

        scheduler.shutdown()
        await container.notion_gateway().close()
        if settings.account_store == "database":
            await container.database().shutdown()
        logger.info("Services shutdown complete")

    app = FastAPI(
        title="Bus Operations Backend",
        version="1.0.0",
        description="Authenticated caching proxy for the bus-operations dashboard",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.container = container

    @app.exception_handler(BusOpsError)
    async def busops_error_handler(request: Request, exc: BusOpsError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message,
                         status=exc.status_code)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": message, "details": jsonable_errors(errors)}
        )

    app.add_middleware(CatchAllExceptionsMiddleware)
    app.add_middleware(AuthMiddleware)

    # CORS must stay outermost so preflight requests never reach auth
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(workspace.router)
    app.include_router(system.router)

    return app


def jsonable_errors(errors) -> list:
    """Validation errors minus the raw input, which may hold passwords."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]


if __name__ == "__main__":
    import uvicorn
    from busops.core.config import Settings

    settings = Settings()
    uvicorn.run(
        "busops.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1,
    )
