from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from common.logging import configure_logging, get_logger
from common.middleware import setup_logging_middleware
from common.schemas import ErrorResponse
from database.base import Base
from database.db_engine import create_database_engine
from database.db_session import create_session_factory
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledger_api.api.ledger import router as ledger_router
from ledger_api.config_load import load_settings
from ledger_api.config_schema import Settings
from ledger_api.errors import LedgerError
from ledger_api.ledger.engine import LedgerEngine

API_V1_PREFIX = "/api/v1"

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, ledger: LedgerEngine | None = None) -> FastAPI:
    """
    Build the ledger API.

    When ``ledger`` is given it is used as is and no database engine is
    created; otherwise the lifespan opens one from ``settings.database``.
    """
    settings = settings or load_settings()
    configure_logging(settings.app.name, settings.logging.level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("ledger_api_starting", env=settings.app.env)
        db_engine = None
        if getattr(app.state, "ledger", None) is None:
            db_engine = create_database_engine(
                settings.database.url,
                echo=settings.database.echo,
                pool_size=settings.database.pool_size,
                max_overflow=settings.database.max_overflow,
            )
            if db_engine.dialect.name == "sqlite":
                # Local runs have no migrations step.
                Base.metadata.create_all(db_engine)
            app.state.ledger = LedgerEngine.from_session_factory(
                create_session_factory(db_engine), settings
            )
        yield
        if db_engine is not None:
            db_engine.dispose()
            app.state.ledger = None
        logger.info("ledger_api_stopping")

    app = FastAPI(
        title="Pallet Ledger API",
        description="Temporal storage ledger and holding-cost reports",
        docs_url=f"{API_V1_PREFIX}/docs",
        openapi_url=f"{API_V1_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.ledger = ledger

    setup_logging_middleware(app)

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            "ledger_error",
            error_type=type(exc).__name__,
            error_code=exc.error_code,
            error_message=exc.message,
            request_id=request_id,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.error_code, message=exc.message, request_id=request_id
            ).model_dump(),
        )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app.name, "env": settings.app.env}

    app.include_router(
        ledger_router,
        prefix=API_V1_PREFIX,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    )
    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(create_app(_settings), host=_settings.server.host, port=_settings.server.port)
