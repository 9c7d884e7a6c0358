from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import IdentityUnavailable, StoreUnavailable
from .repositories import TaskStore, create_store
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "Shared task list; tasks are owned by the network address that created them.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[TaskStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The store (given, or created from settings) is opened, schema-ensured and
    migrated when the app starts, and closed when it shuts down. Logging is
    left to the host process; see ``shared_todo.__main__`` for the standalone
    server.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task_store = store or create_store(settings)
        task_store.open()
        try:
            task_store.ensure_schema()
            task_store.migrate()
            app.state.store = task_store
            logger.info("Task store ready (backend=%s)", task_store.backend_name)
            yield
        finally:
            task_store.close()
            logger.info("Task store closed")

    app = FastAPI(
        title="Shared Todo",
        description="Shared to-do list where every visitor is identified by network address.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": exc.errors(),
            },
        )

    @app.exception_handler(IdentityUnavailable)
    async def identity_exception_handler(request: Request, exc: IdentityUnavailable) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=400,
            content={"error": "IdentityUnavailable", "message": str(exc)},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_exception_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "StoreUnavailable", "message": "Storage is unavailable"},
        )

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": request.app.state.store.backend_name}

    app.include_router(tasks_router.router)
    return app


app = create_app()
