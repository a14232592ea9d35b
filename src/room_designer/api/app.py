"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from room_designer.api.phone_upload import router as phone_upload_router
from room_designer.api.session import router as session_router
from room_designer.app_logging import configure_logging
from room_designer.containers import AppContainer
from room_designer.domain.errors import (
    BackendRejection,
    HandoffAddressError,
    NetworkError,
    ValidationError,
)
from room_designer.domain.furniture import FurnitureItemRef


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Backend API at %s", app.state.container.settings.backend_url)
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(phone_upload_router)
    app.include_router(session_router)

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST
        )

    @app.exception_handler(HandoffAddressError)
    async def handoff_error(request: Request, exc: HandoffAddressError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_409_CONFLICT)

    @app.exception_handler(BackendRejection)
    async def backend_rejection(
        request: Request, exc: BackendRejection
    ) -> JSONResponse:
        return JSONResponse(
            {"detail": exc.detail, "backend_status": exc.status_code},
            status_code=status.HTTP_502_BAD_GATEWAY,
        )

    @app.exception_handler(NetworkError)
    async def network_error(request: Request, exc: NetworkError) -> JSONResponse:
        logger.warning("Backend unreachable: %s", exc)
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/furniture")
    async def furniture(
        request: Request, category: str | None = None, style: str | None = None
    ) -> list[FurnitureItemRef]:
        """Catalog items for the furniture browser."""
        state_container: AppContainer = request.app.state.container
        return await state_container.furniture_service.list_items(
            category=category, style=style
        )

    return app
