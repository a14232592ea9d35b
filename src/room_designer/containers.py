"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from room_designer.adapters.backend_client import BackendClient, HttpxBackendClient
from room_designer.config import Settings
from room_designer.services.cache import InMemoryCache
from room_designer.services.controller import SessionController
from room_designer.services.furniture import FurnitureCatalogService
from room_designer.services.handoff import HandoffPublisher
from room_designer.services.polling import PollingConfig
from room_designer.services.remote_submitter import SubmitterRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    backend_client: BackendClient
    handoff_publisher: HandoffPublisher
    session_controller: SessionController
    submitters: SubmitterRegistry
    furniture_service: FurnitureCatalogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend_client = HttpxBackendClient.create(
        resolved_settings.backend_url, timeout=resolved_settings.http_timeout
    )
    handoff_publisher = HandoffPublisher(
        scheme=resolved_settings.handoff_scheme,
        port=resolved_settings.handoff_port,
        host=resolved_settings.handoff_host,
    )
    session_controller = SessionController(
        client=backend_client,
        publisher=handoff_publisher,
        polling=PollingConfig.from_settings(resolved_settings),
        static_base_url=resolved_settings.static_base_url,
    )
    furniture_service = FurnitureCatalogService(
        client=backend_client,
        cache=InMemoryCache(),
        ttl_seconds=resolved_settings.furniture_cache_ttl_seconds,
    )

    async def close_resources() -> None:
        await session_controller.close()
        await backend_client.close()

    return AppContainer(
        settings=resolved_settings,
        backend_client=backend_client,
        handoff_publisher=handoff_publisher,
        session_controller=session_controller,
        submitters=SubmitterRegistry(backend_client),
        furniture_service=furniture_service,
        close_resources=close_resources,
    )
