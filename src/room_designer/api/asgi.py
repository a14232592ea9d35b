"""ASGI entrypoint for the room designer desktop service."""

from room_designer.api.app import create_app
from room_designer.containers import build_container

app = create_app(build_container())
