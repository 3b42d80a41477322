"""ASGI entrypoint for the event registry API."""

from event_registry.api.app import create_app
from event_registry.containers import build_container

app = create_app(build_container())
