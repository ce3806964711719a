"""ASGI entrypoint for the unit tracker API."""

from unit_tracker.api.app import create_app
from unit_tracker.containers import build_container

app = create_app(build_container())
