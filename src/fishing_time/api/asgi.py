"""ASGI entrypoint for the fishing time API."""

from fishing_time.api.app import create_app
from fishing_time.containers import build_container

app = create_app(build_container())
