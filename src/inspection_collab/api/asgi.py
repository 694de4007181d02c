"""ASGI entrypoint for the inspection collaboration API."""

from inspection_collab.api.app import create_app
from inspection_collab.containers import build_container

app = create_app(build_container())
