"""HTTP surface: FastAPI app factory, routes, and response schemas."""

from ratebridge.api.app import create_app
from ratebridge.api.deps import AppState, build_app_state

__all__ = ["AppState", "build_app_state", "create_app"]
