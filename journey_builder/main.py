"""
Journey Builder Core entry point.

``python -m journey_builder.main`` starts the HTTP service.
"""
from .api.main import app, run_server

__all__ = ["app", "run_server"]


if __name__ == "__main__":
    run_server()
