"""HTTP API for mealwise."""

from .main import create_app, status_for

__all__ = ["create_app", "status_for"]
