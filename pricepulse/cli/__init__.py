"""Command line interface entry points for pricepulse."""

from .main import app, create_app

__all__ = ["app", "create_app"]
