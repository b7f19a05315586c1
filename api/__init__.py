"""HTTP surface of the credential core."""

from .app import create_app

__all__ = ["create_app"]
