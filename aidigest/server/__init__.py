"""HTTP trigger for the newsletter pipeline."""

from aidigest.server.app import create_app

__all__ = ["create_app"]
