"""HTTP interface."""

from featureforge.api.app import create_app

__all__ = ["create_app"]
