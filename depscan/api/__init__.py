"""Client for the dependency report service."""

from .client import APIClient, UploadOptions

__all__ = ["APIClient", "UploadOptions"]
