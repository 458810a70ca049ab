"""Snapshot services package."""
from .storage import StorageService
from .http_client import AsyncHTTPClient

__all__ = ["StorageService", "AsyncHTTPClient"]
