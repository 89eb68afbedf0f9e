"""Artifact storage providers"""

from .local import LocalStorageProvider

__all__ = ["LocalStorageProvider"]
