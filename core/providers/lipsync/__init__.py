"""Lip-sync providers"""

from .sync_so import SyncLabsProvider

__all__ = ["SyncLabsProvider"]
