"""
Local Filesystem Storage Provider

Stores artifacts under a base directory. URLs are served from
public_base_url when configured (e.g. a static file server in front of the
artifact directory), otherwise file:// URLs are returned.

Use case: Development and testing
"""

import asyncio
import logging
from pathlib import Path

from ..base import StorageProvider, StorageProviderConfig, StorageResult

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider"""

    _is_stub = False

    def __init__(self, config: StorageProviderConfig):
        """
        Args:
            config: Storage configuration with base_path
        """
        super().__init__(config)
        self.base_path = Path(config.base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    def _resolve(self, remote_path: str) -> Path:
        path = (self.base_path / remote_path.lstrip("/")).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Path escapes storage root: {remote_path}")
        return path

    async def put(self, data: bytes, remote_path: str, content_type: str) -> StorageResult:
        """Write bytes under base_path and return their URL"""
        path = self._resolve(remote_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)

        url = await self.get_url(remote_path)
        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {path}")
        return StorageResult(
            success=True,
            file_url=url,
            file_path=str(path),
            size_bytes=len(data),
            content_type=content_type,
        )

    async def get_url(self, remote_path: str, **kwargs) -> str:
        """
        Public URL of a stored path.

        Returns:
            public_base_url/remote_path, or a file:// URL without a public base
        """
        remote_path = remote_path.lstrip("/")
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{remote_path}"
        return self._resolve(remote_path).as_uri()
