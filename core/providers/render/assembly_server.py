"""
HTTP client for the external assembly server.

The server downloads the ordered scene clips, applies cross-fades, mixes
audio and uploads the final movie. One POST /assemble call does all of it,
bounded by a single wall-clock timeout.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from core.errors import AssemblyError
from ..base import ProviderConfig, RenderProvider, RenderResult, read_json_object

logger = logging.getLogger(__name__)


class AssemblyServerProvider(RenderProvider):
    """Client for the FFmpeg assembly server"""

    _is_stub = False

    def __init__(self, config: ProviderConfig):
        if not config.base_url:
            raise ValueError("Assembly server URL required. Set RENDER_SERVER_URL.")
        super().__init__(config)
        self.base_url = config.base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "assembly_server"

    async def health(self) -> bool:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.base_url}/health",
                    timeout=aiohttp.ClientTimeout(total=10)
                ) as response:
                    return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Assembly server health check failed: {e}")
            return False

    async def assemble(
        self,
        movie_id: str,
        scenes: List[Dict[str, Any]],
        transitions: Optional[List[Dict[str, Any]]] = None,
        audio: Optional[List[Dict[str, Any]]] = None,
        music_url: Optional[str] = None
    ) -> RenderResult:
        payload: Dict[str, Any] = {
            "movie_id": movie_id,
            "api_key": self.config.api_key,
            "videos": scenes,
            "transitions": transitions or [],
            "audio": audio or [],
        }
        if music_url:
            payload["music_url"] = music_url

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.base_url}/assemble",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout)
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise AssemblyError(f"Assembly server error ({response.status}): {error_text[:500]}")
                    data = await read_json_object(response)
        except asyncio.TimeoutError as e:
            raise AssemblyError(f"Assembly server timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise AssemblyError(f"Assembly server request failed: {e}") from e
        except ValueError as e:
            raise AssemblyError(f"Assembly server sent an unusable response: {e}") from e

        if not data.get("success") or not data.get("video_url"):
            raise AssemblyError(f"Assembly server returned no video: {data.get('error') or data}")

        return RenderResult(
            success=True,
            video_url=data["video_url"],
            duration_seconds=data.get("duration_seconds"),
            file_size_bytes=data.get("file_size_bytes"),
            elapsed_seconds=data.get("elapsed_seconds"),
        )
