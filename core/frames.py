"""
End-frame extraction - the still that links a scene to the next one.

The last frame of a finished clip is grabbed with FFmpeg and stored in the
artifact store. When FFmpeg is unavailable or the clip cannot be fetched, a
still of the scene's final beat is generated instead. When both fail the
scene has no end frame and the next scene falls back to the location cache.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import aiohttp

from core.errors import ProviderError
from core.models.screenplay import Scene
from core.providers.base import ImageProvider, StorageProvider

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "placeholder"


class FrameExtractionError(Exception):
    """Raised when FFmpeg cannot produce a still from a clip."""
    pass


def is_usable_frame(url: Optional[str]) -> bool:
    """A frame URL is usable when present and not a placeholder"""
    return bool(url and url.strip()) and PLACEHOLDER_MARKER not in url.lower()


class EndFrameExtractor:
    """Produces the continuity still for a finished scene"""

    def __init__(
        self,
        storage: StorageProvider,
        image_provider: Optional[ImageProvider] = None,
        use_ffmpeg: bool = True,
        download_timeout: int = 120
    ):
        self.storage = storage
        self.image_provider = image_provider
        self.download_timeout = download_timeout
        self._ffmpeg_path = shutil.which("ffmpeg") if use_ffmpeg else None

    async def extract(self, video_url: str, scene: Scene, movie_id: str) -> Optional[str]:
        """
        Return a URL for the last frame of the scene, or None.

        Never raises for extraction problems; a missing end frame only means
        the next scene cannot continue visually.
        """
        if self._ffmpeg_path:
            try:
                return await self._extract_with_ffmpeg(video_url, scene, movie_id)
            except (FrameExtractionError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                logger.warning(f"Scene {scene.scene_number}: FFmpeg frame grab failed ({e}), generating a still")

        if self.image_provider is None:
            return None

        try:
            return await self._generate_still(scene)
        except ProviderError as e:
            logger.warning(f"Scene {scene.scene_number}: no end frame available ({e})")
            return None

    async def _fetch_video(self, video_url: str, target: Path) -> None:
        parsed = urlparse(video_url)
        if parsed.scheme == "file":
            shutil.copyfile(url2pathname(parsed.path), target)
            return

        async with aiohttp.ClientSession() as session:
            async with session.get(
                video_url,
                timeout=aiohttp.ClientTimeout(total=self.download_timeout)
            ) as response:
                if response.status != 200:
                    raise FrameExtractionError(f"Video download failed ({response.status})")
                with open(target, "wb") as f:
                    async for chunk in response.content.iter_chunked(64 * 1024):
                        f.write(chunk)

    async def _extract_with_ffmpeg(self, video_url: str, scene: Scene, movie_id: str) -> str:
        with tempfile.TemporaryDirectory(prefix="endframe_") as tmp:
            clip = Path(tmp) / "clip.mp4"
            still = Path(tmp) / "end.jpg"

            await self._fetch_video(video_url, clip)

            cmd = [
                self._ffmpeg_path, "-y",
                "-sseof", "-0.1",
                "-i", str(clip),
                "-frames:v", "1",
                "-q:v", "2",
                str(still),
            ]
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            _, stderr = await process.communicate()

            if process.returncode != 0 or not still.exists():
                raise FrameExtractionError(stderr.decode(errors="replace")[-300:])

            result = await self.storage.put(
                still.read_bytes(),
                f"frames/{movie_id}/scene_{scene.scene_number:03d}_end.jpg",
                "image/jpeg"
            )
            return result.file_url

    async def _generate_still(self, scene: Scene) -> Optional[str]:
        beats = scene.action_description.beat_by_beat
        end_action = (
            (beats[-1].action if beats else "")
            or scene.action_description.summary[-100:]
            or "end of scene"
        )
        location = scene.header.location or "scene"
        prompt = (
            f"{location}, {end_action}, {scene.header.time.lower()}, "
            f"cinematic still, final moment of scene, 4K quality, wide shot"
        )
        result = await self.image_provider.generate_image(prompt, width=1280, height=768, count=1)
        return result.image_url
