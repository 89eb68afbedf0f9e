"""Runway ML image-to-video provider"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import aiohttp

from core.errors import ProviderError
from ..base import JobState, JobStatus, VideoProvider, VideoProviderConfig, read_json_object

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.dev.runwayml.com/v1"


def canonicalize_base_url(base_url: Optional[str]) -> str:
    """
    Return a usable Runway API base URL.

    The legacy host api.runwayml.com is rewritten to api.dev.runwayml.com;
    an empty URL or any other host falls back to the public API base.
    """
    if not base_url or not base_url.strip():
        return DEFAULT_API_BASE

    url = base_url.strip().rstrip("/")
    url = url.replace("://api.runwayml.com", "://api.dev.runwayml.com")

    parsed = urlparse(url)
    if parsed.scheme != "https" or parsed.hostname != "api.dev.runwayml.com":
        logger.warning(f"Ignoring unexpected Runway base URL {base_url!r}")
        return DEFAULT_API_BASE

    if not parsed.path.startswith("/v1"):
        return DEFAULT_API_BASE
    return url


class RunwayProvider(VideoProvider):
    """
    Runway Gen-3 Alpha Turbo image-to-video provider.

    API Documentation: https://docs.dev.runwayml.com/
    Pricing: ~$0.05/second for Gen-3 Alpha Turbo
    """

    _is_stub = False

    API_VERSION = "2024-11-06"
    DEFAULT_MODEL = "gen3a_turbo"
    MAX_PROMPT_CHARS = 1000

    # Runway only accepts these output ratios for gen3a_turbo
    RATIO_MAP = {
        "16:9": "1280:768",
        "9:16": "768:1280",
        "1280:768": "1280:768",
        "768:1280": "768:1280",
    }

    STATUS_MAP = {
        "SUCCEEDED": JobStatus.SUCCEEDED,
        "COMPLETED": JobStatus.SUCCEEDED,
        "FAILED": JobStatus.FAILED,
        "CANCELLED": JobStatus.FAILED,
    }

    def __init__(self, config: VideoProviderConfig):
        super().__init__(config)

        if not self.config.api_key:
            raise ValueError("Runway API key required")

        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return "runway"

    @property
    def api_base(self) -> str:
        """Base URL, re-validated on every access"""
        return canonicalize_base_url(self.config.base_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                    "X-Runway-Version": self.API_VERSION
                }
            )
        return self.session

    async def submit(
        self,
        prompt: str,
        reference_image: Optional[str],
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> str:
        """
        Submit an image_to_video task.

        Args:
            prompt: Visual prompt (truncated to 1000 chars)
            reference_image: HTTPS URL or data URI of the first frame
            duration: Seconds; Runway accepts 5 or 10
            aspect_ratio: "16:9" or "9:16"
            **kwargs: seed, model

        Returns:
            Runway task id
        """
        if not reference_image:
            raise ProviderError("Runway image_to_video requires a reference image", provider=self.name)

        payload: Dict[str, Any] = {
            "model": kwargs.get("model", self.DEFAULT_MODEL),
            "promptImage": reference_image,
            "promptText": prompt[:self.MAX_PROMPT_CHARS],
            "ratio": self.RATIO_MAP.get(aspect_ratio, "1280:768"),
            "duration": 10 if duration > 7 else 5,
        }
        if "seed" in kwargs:
            payload["seed"] = kwargs["seed"]

        session = await self._get_session()
        endpoint = f"{self.api_base}/image_to_video"

        try:
            async with session.post(
                endpoint,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            ) as response:
                if response.status not in (200, 201):
                    error_text = await response.text()
                    raise ProviderError(
                        f"Runway API error ({response.status}): {error_text}",
                        provider=self.name,
                        status=response.status
                    )
                data = await read_json_object(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"Runway request failed: {e}", provider=self.name) from e
        except ValueError as e:
            raise ProviderError(f"Runway sent an unusable response: {e}", provider=self.name) from e

        task_id = data.get("id")
        if not task_id:
            raise ProviderError(f"No task ID in Runway response: {data}", provider=self.name)
        return task_id

    async def check_status(self, task_id: str) -> JobState:
        """
        Check one Runway task.

        Transient failures (network errors, 429, 5xx) count as "still
        pending"; any other error status fails the task.
        """
        session = await self._get_session()

        try:
            async with session.get(
                f"{self.api_base}/tasks/{task_id}",
                timeout=aiohttp.ClientTimeout(total=30)
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.warning(f"Runway status check failed ({response.status}): {error_text[:200]}")
                    transient = response.status == 429 or response.status >= 500
                    return JobState(
                        status=JobStatus.PENDING if transient else JobStatus.FAILED,
                        error=f"status check returned {response.status}: {error_text[:200]}"
                    )
                data = await read_json_object(response)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Runway status check error for {task_id}: {e}")
            return JobState(status=JobStatus.PENDING, error=str(e))

        return self.parse_status(data)

    def parse_status(self, data: Dict[str, Any]) -> JobState:
        """Map a Runway task payload to a JobState"""
        raw_status = str(data.get("status", "")).upper()
        status = self.STATUS_MAP.get(raw_status, JobStatus.PENDING)

        output_url = None
        output = data.get("output")
        if isinstance(output, list) and output:
            output_url = output[0]
        elif isinstance(output, dict):
            output_url = output.get("url")
        elif isinstance(output, str):
            output_url = output
        output_url = output_url or data.get("output_url")

        error = None
        if status == JobStatus.FAILED:
            error = data.get("failure") or data.get("error") or "Unknown error"

        return JobState(status=status, output_url=output_url, error=error, raw={"runway_status": raw_status})

    def estimate_cost(self, duration: float, **kwargs) -> float:
        """Gen-3 Alpha Turbo: $0.05 per second"""
        return duration * 0.05

    async def close(self):
        """Close aiohttp session"""
        if self.session and not self.session.closed:
            await self.session.close()
