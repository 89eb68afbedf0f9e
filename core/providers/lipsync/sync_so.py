"""
sync.so lip-sync provider

Composites a speech track onto an existing video so mouth movement matches.
Asynchronous: POST /v2/generate returns a job id, GET /v2/generate/{id}
reports status and, once COMPLETED, the output URL.
"""

import asyncio
import logging
from typing import Any, Dict

import aiohttp

from core.errors import ProviderError, QuotaError
from ..base import JobState, JobStatus, LipSyncProvider, ProviderConfig, read_json_object

logger = logging.getLogger(__name__)


class SyncLabsProvider(LipSyncProvider):
    """sync.so (formerly Sync Labs) lip-sync provider"""

    _is_stub = False

    DEFAULT_BASE_URL = "https://api.sync.so"
    MODEL = "sync-1.6.0"

    STATUS_MAP = {
        "COMPLETED": JobStatus.SUCCEEDED,
        "FAILED": JobStatus.FAILED,
        "REJECTED": JobStatus.FAILED,
        "CANCELED": JobStatus.FAILED,
        "CANCELLED": JobStatus.FAILED,
    }

    def __init__(self, config: ProviderConfig):
        if not config.api_key:
            raise ValueError("sync.so API key required. Set SYNC_API_KEY environment variable.")
        super().__init__(config)
        self.base_url = (config.base_url or self.DEFAULT_BASE_URL).rstrip("/")

    @property
    def name(self) -> str:
        return "sync"

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.config.api_key, "Content-Type": "application/json"}

    async def submit(self, video_url: str, audio_url: str, **kwargs) -> str:
        payload: Dict[str, Any] = {
            "model": kwargs.get("model", self.MODEL),
            "input": [
                {"type": "video", "url": video_url},
                {"type": "audio", "url": audio_url},
            ],
            "options": {"output_format": "mp4", "active_speaker": True},
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.base_url}/v2/generate",
                    json=payload,
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout)
                ) as response:
                    if response.status not in (200, 201):
                        error_text = await response.text()
                        error_cls = QuotaError if response.status in (402, 429) else ProviderError
                        raise error_cls(
                            f"sync.so error ({response.status}): {error_text}",
                            provider=self.name,
                            status=response.status
                        )
                    data = await read_json_object(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"sync.so request failed: {e}", provider=self.name) from e
        except ValueError as e:
            raise ProviderError(f"sync.so sent an unusable response: {e}", provider=self.name) from e

        job_id = data.get("id")
        if not job_id:
            raise ProviderError(f"No job id in sync.so response: {data}", provider=self.name)
        return job_id

    async def check_status(self, task_id: str) -> JobState:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.base_url}/v2/generate/{task_id}",
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=30)
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        transient = response.status == 429 or response.status >= 500
                        return JobState(
                            status=JobStatus.PENDING if transient else JobStatus.FAILED,
                            error=f"status check returned {response.status}: {error_text[:200]}"
                        )
                    data = await read_json_object(response)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"sync.so status check error for {task_id}: {e}")
            return JobState(status=JobStatus.PENDING, error=str(e))

        raw_status = str(data.get("status", "")).upper()
        return JobState(
            status=self.STATUS_MAP.get(raw_status, JobStatus.PENDING),
            output_url=data.get("outputUrl") or data.get("output_url"),
            error=data.get("error"),
            raw={"sync_status": raw_status},
        )
