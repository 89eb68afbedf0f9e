"""
ElevenLabs Text-to-Speech Provider Implementation

Synthesizes dialogue lines with per-line voice settings (stability,
similarity boost, style). Quota exhaustion is reported as QuotaError so the
dialogue stage can skip the line and keep going.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from core.errors import ProviderError, QuotaError
from ..base import AudioProvider, ProviderConfig, AudioGenerationResult, read_json_object

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def is_quota_error(status: int, body: str) -> bool:
    """
    True if an error response means the account quota is exhausted.

    ElevenLabs reports it as {"detail": {"status": "quota_exceeded", ...}}.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return "quota_exceeded" in (body or "")

    detail = data.get("detail") if isinstance(data, dict) else None
    if isinstance(detail, dict):
        return detail.get("status") == "quota_exceeded"
    return False


class ElevenLabsProvider(AudioProvider):
    """
    ElevenLabs text-to-speech provider implementation.

    API Documentation: https://api.elevenlabs.io/docs
    """

    _is_stub = False

    DEFAULT_BASE_URL = "https://api.elevenlabs.io"
    DEFAULT_MODEL = "eleven_multilingual_v2"

    def __init__(self, config: ProviderConfig, model: str = DEFAULT_MODEL):
        """
        Args:
            config: Provider configuration (api_key required)
            model: Model ID used for every line
        """
        super().__init__(config)
        if not self.config.api_key:
            raise ValueError("ElevenLabs API key is required. Set ELEVENLABS_API_KEY environment variable.")
        self.config.base_url = self.config.base_url or self.DEFAULT_BASE_URL
        self.model = model

    @property
    def name(self) -> str:
        """Return provider name."""
        return "elevenlabs"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "xi-api-key": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

    async def generate_speech(
        self,
        text: str,
        voice_id: str,
        stability: float = 0.5,
        similarity_boost: float = 0.75,
        style: float = 0.5,
        use_speaker_boost: bool = True,
        output_format: str = "mp3_44100_128",
        **kwargs
    ) -> AudioGenerationResult:
        """
        Generate speech audio for one line.

        Args:
            text: Line to speak
            voice_id: ElevenLabs voice id
            stability: Voice stability (0-1). Higher = more consistent
            similarity_boost: Closeness to the original voice (0-1)
            style: Style exaggeration (0-1)
            use_speaker_boost: Enable speaker boost for clarity
            output_format: Audio output format

        Returns:
            AudioGenerationResult with the raw mp3 bytes

        Raises:
            ValueError: If the text is empty
            QuotaError: If the character quota is exhausted
            ProviderError: On any other API failure
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        request_body = {
            "text": text,
            "model_id": kwargs.get("model") or self.model,
            "voice_settings": {
                "stability": _clamp(stability),
                "similarity_boost": _clamp(similarity_boost),
                "style": _clamp(style),
                "use_speaker_boost": use_speaker_boost,
            },
        }

        url = f"{self.config.base_url}/v1/text-to-speech/{voice_id}?output_format={output_format}"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    json=request_body,
                    headers=self._get_headers(),
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout)
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        if is_quota_error(response.status, error_text):
                            raise QuotaError(
                                f"ElevenLabs quota exceeded: {error_text[:200]}",
                                provider=self.name,
                                status=response.status
                            )
                        raise ProviderError(
                            f"ElevenLabs API error (status {response.status}): {error_text}",
                            provider=self.name,
                            status=response.status
                        )

                    audio_data = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"ElevenLabs request failed: {e}", provider=self.name) from e

        return AudioGenerationResult(
            success=True,
            audio_data=audio_data,
            format="mp3",
            content_type="audio/mpeg",
            provider_metadata={
                "provider": self.name,
                "voice_id": voice_id,
                "model": request_body["model_id"],
                "character_count": len(text),
                "voice_settings": request_body["voice_settings"],
            }
        )

    async def list_voices(self) -> List[Dict[str, Any]]:
        """Available voices on the account"""
        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{self.config.base_url}/v1/voices",
                headers={"xi-api-key": self.config.api_key},
                timeout=aiohttp.ClientTimeout(total=30)
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ProviderError(
                        f"ElevenLabs API error (status {response.status}): {error_text}",
                        provider=self.name,
                        status=response.status
                    )
                try:
                    data = await read_json_object(response)
                except ValueError as e:
                    raise ProviderError(f"ElevenLabs voice list unusable: {e}", provider=self.name) from e
                return data.get("voices", [])
