"""
fal.ai FLUX image generation provider

Used for location reference frames and end-frame stills. Requests go to the
synchronous fal.run endpoint, which returns {"images": [{"url": ...}]}.

API Docs: https://fal.ai/models/fal-ai/flux-pro/v1.1-ultra/api
"""

import asyncio
import logging
from typing import Any, Dict

import aiohttp

from core.errors import ProviderError
from ..base import ImageProvider, ProviderConfig, ImageGenerationResult, read_json_object

logger = logging.getLogger(__name__)


class FalImageProvider(ImageProvider):
    """fal.ai FLUX Pro image provider"""

    _is_stub = False

    DEFAULT_MODEL_URL = "https://fal.run/fal-ai/flux-pro/v1.1-ultra"
    MAX_PROMPT_CHARS = 1000

    def __init__(self, config: ProviderConfig):
        if not config.api_key:
            raise ValueError("fal.ai API key required. Set FAL_API_KEY environment variable.")
        super().__init__(config)
        self.model_url = config.base_url or self.DEFAULT_MODEL_URL

    @property
    def name(self) -> str:
        return "fal"

    async def generate_image(
        self,
        prompt: str,
        width: int = 1280,
        height: int = 768,
        count: int = 1,
        **kwargs
    ) -> ImageGenerationResult:
        """
        Generate images with FLUX.

        Raises:
            ProviderError: On a non-2xx response or when no image URL comes back
        """
        body: Dict[str, Any] = {
            "prompt": prompt[:self.MAX_PROMPT_CHARS],
            "image_size": {"width": width, "height": height},
            "num_images": count,
            "enable_safety_checker": True,
            "output_format": kwargs.get("output_format", "jpeg"),
        }
        headers = {
            "Authorization": f"Key {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.model_url,
                    json=body,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout)
                ) as response:
                    if response.status not in (200, 201):
                        error_text = await response.text()
                        raise ProviderError(
                            f"fal.ai error ({response.status}): {error_text}",
                            provider=self.name,
                            status=response.status
                        )
                    data = await read_json_object(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"fal.ai request failed: {e}", provider=self.name) from e
        except ValueError as e:
            raise ProviderError(f"fal.ai sent an unusable response: {e}", provider=self.name) from e

        urls = [image["url"] for image in data.get("images") or [] if isinstance(image, dict) and image.get("url")]
        if not urls:
            raise ProviderError("fal.ai did not return an image URL", provider=self.name)

        return ImageGenerationResult(
            success=True,
            image_urls=urls,
            width=width,
            height=height,
            provider_metadata={"provider": self.name, "seed": data.get("seed")}
        )
