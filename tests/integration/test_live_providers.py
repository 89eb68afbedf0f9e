"""
Live provider smoke tests.

These call the real services and cost money; they only run when the
matching API key is set.
"""

import os

import pytest

from core.providers import ElevenLabsProvider, FalImageProvider, ProviderConfig


@pytest.mark.live_api
@pytest.mark.asyncio
@pytest.mark.skipif(not os.getenv("ELEVENLABS_API_KEY"), reason="ELEVENLABS_API_KEY not set")
async def test_elevenlabs_speech():
    provider = ElevenLabsProvider(ProviderConfig(api_key=os.environ["ELEVENLABS_API_KEY"], timeout=60))

    result = await provider.generate_speech("Nobody saw a thing.", "pNInz6obpgDQGcFmaJgB")

    assert result.success
    assert result.audio_data


@pytest.mark.live_api
@pytest.mark.asyncio
@pytest.mark.skipif(not os.getenv("FAL_API_KEY"), reason="FAL_API_KEY not set")
async def test_fal_location_image():
    provider = FalImageProvider(ProviderConfig(api_key=os.environ["FAL_API_KEY"], timeout=120))

    result = await provider.generate_image(
        "Cinematic establishing shot, rain-soaked downtown street at night, no people",
        width=1280,
        height=768,
    )

    assert result.image_url
