"""Provider interfaces for external services (text, image, video, voice, lip-sync, render)"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base import (
    ProviderType,
    JobStatus,
    JobState,
    ProviderConfig,
    VideoProviderConfig,
    poll_until_complete,
    GenerationResult,
    VideoProvider,
    AudioGenerationResult,
    AudioProvider,
    ImageGenerationResult,
    ImageProvider,
    LipSyncProvider,
    RenderResult,
    RenderProvider,
    StorageProviderConfig,
    StorageResult,
    StorageProvider,
)
from .mock import (
    MockVideoProvider,
    MockImageProvider,
    MockAudioProvider,
    MockLipSyncProvider,
    MockRenderProvider,
    MockTextClient,
)
from .video import RunwayProvider
from .audio import ElevenLabsProvider
from .image import FalImageProvider
from .lipsync import SyncLabsProvider
from .render import AssemblyServerProvider
from .storage import LocalStorageProvider
from core.claude_client import ClaudeClient

__all__ = [
    # Base interfaces
    "ProviderType",
    "JobStatus",
    "JobState",
    "ProviderConfig",
    "VideoProviderConfig",
    "poll_until_complete",
    "GenerationResult",
    "VideoProvider",
    "AudioGenerationResult",
    "AudioProvider",
    "ImageGenerationResult",
    "ImageProvider",
    "LipSyncProvider",
    "RenderResult",
    "RenderProvider",
    "StorageProviderConfig",
    "StorageResult",
    "StorageProvider",
    # Mock providers
    "MockVideoProvider",
    "MockImageProvider",
    "MockAudioProvider",
    "MockLipSyncProvider",
    "MockRenderProvider",
    "MockTextClient",
    # Live providers
    "RunwayProvider",
    "ElevenLabsProvider",
    "FalImageProvider",
    "SyncLabsProvider",
    "AssemblyServerProvider",
    "LocalStorageProvider",
    # Registry
    "PROVIDER_REGISTRY",
    "get_all_providers",
    "ProviderSet",
    "create_providers",
]


# Provider Registry for CLI introspection
PROVIDER_REGISTRY = {
    "runway": {
        "name": "runway",
        "category": "video",
        "class": RunwayProvider,
        "api_key_env": "RUNWAY_API_KEY",
        "features": ["image-to-video", "Gen-3 Alpha Turbo", "10s clips", "1280:768"],
    },
    "fal": {
        "name": "fal",
        "category": "image",
        "class": FalImageProvider,
        "api_key_env": "FAL_API_KEY",
        "features": ["FLUX Pro 1.1 Ultra", "reference frames", "1280x768"],
    },
    "elevenlabs": {
        "name": "elevenlabs",
        "category": "voice",
        "class": ElevenLabsProvider,
        "api_key_env": "ELEVENLABS_API_KEY",
        "features": ["multilingual v2", "per-line voice settings"],
    },
    "sync": {
        "name": "sync",
        "category": "lipsync",
        "class": SyncLabsProvider,
        "api_key_env": "SYNC_API_KEY",
        "features": ["sync-1.6.0", "active speaker detection"],
    },
    "assembly_server": {
        "name": "assembly_server",
        "category": "render",
        "class": AssemblyServerProvider,
        "api_key_env": "RENDER_API_KEY",
        "features": ["concatenation", "cross-fades", "audio mix"],
    },
    "local": {
        "name": "local",
        "category": "storage",
        "class": LocalStorageProvider,
        "api_key_env": None,
        "features": ["local filesystem", "file:// or static URLs"],
    },
}


def get_all_providers() -> List[Dict[str, Any]]:
    """
    Registry entries with implementation status and key availability.

    Status is read from the provider class's _is_stub attribute.
    """
    providers = []
    for info in PROVIDER_REGISTRY.values():
        entry = {k: v for k, v in info.items() if k != "class"}
        entry["status"] = "stub" if getattr(info["class"], "_is_stub", True) else "implemented"
        entry["api_key_set"] = bool(os.getenv(info["api_key_env"])) if info["api_key_env"] else True
        providers.append(entry)
    return providers


@dataclass
class ProviderSet:
    """Every external collaborator one pipeline run needs"""
    image: ImageProvider
    video: VideoProvider
    audio: AudioProvider
    render: RenderProvider
    storage: StorageProvider
    lipsync: Optional[LipSyncProvider] = None
    text: Any = None  # ClaudeClient or MockTextClient

    async def close(self):
        await self.video.close()


def create_providers(settings, mock: Optional[bool] = None) -> ProviderSet:
    """
    Build the provider set from settings.

    Args:
        settings: core.config.Settings
        mock: Force mock (True) or live (False); defaults to settings.provider_mode
    """
    use_mock = settings.provider_mode == "mock" if mock is None else mock
    storage = LocalStorageProvider(StorageProviderConfig(
        base_path=os.path.join(settings.artifact_dir, "store"),
        public_base_url=settings.public_base_url,
    ))

    if use_mock:
        return ProviderSet(
            image=MockImageProvider(),
            video=MockVideoProvider(),
            audio=MockAudioProvider(),
            render=MockRenderProvider(),
            storage=storage,
            lipsync=MockLipSyncProvider() if settings.enable_lipsync else None,
            text=MockTextClient(),
        )

    video = RunwayProvider(VideoProviderConfig(
        provider_type=ProviderType.RUNWAY,
        api_key=settings.resolve_key("runway_api_key"),
        base_url=settings.runway_base_url,
        timeout=30,
        poll_interval=settings.video_poll_interval,
        max_attempts=settings.video_max_attempts,
    ))
    image = FalImageProvider(ProviderConfig(
        api_key=settings.resolve_key("fal_api_key"),
        base_url=settings.fal_model_url,
        timeout=120,
    ))
    audio = ElevenLabsProvider(ProviderConfig(
        api_key=settings.resolve_key("elevenlabs_api_key"),
        timeout=60,
    ))
    render = AssemblyServerProvider(ProviderConfig(
        api_key=settings.resolve_key("render_api_key"),
        base_url=settings.render_server_url,
        timeout=settings.render_timeout_seconds,
    ))

    lipsync = None
    if settings.enable_lipsync:
        lipsync = SyncLabsProvider(ProviderConfig(
            api_key=settings.resolve_key("sync_api_key"),
            base_url=settings.sync_base_url,
            timeout=60,
            poll_interval=settings.lipsync_poll_interval,
            max_attempts=settings.lipsync_max_attempts,
        ))

    return ProviderSet(
        image=image,
        video=video,
        audio=audio,
        render=render,
        storage=storage,
        lipsync=lipsync,
        text=ClaudeClient(),
    )
