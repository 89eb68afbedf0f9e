"""Pipeline configuration using pydantic-settings"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings

from core.secrets import get_api_key


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables and .env"""

    # Provider mode
    provider_mode: Literal["mock", "live"] = "mock"

    # Storage
    artifact_dir: str = "artifacts"
    public_base_url: Optional[str] = None

    # API keys (loaded from .env or environment; keychain wins, see resolve_key)
    anthropic_api_key: str = ""
    fal_api_key: str = ""
    runway_api_key: str = ""
    elevenlabs_api_key: str = ""
    sync_api_key: str = ""
    render_api_key: str = ""

    # Endpoints
    runway_base_url: str = "https://api.dev.runwayml.com/v1"
    fal_model_url: str = "https://fal.run/fal-ai/flux-pro/v1.1-ultra"
    sync_base_url: str = "https://api.sync.so"
    render_server_url: str = "http://localhost:3001"

    # Text generation
    text_model: str = "claude-sonnet-4-20250514"
    text_max_tokens: int = 8000
    text_temperature: float = 0.8

    # Screenplay shape
    scenes_per_minute: int = 6
    scene_duration_seconds: int = 10
    aspect_ratio: str = "16:9"

    # Polling (interval seconds x attempts = wall-clock ceiling)
    video_poll_interval: float = 5.0
    video_max_attempts: int = 120
    lipsync_poll_interval: float = 5.0
    lipsync_max_attempts: int = 60
    render_timeout_seconds: int = 600

    # Prompt hygiene
    visual_prompt_max_chars: int = 950

    # Pipeline policy
    enable_lipsync: bool = False
    min_success_ratio: float = 0.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def resolve_key(self, name: str) -> str:
        """
        Resolve an API key by settings field name.

        The OS keychain is consulted first, then the value loaded from the
        environment / .env file.
        """
        return get_api_key(name.upper(), fallback_to_env=False) or getattr(self, name, "")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings instance, creating it on first use"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
