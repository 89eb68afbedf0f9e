"""Voice synthesis providers"""

from .elevenlabs import ElevenLabsProvider, is_quota_error

__all__ = ["ElevenLabsProvider", "is_quota_error"]
