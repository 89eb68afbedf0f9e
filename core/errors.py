"""
Error taxonomy for the production pipeline.

Each stage catches only the errors its degradation policy names:

- ParseError: malformed creative JSON (repaired or replaced, never fatal)
- ResolutionError: no usable reference frame (fatal for one scene)
- ProviderError: non-2xx from a generation service
- GenerationTimeoutError: poll ceiling exceeded (fatal for the stage)
- QuotaError: voice/lip-sync quota exhausted (the line is skipped)
- AssemblyError: render failure (degrades to the first scene)
"""

from typing import Optional


class StudioError(Exception):
    """Base class for all pipeline errors"""
    pass


class ParseError(StudioError):
    """Raised when a creative response cannot be turned into a JSON object."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class ResolutionError(StudioError):
    """Raised when no reference frame can be produced for a scene."""

    def __init__(self, message: str, scene_number: Optional[int] = None):
        super().__init__(message)
        self.scene_number = scene_number


class ProviderError(StudioError):
    """Raised when an external generation service returns an error."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status: Optional[int] = None
    ):
        super().__init__(message)
        self.provider = provider
        self.status = status


class GenerationTimeoutError(ProviderError, TimeoutError):
    """Raised when a provider job does not reach a terminal state in time."""

    def __init__(self, message: str, provider: Optional[str] = None, attempts: int = 0):
        super().__init__(message, provider=provider)
        self.attempts = attempts


class QuotaError(ProviderError):
    """Raised when a provider reports that the account quota is exhausted."""
    pass


class AssemblyError(StudioError):
    """Raised when the render service fails to produce the final movie."""
    pass
