"""Core components - configuration, records, stores and providers"""

from .claude_client import ClaudeClient
from .config import Settings, get_settings
from .errors import (
    StudioError,
    ParseError,
    ResolutionError,
    ProviderError,
    GenerationTimeoutError,
    QuotaError,
    AssemblyError,
)
from .tolerant_json import parse_json_object, repair_json

# Note: MovieOrchestrator is NOT imported here to avoid circular imports
# Import it directly: from workflows.orchestrator import MovieOrchestrator

__all__ = [
    # Claude client
    "ClaudeClient",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "StudioError",
    "ParseError",
    "ResolutionError",
    "ProviderError",
    "GenerationTimeoutError",
    "QuotaError",
    "AssemblyError",
    # Tolerant JSON
    "parse_json_object",
    "repair_json",
]
