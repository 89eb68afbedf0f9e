"""
Base Agent Classes for the movie pipeline

Provides base classes that extend Strands SDK for agent orchestration
while remaining directly callable from the pipeline orchestrator.
"""

from typing import Optional

from strands import Agent

from core.claude_client import ClaudeClient
from core.config import Settings, get_settings


class StudioAgent(Agent):
    """
    Base class for all pipeline agents.

    Extends strands.Agent to provide:
    - Common ClaudeClient initialization
    - Shared settings access
    - Prompt formatting helpers

    Pipeline stages expose their main operation with the @tool decorator so
    they can also be driven by a Strands agent.
    """

    def __init__(
        self,
        claude_client: Optional[ClaudeClient] = None,
        settings: Optional[Settings] = None,
        **kwargs
    ):
        """
        Args:
            claude_client: Optional ClaudeClient instance (creates one if not provided)
            settings: Pipeline settings (process-wide settings if not provided)
            **kwargs: Additional arguments passed to strands.Agent
        """
        super().__init__(**kwargs)
        self.settings = settings or get_settings()
        self.claude = claude_client or ClaudeClient()

    def _format_duration(self, seconds: float) -> str:
        """Format duration in seconds to readable string"""
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"

    def _truncate_text(self, text: str, max_length: int = 100) -> str:
        """Truncate text to max length with ellipsis"""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."
