"""Test doubles and data factories"""

from .claude_client import MockClaudeClient

__all__ = ["MockClaudeClient"]
