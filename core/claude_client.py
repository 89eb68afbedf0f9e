"""
Claude Client Wrapper - Clean abstraction over the Anthropic SDK
Handles message parsing, provider errors and JSON extraction
"""

import logging
from typing import Any, Dict, Optional

import anthropic

from core.config import get_settings
from core.errors import ProviderError
from core.tolerant_json import parse_json_object

logger = logging.getLogger(__name__)


class ClaudeClient:
    """
    Text-generation client used by the planner and the screenwriter.

    Request: {system_prompt, user_prompt, max_tokens, temperature}
    Response: the concatenated text content (expected, not guaranteed, JSON)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        debug: bool = False
    ):
        settings = get_settings()
        self.debug = debug
        self.model = model or settings.text_model
        self.default_max_tokens = settings.text_max_tokens
        self.default_temperature = settings.text_temperature
        self._api_key = api_key or settings.resolve_key("anthropic_api_key")
        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise ValueError(
                    "ANTHROPIC_API_KEY not set. "
                    "For testing without API keys, use MockClaudeClient from tests.mocks"
                )
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def query(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Send a query to Claude and get back clean text response

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            max_tokens: Response token limit (defaults to settings)
            temperature: Sampling temperature (defaults to settings)

        Returns:
            Clean text response from Claude

        Raises:
            ProviderError: If the API call fails
        """
        client = self._get_client()

        logger.debug(f"Sending prompt ({len(prompt)} chars) to {self.model}")

        request: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": self.default_temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            response = await client.messages.create(**request)
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"Anthropic API error ({e.status_code}): {e.message}",
                provider="anthropic",
                status=e.status_code
            ) from e
        except anthropic.APIConnectionError as e:
            raise ProviderError(f"Anthropic connection failed: {e}", provider="anthropic") from e

        text = "\n".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        if response.stop_reason == "max_tokens":
            logger.warning("Response hit the token limit; JSON may be truncated")

        if self.debug:
            logger.debug(f"Received response ({len(text)} chars): {text[:500]}")

        return text.strip()

    async def query_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Query and parse the response with the tolerant JSON parser.

        Raises:
            ParseError: If no JSON object can be recovered from the response
        """
        response = await self.query(prompt, system_prompt=system_prompt, **kwargs)
        return parse_json_object(response)
