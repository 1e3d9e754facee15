"""
Client for the external text-completion service.

Speaks the OpenAI-compatible ``/chat/completions`` protocol (Perplexity by
default). The rest of the application only relies on ``complete`` returning
text or raising ``UpstreamFailure``.
"""

from typing import Optional

import httpx

from constants import COMPLETION_TIMEOUT, FEEDBACK_MAX_TOKENS, PERPLEXITY_API_KEY, PERPLEXITY_API_URL, PERPLEXITY_MODEL
from exceptions import UpstreamFailure
from logging_config import get_logger

logger = get_logger(__name__)

EMPTY_COMPLETION = "No response from AI"


class CompletionClient:
    def __init__(
        self,
        api_url: str = PERPLEXITY_API_URL,
        api_key: Optional[str] = PERPLEXITY_API_KEY,
        model: str = PERPLEXITY_MODEL,
        timeout: float = COMPLETION_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.model = model
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            logger.warning("No completion API key configured, upstream calls will likely be rejected")
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        logger.info(f"Completion client configured for {api_url} with model {model}")

    async def complete(self, prompt: str, max_tokens: int = FEEDBACK_MAX_TOKENS) -> str:
        """
        Send ``prompt`` as a single user message and return the generated text.

        Raises:
            UpstreamFailure: transport error, non-2xx status or an unreadable body.
        """
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        logger.debug(f"Requesting completion ({len(prompt)} chars, max_tokens={max_tokens})")
        try:
            response = await self._client.post(self.api_url, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Completion request failed: {e}")
            raise UpstreamFailure("Failed to get AI response", detail=str(e)) from e

        if response.is_error:
            detail = f"Completion API error: {response.status_code} - {response.text}"
            logger.error(detail)
            raise UpstreamFailure("Failed to get AI response", detail=detail)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Completion API returned invalid JSON: {e}")
            raise UpstreamFailure("Failed to get AI response", detail="Invalid JSON from completion API") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        return content or EMPTY_COMPLETION

    async def aclose(self) -> None:
        await self._client.aclose()
