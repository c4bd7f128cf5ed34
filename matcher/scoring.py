"""Match scorer: one chat completion per (résumé, job description) pair.

The scoring service is asked for "just a number"; the reply is reduced to
its digits and must land in [0, 100]. Anything else is an error, never a
clamped value.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

from matcher.prompts import build_messages

if TYPE_CHECKING:
    from jobboard.config import ScoringSettings

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


class ScoringError(Exception):
    """Base class for match scoring failures."""
    pass


class ConfigurationError(ScoringError):
    """Raised when the scoring service credential is missing."""
    pass


class InvalidResponseError(ScoringError):
    """Raised when the scoring service reply is not a usable percentage."""
    pass


def parse_percentage(content: str | None) -> int:
    """Turn a scoring reply into an integer percentage.

    Args:
        content: Raw message content returned by the model

    Returns:
        Integer in [0, 100]

    Raises:
        InvalidResponseError: If the reply is empty, has no digits, or is out of range
    """
    content = (content or "").strip()
    if not content:
        raise InvalidResponseError("No response from scoring service")

    digits = _NON_DIGITS.sub("", content)
    if not digits:
        raise InvalidResponseError(f"Invalid percentage from scoring service: {content!r}")

    percentage = int(digits)
    if percentage < 0 or percentage > 100:
        raise InvalidResponseError(f"Percentage out of range from scoring service: {content!r}")

    return percentage


class MatchScorer:
    """Scores how well a résumé fits a job description via OpenAI."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.3,
        max_tokens: int = 10,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client

    @classmethod
    def from_settings(cls, config: ScoringSettings) -> MatchScorer:
        return cls(
            config.api_key,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so a missing key surfaces as ConfigurationError
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def score(self, resume: str, job_description: str) -> int:
        """Return the match percentage of ``resume`` for ``job_description``.

        Raises:
            ConfigurationError: If no credential is configured (no request is made)
            InvalidResponseError: If the reply is missing or not a valid percentage
            openai.OpenAIError: Transport/API failures, propagated as-is
        """
        if not self.is_configured:
            raise ConfigurationError("Scoring service not configured - OPENAI_API_KEY is required")

        logger.debug(f"Requesting match score from {self.model}")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=build_messages(resume, job_description),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        if not response.choices:
            raise InvalidResponseError("No completion returned by scoring service")

        percentage = parse_percentage(response.choices[0].message.content)
        logger.debug(f"Match score: {percentage}%")
        return percentage

    async def aclose(self) -> None:
        """Close the HTTP client if one was built or injected; safe to call twice."""
        if self._client is not None:
            await self._client.close()
            self._client = None
