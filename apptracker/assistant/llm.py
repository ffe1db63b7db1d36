"""Text generators used by the follow-up drafter."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx

from apptracker.core.errors import DraftError

logger = logging.getLogger(__name__)


class RateLimitedError(DraftError):
    """The generation service answered with HTTP 429."""


class TextGenerator(ABC):
    """Base class for anything that turns a prompt into text."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this generator (e.g. 'gemini')."""

    @abstractmethod
    async def generate(self, prompt: str, *, system: str) -> str | None:
        """Return generated text, or None when the response carries none.

        Raises:
            RateLimitedError: The service is throttling requests.
            DraftError: Any other generation failure.
        """


class GeminiGenerator(TextGenerator):
    """Text generator using the Google Gemini API (google-genai SDK).

    The client is created on first use so that constructing the generator
    never requires the API key.
    """

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key_env: str = "GOOGLE_API_KEY",
        client: Any = None,
    ) -> None:
        self._model = model
        self._api_key_env = api_key_env
        self._client = client

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, prompt: str, *, system: str) -> str | None:
        try:
            from google.genai import errors as genai_errors
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for follow-up drafts. "
                "Install with: pip install google-genai"
            )
            raise ImportError(msg) from None

        client = self._client or self._create_client()
        logger.info("Sending draft request to Gemini API (%s)...", self._model)
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system,
                ),
            )
        except genai_errors.APIError as e:
            if e.code == 429:
                msg = "Gemini API rate limit exceeded"
                raise RateLimitedError(msg) from e
            msg = f"Gemini API error {e.code}: {e.message}"
            raise DraftError(msg) from e
        except (httpx.HTTPError, OSError) as e:
            msg = "Could not reach the drafting service. Check your connection and try again."
            raise DraftError(msg) from e
        return response.text  # type: ignore[no-any-return]

    def _create_client(self) -> Any:
        api_key = os.environ.get(self._api_key_env)
        if not api_key:
            msg = f"{self._api_key_env} environment variable is required"
            raise ValueError(msg)

        from google import genai

        self._client = genai.Client(api_key=api_key)
        return self._client
