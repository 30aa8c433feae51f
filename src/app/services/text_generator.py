from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from google import genai
from google.genai import types
from google.genai.errors import APIError

from src.app.domain.errors import (
    EmptyReplyError,
    ProviderConfigError,
    ProviderConnectionError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
DEFAULT_MAX_OUTPUT_TOKENS = 4096


class TextGenerator(ABC):
    """A text-generation provider: prompt in, free-text reply out."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """
        Raises:
            RateLimitError, ProviderConfigError, ProviderConnectionError, EmptyReplyError
        """
        pass


def classify_provider_error(error: Exception, model: str) -> Exception:
    """
    Map a transport error to the pipeline taxonomy.

    Checked in order: rate limit, then model / not-found, then anything else.
    """
    code = getattr(error, "code", None) or getattr(error, "status_code", None)
    status = str(getattr(error, "status", "") or "")
    message = str(error)
    lowered = message.lower()

    if code == 429 or "RESOURCE_EXHAUSTED" in status or "RESOURCE_EXHAUSTED" in message or "rate limit" in lowered:
        return RateLimitError("Text provider rate limit reached")

    model_signal = "model" in lowered and any(
        phrase in lowered for phrase in ("not found", "not supported", "does not exist", "invalid")
    )
    if code == 404 or status == "NOT_FOUND" or model_signal:
        return ProviderConfigError(f"Model '{model}' not found or not accessible", model=model)

    return ProviderConnectionError(f"Text provider request failed: {error.__class__.__name__}")


class GeminiTextGenerator(TextGenerator):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout_seconds: float = 90,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.model_name = model_name
        self.max_output_tokens = max_output_tokens
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ProviderConfigError("Missing Gemini API key.", model=self.model_name)
        self._client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
        )
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        config = types.GenerateContentConfig(max_output_tokens=self.max_output_tokens)

        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except APIError as err:
            logger.error("Gemini API error: code=%s status=%s", getattr(err, "code", None), getattr(err, "status", None))
            raise classify_provider_error(err, self.model_name) from err
        except Exception as err:
            logger.error("Gemini request failed: %s", err)
            raise ProviderConnectionError(f"Text provider request failed: {err.__class__.__name__}") from err

        text = getattr(response, "text", None) or ""
        if not text.strip():
            raise EmptyReplyError()

        logger.info("Gemini reply received: model=%s, chars=%d", self.model_name, len(text))
        return text
