# src/app/services/image_requester.py
"""
Requests one illustrative photo for a recipe from the image-synthesis provider
and returns the raw image bytes, whether the provider answered with a URL or
with inline base64 data.

Every failure surfaces as an ImageError subclass so the caller has a single
fallback path (persist the recipe without media).
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from openai import OpenAI, OpenAIError

from src.app.domain.errors import ImageDownloadError, ImageError, ImageGenerationError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
IMAGE_SIZE = "1024x1024"
IMAGE_STYLE = "natural"
IMAGE_QUALITY = "standard"
DATA_URL_PREFIX = "data:image/"


@dataclass
class ProviderImage:
    """What the provider handed back: a fetchable URL or inline base64 data."""
    url: Optional[str] = None
    b64_data: Optional[str] = None


class ImageProvider(ABC):
    @abstractmethod
    def create_image(self, prompt: str) -> ProviderImage:
        pass


class OpenAIImageProvider(ImageProvider):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_IMAGE_MODEL,
        timeout_seconds: float = 90,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY", "")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ImageGenerationError("Missing OpenAI API key")
        self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_seconds, max_retries=0)
        return self._client

    def create_image(self, prompt: str) -> ProviderImage:
        client = self._get_client()
        try:
            response = client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=IMAGE_SIZE,
                quality=IMAGE_QUALITY,
                style=IMAGE_STYLE,
                response_format="url",
            )
        except OpenAIError as err:
            raise ImageGenerationError(f"Image provider request failed: {err}") from err

        if not response.data:
            raise ImageGenerationError("No image generated")

        item = response.data[0]
        return ProviderImage(url=item.url, b64_data=item.b64_json)


def build_image_prompt(title: str, cuisine_type: str, description: str) -> str:
    return (
        f"Professional food photography of {title}.\n"
        f"{cuisine_type} cuisine style dish.\n"
        "High-quality, realistic, appetizing presentation on a clean white plate.\n"
        "Natural lighting, restaurant quality, top-down view.\n"
        "Sharp focus on the food with shallow depth of field.\n"
        "Garnished beautifully with fresh ingredients.\n"
        "Professional chef presentation, magazine quality photo.\n"
        f"{description}\n"
        "No text, no watermarks, no people, just the delicious food."
    )


def decode_inline_image(data: str) -> bytes:
    """Decode base64 image data, with or without a data: URL header."""
    payload = data
    if data.startswith(DATA_URL_PREFIX):
        header, sep, payload = data.partition(",")
        if not sep or ";base64" not in header:
            raise ImageGenerationError("Invalid data URL format")

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ImageGenerationError(f"Failed to decode base64 image: {err}") from err

    if not raw:
        raise ImageGenerationError("Inline image data is empty")
    return raw


class ImageRequester:
    def __init__(
        self,
        provider: ImageProvider,
        download_timeout_seconds: float = 30,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.provider = provider
        self.download_timeout_seconds = download_timeout_seconds
        self._http_client = http_client

    def request_image(self, title: str, cuisine_type: str, description: str) -> bytes:
        """
        Returns:
            Raw encoded image bytes

        Raises:
            ImageError: On any provider, transport or decoding failure
        """
        prompt = build_image_prompt(title, cuisine_type, description)

        try:
            result = self.provider.create_image(prompt)
        except ImageError:
            raise
        except Exception as err:
            raise ImageGenerationError(f"Image provider failed: {err}") from err

        if result.b64_data:
            return decode_inline_image(result.b64_data)

        if result.url:
            if result.url.startswith(DATA_URL_PREFIX):
                return decode_inline_image(result.url)
            return self._download(result.url)

        raise ImageGenerationError("Image provider returned neither URL nor data")

    def _download(self, url: str) -> bytes:
        logger.info("Downloading generated image")
        try:
            if self._http_client is not None:
                response = self._http_client.get(url)
                response.raise_for_status()
                content = response.content
            else:
                with httpx.Client(timeout=self.download_timeout_seconds, follow_redirects=True) as client:
                    response = client.get(url)
                    response.raise_for_status()
                    content = response.content
        except httpx.TimeoutException as error:
            raise ImageDownloadError(url, f"timeout after {self.download_timeout_seconds}s") from error
        except httpx.HTTPStatusError as error:
            raise ImageDownloadError(url, f"status {error.response.status_code}") from error
        except httpx.HTTPError as error:
            raise ImageDownloadError(url, str(error)) from error

        if not content:
            raise ImageDownloadError(url, "empty body")

        logger.info("Downloaded generated image: size=%d bytes", len(content))
        return content
