from __future__ import annotations

import base64
from unittest.mock import MagicMock

import httpx
import pytest
from openai import OpenAIError

from src.app.domain.errors import ImageDownloadError, ImageError, ImageGenerationError
from src.app.services.image_requester import (
    ImageProvider,
    ImageRequester,
    OpenAIImageProvider,
    ProviderImage,
    build_image_prompt,
    decode_inline_image,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


class ImageProviderStub(ImageProvider):
    def __init__(self, result: ProviderImage | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.prompts: list[str] = []

    def create_image(self, prompt: str) -> ProviderImage:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.result


def _http_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestBuildImagePrompt:
    def test_contains_recipe_details(self) -> None:
        prompt = build_image_prompt("Pad Thai", "Thai", "Stir-fried noodles.")
        assert prompt.startswith("Professional food photography of Pad Thai.")
        assert "Thai cuisine style dish." in prompt
        assert "Stir-fried noodles." in prompt
        assert prompt.endswith("No text, no watermarks, no people, just the delicious food.")


class TestDecodeInlineImage:
    def test_plain_base64(self) -> None:
        assert decode_inline_image(base64.b64encode(PNG_BYTES).decode()) == PNG_BYTES

    def test_data_url(self) -> None:
        data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
        assert decode_inline_image(data_url) == PNG_BYTES

    def test_data_url_without_base64_marker(self) -> None:
        with pytest.raises(ImageGenerationError):
            decode_inline_image("data:image/png,abc")

    def test_invalid_base64(self) -> None:
        with pytest.raises(ImageGenerationError):
            decode_inline_image("not base64 !!!")


class TestImageRequester:
    def test_downloads_url(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=PNG_BYTES)

        provider = ImageProviderStub(ProviderImage(url="https://images.example/x.png"))
        requester = ImageRequester(provider, http_client=_http_client(handler))

        assert requester.request_image("Pad Thai", "Thai", "Noodles") == PNG_BYTES
        assert seen == ["https://images.example/x.png"]
        assert "Pad Thai" in provider.prompts[0]

    def test_inline_data_skips_download(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no download expected")

        provider = ImageProviderStub(ProviderImage(b64_data=base64.b64encode(PNG_BYTES).decode()))
        requester = ImageRequester(provider, http_client=_http_client(handler))

        assert requester.request_image("t", "c", "d") == PNG_BYTES

    def test_data_url_in_url_field(self) -> None:
        data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
        requester = ImageRequester(ImageProviderStub(ProviderImage(url=data_url)))
        assert requester.request_image("t", "c", "d") == PNG_BYTES

    def test_download_error_status(self) -> None:
        provider = ImageProviderStub(ProviderImage(url="https://images.example/gone.png"))
        requester = ImageRequester(provider, http_client=_http_client(lambda r: httpx.Response(404)))

        with pytest.raises(ImageDownloadError) as exc_info:
            requester.request_image("t", "c", "d")
        assert "404" in exc_info.value.reason

    def test_download_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = ImageProviderStub(ProviderImage(url="https://images.example/x.png"))
        requester = ImageRequester(provider, http_client=_http_client(handler))

        with pytest.raises(ImageDownloadError):
            requester.request_image("t", "c", "d")

    def test_empty_body(self) -> None:
        provider = ImageProviderStub(ProviderImage(url="https://images.example/x.png"))
        requester = ImageRequester(provider, http_client=_http_client(lambda r: httpx.Response(200, content=b"")))

        with pytest.raises(ImageDownloadError):
            requester.request_image("t", "c", "d")

    def test_provider_returned_nothing(self) -> None:
        requester = ImageRequester(ImageProviderStub(ProviderImage()))
        with pytest.raises(ImageGenerationError):
            requester.request_image("t", "c", "d")

    def test_unexpected_provider_failure_is_image_error(self) -> None:
        requester = ImageRequester(ImageProviderStub(error=RuntimeError("boom")))
        with pytest.raises(ImageError):
            requester.request_image("t", "c", "d")


class TestOpenAIImageProvider:
    def test_requests_one_square_natural_image(self) -> None:
        client = MagicMock()
        client.images.generate.return_value = MagicMock(
            data=[MagicMock(url="https://images.example/x.png", b64_json=None)]
        )

        result = OpenAIImageProvider(api_key="k", model="dall-e-3", client=client).create_image("a dish")

        assert result.url == "https://images.example/x.png"
        kwargs = client.images.generate.call_args.kwargs
        assert kwargs["n"] == 1
        assert kwargs["size"] == "1024x1024"
        assert kwargs["style"] == "natural"
        assert kwargs["model"] == "dall-e-3"

    def test_sdk_error(self) -> None:
        client = MagicMock()
        client.images.generate.side_effect = OpenAIError("bad request")

        with pytest.raises(ImageGenerationError):
            OpenAIImageProvider(api_key="k", client=client).create_image("a dish")

    def test_empty_data(self) -> None:
        client = MagicMock()
        client.images.generate.return_value = MagicMock(data=[])

        with pytest.raises(ImageGenerationError):
            OpenAIImageProvider(api_key="k", client=client).create_image("a dish")

    def test_missing_api_key(self) -> None:
        with pytest.raises(ImageGenerationError):
            OpenAIImageProvider(api_key="").create_image("a dish")
