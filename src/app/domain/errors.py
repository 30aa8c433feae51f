from __future__ import annotations


class RecipeGenerationError(Exception):
    pass


class QuotaExceededError(RecipeGenerationError):
    def __init__(self, message: str = "Recipe generation limit reached", effective_limit: int | None = None):
        super().__init__(message)
        self.effective_limit = effective_limit


class ReplyParseError(RecipeGenerationError):
    pass


class InvalidPayloadError(ReplyParseError):
    def __init__(self, message: str = "Reply did not contain a JSON object"):
        super().__init__(message)


class MalformedPayloadError(ReplyParseError):
    def __init__(self, reason: str):
        super().__init__(f"Malformed recipe payload: {reason}")
        self.reason = reason


class ProviderError(RecipeGenerationError):
    pass


class RateLimitError(ProviderError):
    pass


class ProviderConfigError(ProviderError):
    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class ProviderConnectionError(ProviderError):
    pass


class EmptyReplyError(ProviderError):
    def __init__(self, message: str = "Text provider returned an empty reply"):
        super().__init__(message)


class ImageError(RecipeGenerationError):
    pass


class ImageGenerationError(ImageError):
    pass


class ImageDownloadError(ImageError):
    def __init__(self, url: str, reason: str = "Download failed"):
        super().__init__(f"Failed to download image {url}: {reason}")
        self.url = url
        self.reason = reason


class ImageDecodeError(ImageError):
    def __init__(self, message: str = "Unrecognized or corrupt image data"):
        super().__init__(message)


class ImageEncodeError(ImageError):
    def __init__(self, variant: str, reason: str):
        super().__init__(f"Failed to produce {variant} variant: {reason}")
        self.variant = variant
        self.reason = reason


class StorageError(RecipeGenerationError):
    pass


class RecipeRepositoryError(RecipeGenerationError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Recipe repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason
