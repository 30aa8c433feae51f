# src/app/services/generation_pipeline.py
"""
Recipe generation orchestrator.

One call walks a single request through the stages

    GATED -> PROMPTED -> TEXT_RECEIVED -> PARSED
          -> IMAGE_REQUESTED -> NORMALIZED (both optional)
          -> PERSISTED -> RETURNED

and ends in ABORTED on quota denial or any text-side failure. Image failures
never abort: the recipe is stored without media. Exactly one recipe row is
written per successful run, and exactly one terminal audit event is emitted
per run (denied, failure or success).

The orchestrator is synchronous and keeps no per-request state on itself; the
HTTP layer runs it in a worker thread.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.app.domain.errors import (
    EmptyReplyError,
    ImageError,
    InvalidPayloadError,
    MalformedPayloadError,
    ProviderConfigError,
    ProviderConnectionError,
    QuotaExceededError,
    RateLimitError,
    RecipeGenerationError,
    RecipeRepositoryError,
)
from src.app.domain.models import (
    GenerationRequest,
    GenerationStage,
    MediaPair,
    Recipe,
    RecipeDraft,
)
from src.app.infra.db.base import RecipeRepository
from src.app.services import audit as events
from src.app.services.audit import AuditLogger
from src.app.services.image_normalizer import ImageNormalizer
from src.app.services.image_requester import ImageRequester
from src.app.services.media_cleanup import MediaCleanupService
from src.app.services.prompt_compiler import compile_prompt
from src.app.services.quota_service import QuotaService
from src.app.services.reply_parser import parse_reply
from src.app.services.text_generator import TextGenerator

logger = logging.getLogger(__name__)

ERROR_KINDS = (
    (RateLimitError, "rate_limit"),
    (ProviderConfigError, "provider_config"),
    (ProviderConnectionError, "provider_connection"),
    (EmptyReplyError, "empty_reply"),
    (InvalidPayloadError, "invalid_payload"),
    (MalformedPayloadError, "malformed_payload"),
    (RecipeRepositoryError, "persistence"),
)


def error_kind(error: BaseException) -> str:
    for error_type, kind in ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    return "internal"


@dataclass(frozen=True)
class StagePolicy:
    """Timeout and retry settings for one external stage."""
    timeout_seconds: Optional[float] = None
    retries: int = 0


@dataclass(frozen=True)
class PipelineConfig:
    text: StagePolicy = StagePolicy(timeout_seconds=90)
    image: StagePolicy = StagePolicy(timeout_seconds=90)
    image_download_timeout_seconds: float = 30
    request_timeout_seconds: float = 120


@dataclass
class GenerationRun:
    """Trace of one traversal: the stages reached, in order."""
    request_id: str
    user_id: str
    stages: list[GenerationStage] = field(default_factory=list)
    text_attempts: int = 0
    media_error: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def stage(self) -> Optional[GenerationStage]:
        return self.stages[-1] if self.stages else None

    def advance(self, stage: GenerationStage) -> None:
        self.stages.append(stage)
        logger.debug("Generation %s -> %s", self.request_id, stage.value)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


class GenerationOrchestrator:
    def __init__(
        self,
        quota_service: QuotaService,
        text_generator: TextGenerator,
        image_requester: ImageRequester,
        image_normalizer: ImageNormalizer,
        recipe_repository: RecipeRepository,
        media_cleanup: MediaCleanupService,
        audit: AuditLogger,
        config: Optional[PipelineConfig] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.quota_service = quota_service
        self.text_generator = text_generator
        self.image_requester = image_requester
        self.image_normalizer = image_normalizer
        self.recipe_repository = recipe_repository
        self.media_cleanup = media_cleanup
        self.audit = audit
        self.config = config or PipelineConfig()
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def generate(
        self,
        user_id: str,
        request: GenerationRequest,
        request_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        run: Optional[GenerationRun] = None,
    ) -> Recipe:
        """
        Generate, illustrate and persist one recipe.

        Args:
            user_id: Owner of the new recipe
            request: Structured constraints
            request_id: Correlation id for logs and audit events
            run: Optional trace object, filled in as stages are reached

        Returns:
            The persisted recipe; media fields are None when the image step failed

        Raises:
            QuotaExceededError: Before any provider call
            ProviderError: Text provider failure (rate limit, config, connection, empty reply)
            ReplyParseError: No usable recipe in the reply
            RecipeRepositoryError: The recipe could not be stored
        """
        run = run or GenerationRun(request_id=request_id or str(uuid.uuid4()), user_id=user_id)
        context = {"request_id": run.request_id, "user_id": user_id, "ip_address": ip_address}
        constraints = request.constraint_fields()

        run.advance(GenerationStage.GATED)
        try:
            self.quota_service.ensure_can_generate(user_id)
        except QuotaExceededError as error:
            run.advance(GenerationStage.ABORTED)
            self.audit.warn(
                events.GENERATE_DENIED,
                "Recipe generation denied by quota",
                metadata={**constraints, "effective_limit": error.effective_limit},
                **context,
            )
            raise

        self.audit.info(
            events.GENERATE_START,
            "Recipe generation started",
            metadata=constraints,
            **context,
        )

        try:
            draft = self._produce_draft(request, run)
        except Exception as error:
            run.advance(GenerationStage.ABORTED)
            self._audit_failure(error, run, constraints, context)
            raise

        media = self._produce_media(draft, run, context)
        recipe = self._build_recipe(user_id, request, draft, media)

        try:
            stored = self.recipe_repository.insert_recipe(recipe)
        except Exception as error:
            run.advance(GenerationStage.ABORTED)
            if media is not None:
                self.media_cleanup.delete_variants(
                    media.storage_keys,
                    recipe_id=recipe.id,
                    user_id=user_id,
                    request_id=run.request_id,
                )
            if isinstance(error, RecipeGenerationError):
                self._audit_failure(error, run, constraints, context)
                raise
            failure = RecipeRepositoryError("insert", str(error))
            self._audit_failure(failure, run, constraints, context)
            raise failure from error
        run.advance(GenerationStage.PERSISTED)

        self.audit.info(
            events.GENERATE_SUCCESS,
            "Recipe generated successfully",
            metadata={
                **constraints,
                "recipe_id": stored.id,
                "recipe_title": stored.title,
                "has_image": stored.has_media,
                "duration_ms": run.elapsed_ms,
            },
            **context,
        )
        run.advance(GenerationStage.RETURNED)
        logger.info(
            "Recipe generated: id=%s, user=%s, image=%s, elapsed=%dms",
            stored.id,
            user_id,
            stored.has_media,
            run.elapsed_ms,
        )
        return stored

    def _produce_draft(self, request: GenerationRequest, run: GenerationRun) -> RecipeDraft:
        prompt = compile_prompt(request)
        run.advance(GenerationStage.PROMPTED)

        reply = self._call_text_provider(prompt, run)
        run.advance(GenerationStage.TEXT_RECEIVED)

        draft = parse_reply(reply, request)
        run.advance(GenerationStage.PARSED)
        return draft

    def _call_text_provider(self, prompt: str, run: GenerationRun) -> str:
        attempts = 1 + max(0, self.config.text.retries)
        while True:
            run.text_attempts += 1
            try:
                return self.text_generator.generate(prompt)
            except ProviderConnectionError as error:
                if run.text_attempts >= attempts:
                    raise
                logger.warning(
                    "Text provider connection failed, retrying (%d/%d): %s",
                    run.text_attempts,
                    attempts,
                    error,
                )

    def _produce_media(self, draft: RecipeDraft, run: GenerationRun, context: dict) -> Optional[MediaPair]:
        run.advance(GenerationStage.IMAGE_REQUESTED)
        try:
            raw = self.image_requester.request_image(draft.title, draft.cuisine_type, draft.description)
            media = self.image_normalizer.normalize(raw)
        except ImageError as error:
            run.media_error = str(error)
            logger.warning("Image step failed, storing recipe without media: %s", error)
            self.audit.warn(
                events.IMAGE_SKIPPED,
                "Recipe image could not be produced",
                metadata={"recipe_title": draft.title, "error_type": error.__class__.__name__},
                **context,
            )
            return None

        run.advance(GenerationStage.NORMALIZED)
        return media

    def _build_recipe(
        self,
        user_id: str,
        request: GenerationRequest,
        draft: RecipeDraft,
        media: Optional[MediaPair],
    ) -> Recipe:
        return Recipe(
            id=self._id_factory(),
            user_id=user_id,
            title=draft.title,
            description=draft.description,
            ingredients=draft.ingredients,
            steps=draft.steps,
            tips=draft.tips,
            serving_size=draft.serving_size,
            cooking_time=draft.total_time_minutes,
            difficulty=draft.difficulty or (request.difficulty.value if request.difficulty else ""),
            cuisine_type=draft.cuisine_type or request.cuisine_type,
            meat_type=draft.meat_type or request.meat_type,
            dietary_tags=list(draft.dietary_tags),
            side_ingredients=list(request.side_ingredients),
            cooking_time_band=request.cooking_time_band.value if request.cooking_time_band else None,
            language=request.locale,
            image_path=media.full.storage_key if media else None,
            thumbnail_path=media.thumbnail.storage_key if media else None,
        )

    def _audit_failure(self, error: BaseException, run: GenerationRun, constraints: dict, context: dict) -> None:
        kind = error_kind(error)
        logger.error("Recipe generation failed: request=%s, kind=%s, error=%s", run.request_id, kind, error)
        self.audit.error(
            events.GENERATE_FAILURE,
            "Recipe generation failed",
            error=error,
            metadata={
                **constraints,
                "error_kind": kind,
                "text_attempts": run.text_attempts,
                "duration_ms": run.elapsed_ms,
            },
            **context,
        )
