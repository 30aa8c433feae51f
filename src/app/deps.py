# src/app/deps.py
"""
FastAPI dependencies: Supabase client, authenticated user and the services
behind the recipe routes. Long-lived clients are process singletons; the
orchestrator itself is cheap and assembled per request.
"""
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import settings
from src.app.infra.db.base import RecipeRepository
from src.app.infra.db.supabase_recipes_repo import SupabaseQuotaRepository, SupabaseRecipeRepository
from src.app.infra.storage.base import StorageProvider
from src.app.infra.storage.local_provider import LocalStorageProvider
from src.app.infra.storage.r2_provider import R2StorageProvider
from src.app.services.audit import AuditLogger
from src.app.services.generation_pipeline import GenerationOrchestrator, PipelineConfig, StagePolicy
from src.app.services.image_normalizer import ImageNormalizer
from src.app.services.image_requester import ImageRequester, OpenAIImageProvider
from src.app.services.media_cleanup import MediaCleanupService
from src.app.services.quota_service import QuotaService
from src.app.services.text_generator import GeminiTextGenerator, TextGenerator

_client: Client | None = None
_storage: StorageProvider | None = None
_audit: AuditLogger | None = None
_text_generator: TextGenerator | None = None
_image_requester: ImageRequester | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Validate a Supabase access token (Authorization: Bearer <token>)
    and return the minimal user profile.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    try:
        res = supa.auth.get_user(cred.credentials)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        meta = getattr(user, "user_metadata", None) or {}
        name = meta.get("name") if isinstance(meta, dict) else None

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")


def get_audit_logger() -> AuditLogger:
    global _audit
    if _audit is None:
        _audit = AuditLogger(
            enabled=settings.AUDIT_LOG_ENABLED,
            level=settings.AUDIT_LOG_LEVEL,
            log_format=settings.AUDIT_LOG_FORMAT,
        )
    return _audit


def get_storage() -> StorageProvider:
    global _storage
    if _storage is None:
        if settings.IMAGE_STORAGE_BACKEND == "r2":
            _storage = R2StorageProvider()
        else:
            _storage = LocalStorageProvider(
                root_dir=settings.IMAGE_STORAGE_PATH,
                url_prefix=settings.MEDIA_URL_PREFIX,
            )
    return _storage


def get_text_generator() -> TextGenerator:
    global _text_generator
    if _text_generator is None:
        _text_generator = GeminiTextGenerator(
            api_key=settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
            timeout_seconds=get_pipeline_config().text.timeout_seconds,
        )
    return _text_generator


def get_image_requester() -> ImageRequester:
    global _image_requester
    if _image_requester is None:
        provider = OpenAIImageProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_IMAGE_MODEL,
            timeout_seconds=get_pipeline_config().image.timeout_seconds,
        )
        _image_requester = ImageRequester(
            provider,
            download_timeout_seconds=get_pipeline_config().image_download_timeout_seconds,
        )
    return _image_requester


def get_recipe_repository(supa: Client = Depends(get_supabase)) -> RecipeRepository:
    return SupabaseRecipeRepository(client=supa)


def get_quota_service(supa: Client = Depends(get_supabase)) -> QuotaService:
    return QuotaService(
        repository=SupabaseQuotaRepository(client=supa),
        global_limit=settings.RECIPE_GENERATION_LIMIT,
    )


def get_media_cleanup(
    storage: StorageProvider = Depends(get_storage),
    audit: AuditLogger = Depends(get_audit_logger),
) -> MediaCleanupService:
    return MediaCleanupService(storage, audit)


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        text=StagePolicy(timeout_seconds=settings.TEXT_TIMEOUT_SECONDS, retries=settings.TEXT_RETRIES),
        image=StagePolicy(timeout_seconds=settings.IMAGE_TIMEOUT_SECONDS),
        image_download_timeout_seconds=settings.IMAGE_DOWNLOAD_TIMEOUT_SECONDS,
        request_timeout_seconds=settings.GENERATION_REQUEST_TIMEOUT_SECONDS,
    )


def get_orchestrator(
    quota_service: QuotaService = Depends(get_quota_service),
    text_generator: TextGenerator = Depends(get_text_generator),
    image_requester: ImageRequester = Depends(get_image_requester),
    storage: StorageProvider = Depends(get_storage),
    recipes: RecipeRepository = Depends(get_recipe_repository),
    cleanup: MediaCleanupService = Depends(get_media_cleanup),
    audit: AuditLogger = Depends(get_audit_logger),
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        quota_service=quota_service,
        text_generator=text_generator,
        image_requester=image_requester,
        image_normalizer=ImageNormalizer(storage),
        recipe_repository=recipes,
        media_cleanup=cleanup,
        audit=audit,
        config=get_pipeline_config(),
    )
