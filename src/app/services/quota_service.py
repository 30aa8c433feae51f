# src/app/services/quota_service.py
"""
Quota management service.
Decides whether a user may generate another recipe.

Resolution order:
- per-user override (-1 unlimited, 0 blocked, n capped, None defers)
- global default from RECIPE_GENERATION_LIMIT ("unlimited", empty, or an integer)

Lookup failures and unparsable global values fail open: availability wins over
strict enforcement, and every such case is logged.

The check is count-then-insert without locking. Two simultaneous requests from
the same user can both pass and leave the user one over the limit.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from src.app.domain.errors import QuotaExceededError
from src.app.domain.models import QuotaCheck, QuotaLimit, QuotaLimitKind
from src.app.infra.db.base import QuotaRepository
from src.app.infra.db.supabase_recipes_repo import SupabaseQuotaRepository

logger = logging.getLogger(__name__)

UNLIMITED_LITERAL = "unlimited"
DEFAULT_GLOBAL_LIMIT = os.getenv("RECIPE_GENERATION_LIMIT", UNLIMITED_LITERAL)


def parse_global_limit(raw: Optional[str]) -> QuotaLimit:
    """
    Interpret the configured global limit.

    Args:
        raw: The configured value

    Returns:
        UNLIMITED for "unlimited", empty or invalid values; BLOCKED for 0;
        CAPPED(n) for a positive integer
    """
    value = (raw or "").strip()
    if not value or value.lower() == UNLIMITED_LITERAL:
        return QuotaLimit.unlimited()

    try:
        parsed = int(value)
    except ValueError:
        return _fail_open_on_config(raw)

    if parsed < 0:
        return _fail_open_on_config(raw)
    if parsed == 0:
        return QuotaLimit.blocked()
    return QuotaLimit.capped(parsed)


def _fail_open_on_config(raw: Optional[str]) -> QuotaLimit:
    logger.warning(
        "Invalid RECIPE_GENERATION_LIMIT=%r, treating global limit as unlimited",
        raw,
    )
    return QuotaLimit.unlimited()


class QuotaService:
    """
    Service for recipe generation quotas.

    Responsibilities:
    - Resolve the effective limit for a user
    - Count existing recipes only when a positive cap applies
    - Raise QuotaExceededError for the pipeline gate
    """

    def __init__(
        self,
        repository: Optional[QuotaRepository] = None,
        global_limit: Optional[str] = DEFAULT_GLOBAL_LIMIT,
    ):
        self._repo = repository or SupabaseQuotaRepository()
        self.global_limit = parse_global_limit(global_limit)

    def resolve_limit(self, user_id: str) -> tuple[QuotaLimit, bool]:
        """
        Resolve the effective limit for a user.

        Args:
            user_id: The user to check

        Returns:
            Tuple of (effective limit, whether it came from a personal override)
        """
        personal = QuotaLimit.from_user_value(self._repo.get_user_recipe_limit(user_id))
        if personal.kind is QuotaLimitKind.USE_GLOBAL:
            return self.global_limit, False
        return personal, True

    def check_quota(self, user_id: str) -> QuotaCheck:
        """
        Check whether a user may generate another recipe.

        Args:
            user_id: The user to check

        Returns:
            QuotaCheck with result
        """
        try:
            limit, personal = self.resolve_limit(user_id)
        except Exception as error:
            return self._fail_open_on_lookup(user_id, "limit lookup", error)

        if limit.kind is QuotaLimitKind.UNLIMITED:
            return QuotaCheck(allowed=True, limit=limit, has_personal_limit=personal)

        if limit.kind is QuotaLimitKind.BLOCKED:
            logger.warning(
                "Recipe generation blocked by limit: user=%s, personal=%s",
                user_id,
                personal,
            )
            return QuotaCheck(
                allowed=False,
                limit=limit,
                has_personal_limit=personal,
                reason="Recipe generation is disabled for this account",
            )

        try:
            count = self._repo.count_user_recipes(user_id)
        except Exception as error:
            return self._fail_open_on_lookup(user_id, "recipe count", error)

        if count >= limit.value:
            logger.warning(
                "Recipe generation limit reached: user=%s, count=%d, limit=%d, personal=%s",
                user_id,
                count,
                limit.value,
                personal,
            )
            return QuotaCheck(
                allowed=False,
                limit=limit,
                has_personal_limit=personal,
                current_count=count,
                reason="Recipe generation limit reached",
            )

        return QuotaCheck(
            allowed=True,
            limit=limit,
            has_personal_limit=personal,
            current_count=count,
        )

    def can_generate(self, user_id: str) -> bool:
        return self.check_quota(user_id).allowed

    def ensure_can_generate(self, user_id: str) -> QuotaCheck:
        """
        Gate used by the generation pipeline.

        Raises:
            QuotaExceededError: If the user may not generate
        """
        result = self.check_quota(user_id)
        if not result.allowed:
            raise QuotaExceededError(
                message=result.reason or "Recipe generation limit reached",
                effective_limit=result.limit.value,
            )
        return result

    def _fail_open_on_lookup(self, user_id: str, operation: str, error: Exception) -> QuotaCheck:
        logger.error(
            "Quota %s failed, allowing generation: user=%s, error=%s",
            operation,
            user_id,
            error,
        )
        return QuotaCheck(
            allowed=True,
            limit=QuotaLimit.unlimited(),
            reason=f"{operation} failed",
        )
