# src/app/domain/models.py
"""
Domain models for the recipe generation pipeline.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class CookingTimeBand(str, Enum):
    """Requested total time budget."""
    QUICK = "quick"
    MEDIUM = "medium"
    LONG = "long"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MediaKind(str, Enum):
    FULL = "full"
    THUMBNAIL = "thumbnail"


class GenerationStage(str, Enum):
    """States a single generation request moves through."""
    GATED = "GATED"
    PROMPTED = "PROMPTED"
    TEXT_RECEIVED = "TEXT_RECEIVED"
    PARSED = "PARSED"
    IMAGE_REQUESTED = "IMAGE_REQUESTED"
    NORMALIZED = "NORMALIZED"
    PERSISTED = "PERSISTED"
    RETURNED = "RETURNED"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class GenerationRequest:
    """
    Structured constraints for one generated recipe.
    Created per call and discarded after orchestration.
    """
    meat_type: str = ""
    cuisine_type: str = ""
    side_ingredients: tuple[str, ...] = ()
    dietary_preferences: tuple[str, ...] = ()
    cooking_time_band: Optional[CookingTimeBand] = None
    difficulty: Optional[Difficulty] = None
    locale: str = "en"

    def constraint_fields(self) -> dict[str, object]:
        """Constraint values carried into audit events."""
        return {
            "meat_type": self.meat_type,
            "cuisine_type": self.cuisine_type,
            "side_ingredients": list(self.side_ingredients),
            "dietary_preferences": list(self.dietary_preferences),
            "cooking_time": self.cooking_time_band.value if self.cooking_time_band else None,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "language": self.locale,
        }


@dataclass
class Ingredient:
    name: str
    quantity: str
    unit: str


@dataclass
class CookingStep:
    step_number: int
    instruction: str
    timing: Optional[str] = None
    temperature: Optional[str] = None


@dataclass
class RecipeDraft:
    """Typed recipe produced by the reply parser, not yet persisted."""
    title: str
    description: str
    serving_size: int
    prep_time_minutes: int
    cook_time_minutes: int
    difficulty: str
    ingredients: list[Ingredient]
    steps: list[CookingStep]
    tips: list[str] = field(default_factory=list)
    cuisine_type: str = ""
    meat_type: str = ""
    dietary_tags: list[str] = field(default_factory=list)

    @property
    def total_time_minutes(self) -> int:
        return self.prep_time_minutes + self.cook_time_minutes


@dataclass
class MediaVariant:
    """One stored, fixed-size raster derivative of a recipe image."""
    kind: MediaKind
    storage_key: str
    width: int
    height: int
    encoding_quality: int


@dataclass
class MediaPair:
    """Full image and thumbnail, always created and destroyed together."""
    full: MediaVariant
    thumbnail: MediaVariant

    @property
    def storage_keys(self) -> list[str]:
        return [self.full.storage_key, self.thumbnail.storage_key]


@dataclass
class Recipe:
    """A persisted recipe owned by exactly one user."""
    id: str
    user_id: str
    title: str
    description: str
    ingredients: list[Ingredient]
    steps: list[CookingStep]
    tips: list[str]
    serving_size: int
    cooking_time: int  # prep + cook, minutes
    difficulty: str
    cuisine_type: str
    meat_type: str
    dietary_tags: list[str]
    side_ingredients: list[str] = field(default_factory=list)
    cooking_time_band: Optional[str] = None
    language: str = "en"
    is_favorite: bool = False
    image_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def has_media(self) -> bool:
        return bool(self.image_path and self.thumbnail_path)


@dataclass
class RecipeMediaRecord:
    """Stored variant locations for one recipe, consumed by media cleanup."""
    recipe_id: str
    image_path: Optional[str] = None
    thumbnail_path: Optional[str] = None

    @property
    def paths(self) -> list[str]:
        return [p for p in (self.image_path, self.thumbnail_path) if p]


class QuotaLimitKind(str, Enum):
    USE_GLOBAL = "USE_GLOBAL"
    UNLIMITED = "UNLIMITED"
    BLOCKED = "BLOCKED"
    CAPPED = "CAPPED"


@dataclass(frozen=True)
class QuotaLimit:
    """
    Closed variant for a generation limit.

    The raw stored value is interpreted exactly once, here:
    None -> USE_GLOBAL, -1 -> UNLIMITED, 0 -> BLOCKED, n > 0 -> CAPPED(n).
    A stored value below -1 is a limit every count has already reached, so it
    blocks like 0.
    """
    kind: QuotaLimitKind
    value: Optional[int] = None

    @classmethod
    def use_global(cls) -> "QuotaLimit":
        return cls(QuotaLimitKind.USE_GLOBAL)

    @classmethod
    def unlimited(cls) -> "QuotaLimit":
        return cls(QuotaLimitKind.UNLIMITED)

    @classmethod
    def blocked(cls) -> "QuotaLimit":
        return cls(QuotaLimitKind.BLOCKED, 0)

    @classmethod
    def capped(cls, value: int) -> "QuotaLimit":
        if value <= 0:
            raise ValueError(f"Capped limit must be positive, got {value}")
        return cls(QuotaLimitKind.CAPPED, value)

    @classmethod
    def from_user_value(cls, raw: Optional[int]) -> "QuotaLimit":
        if raw is None:
            return cls.use_global()
        if raw == -1:
            return cls.unlimited()
        if raw > 0:
            return cls.capped(raw)
        return cls.blocked()


@dataclass
class QuotaCheck:
    """Result of a quota check operation."""
    allowed: bool
    limit: QuotaLimit
    has_personal_limit: bool = False
    current_count: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class CleanupReport:
    """Outcome of deleting stored media variants. Absent files count as benign."""
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    absent: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    def merge(self, other: "CleanupReport") -> None:
        self.deleted.extend(other.deleted)
        self.failed.extend(other.failed)
        self.absent.extend(other.absent)
