"""Schemas for account-owned content: child profiles, stories, achievements."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.pet_stats_service import DEFAULT_STAT, STAT_MAX, STAT_MIN


class PetStats(BaseModel):
    """Virtual pet stats for a child profile."""

    happiness: int = Field(DEFAULT_STAT, ge=STAT_MIN, le=STAT_MAX)
    energy: int = Field(DEFAULT_STAT, ge=STAT_MIN, le=STAT_MAX)
    knowledge: int = Field(DEFAULT_STAT, ge=STAT_MIN, le=STAT_MAX)


class ChildCreate(BaseModel):
    """Schema for creating a child profile."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    pet_stats: PetStats = Field(default_factory=PetStats, alias="petStats")


class ChildResponse(ChildCreate):
    """Schema for child profile response."""

    id: str


class StoryCreate(BaseModel):
    """Schema for creating a story."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1, max_length=20_000)
    child_id: Optional[str] = Field(None, alias="childId", max_length=255)


class StoryResponse(StoryCreate):
    """Schema for story response."""

    id: str
    created_at: Optional[str] = Field(None, alias="createdAt")


class AchievementCreate(BaseModel):
    """Schema for creating an achievement."""

    title: str = Field(..., min_length=1, max_length=200)
    unlocked: bool = False


class AchievementResponse(AchievementCreate):
    """Schema for achievement response."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: Optional[str] = Field(None, alias="createdAt")


def from_snapshot(model: type[BaseModel], snapshot: Any) -> BaseModel:
    """Build a response model from a stored document snapshot."""
    return model.model_validate({**snapshot.data, "id": snapshot.id})
