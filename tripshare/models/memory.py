"""
Memory Models

A memory is a personal note on one itinerary item: a few words, a mood
emoji and maybe a link. Memories are private to their author.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripshare.models.expense import utcnow


def _check_link(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    v = v.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError("External link must start with http:// or https://")
    return v


class TripMemory(BaseModel):
    """A stored memory."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    trip_item_id: UUID = Field(
        ...,
        description="Itinerary item this memory is attached to"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Author"
    )
    content: Optional[str] = Field(default=None, max_length=2000)
    mood_emoji: Optional[str] = Field(default=None, max_length=16)
    external_link: Optional[str] = None
    is_private: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator('external_link')
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_link(v)


class MemoryCreate(BaseModel):
    """Payload for a new memory."""
    model_config = ConfigDict(str_strip_whitespace=True)

    trip_item_id: UUID
    content: Optional[str] = Field(default=None, max_length=2000)
    mood_emoji: Optional[str] = Field(default=None, max_length=16)
    external_link: Optional[str] = None
    is_private: bool = True

    @field_validator('external_link')
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_link(v)


class MemoryUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    content: Optional[str] = Field(default=None, max_length=2000)
    mood_emoji: Optional[str] = Field(default=None, max_length=16)
    external_link: Optional[str] = None
    is_private: Optional[bool] = None

    @field_validator('external_link')
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_link(v)
