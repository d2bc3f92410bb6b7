"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from potluck.models.event import EventStatus, FoodMode


class EventCreate(BaseModel):
    creator_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=500)
    event_date: Optional[datetime] = None
    max_attendees: Optional[int] = Field(default=None, ge=1)
    allow_guests: bool = True
    food_mode: FoodMode = FoodMode.categories


class EventUpdate(BaseModel):
    """Partial update. The fields here are the complete allow-list.

    Anything else a caller passes (share_token, creator_id, created_at, ...)
    is dropped during validation and can never reach the row.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=500)
    event_date: Optional[datetime] = None
    max_attendees: Optional[int] = Field(default=None, ge=1)
    allow_guests: Optional[bool] = None
    food_mode: Optional[FoodMode] = None
    status: Optional[EventStatus] = None
