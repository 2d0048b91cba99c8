"""
Review data models.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ReviewBase(BaseModel):
    """Base review model."""
    title: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=10)


class ReviewCreate(ReviewBase):
    """Model for creating a new review."""
    pass


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    text: Optional[str] = Field(None, min_length=1)
    rating: Optional[int] = Field(None, ge=1, le=10)


class ReviewInDB(ReviewBase):
    """Review model as stored in database."""
    id: str
    bootcamp_id: str
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReviewResponse(ReviewInDB):
    """Review model for API responses."""
    pass
