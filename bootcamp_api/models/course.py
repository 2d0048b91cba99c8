"""
Course data models.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MinimumSkill(str, Enum):
    """Skill level a course expects."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CourseBase(BaseModel):
    """Base course model."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    weeks: int = Field(..., gt=0)
    tuition: float = Field(..., ge=0)
    minimum_skill: MinimumSkill
    scholarship_available: bool = False


class CourseCreate(CourseBase):
    """Model for creating a new course."""
    pass


class CourseUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    weeks: Optional[int] = Field(None, gt=0)
    tuition: Optional[float] = Field(None, ge=0)
    minimum_skill: Optional[MinimumSkill] = None
    scholarship_available: Optional[bool] = None


class CourseInDB(CourseBase):
    """Course model as stored in database."""
    id: str
    bootcamp_id: str
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class CourseResponse(CourseInDB):
    """Course model for API responses."""
    pass
