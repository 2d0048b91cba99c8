"""
Bootcamp data models.
"""
import re
import unicodedata
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from bootcamp_api.models.course import CourseResponse
from bootcamp_api.models.review import ReviewResponse


class Career(str, Enum):
    """Career tracks a bootcamp can offer."""
    WEB_DEVELOPMENT = "Web Development"
    MOBILE_DEVELOPMENT = "Mobile Development"
    UI_UX = "UI/UX"
    DATA_SCIENCE = "Data Science"
    BUSINESS = "Business"
    OTHER = "Other"


def slugify(value: str) -> str:
    """Lowercase, ascii-only, hyphen separated slug."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value).strip().lower()
    return re.sub(r"[-\s_]+", "-", value)


_url_adapter = TypeAdapter(HttpUrl)


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValueError("Please provide a valid URL")
    return value.lower()


class Location(BaseModel):
    """GeoJSON point plus the geocoder's normalized address."""
    type: str = "Point"
    coordinates: List[float] = []  # [longitude, latitude]
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None


class BootcampBase(BaseModel):
    """Base bootcamp model."""
    name: str = Field(..., min_length=10, max_length=40)
    description: str = Field(..., max_length=500)
    website: Optional[str] = None
    address: str = Field(..., min_length=1)
    careers: List[Career] = Field(..., min_length=1)
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class BootcampCreate(BootcampBase):
    """Model for creating a new bootcamp."""

    @field_validator("website")
    @classmethod
    def check_website(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


class BootcampUpdate(BaseModel):
    """Partial update; only the provided fields change."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=10, max_length=40)
    description: Optional[str] = Field(None, max_length=500)
    website: Optional[str] = None
    address: Optional[str] = None
    careers: Optional[List[Career]] = Field(None, min_length=1)
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None

    @field_validator("website")
    @classmethod
    def check_website(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


class BootcampInDB(BootcampBase):
    """Bootcamp model as stored in database."""
    id: str
    slug: str
    location: Optional[Location] = None
    average_rating: Optional[float] = None
    average_cost: Optional[float] = None
    cover_image_path: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class BootcampResponse(BootcampBase):
    """Bootcamp model for API responses."""
    id: str
    slug: str
    location: Optional[Location] = None
    average_rating: Optional[float] = None
    average_cost: Optional[float] = None
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class BootcampDetailResponse(BootcampResponse):
    """Single bootcamp with its courses and reviews."""
    courses: List[CourseResponse] = []
    reviews: List[ReviewResponse] = []
