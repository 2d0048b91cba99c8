"""
Response envelopes shared by all routers.
"""
from typing import Any, Dict, Generic, List, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class StatusResponse(BaseModel):
    """Bare success acknowledgement."""
    status: str = "success"


class DataResponse(BaseModel, Generic[T]):
    """Single resource wrapped in the success envelope."""
    status: str = "success"
    data: T


class ListResponse(BaseModel):
    """Query results; documents may be partial when `fields` was given."""
    status: str = "success"
    results: int
    data: List[Dict[str, Any]]


class MessageResponse(BaseModel):
    status: str = "success"
    message: str
