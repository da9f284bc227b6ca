"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union

QueryValue = Union[str, int, float, bool, None]


# ===== PROXY SCHEMAS =====

class ProxyRequest(BaseModel):
    """Single-resource proxy request"""
    path: Optional[str] = None
    query: Optional[Dict[str, QueryValue]] = None
    language: Optional[str] = Field(None, description="IETF BCP 47 tag, e.g. es-MX, en-US")
    region: Optional[str] = Field(None, description="ISO 3166-1 alpha-2, e.g. MX, US")


# ===== BULK SCHEMAS =====

class BulkRequest(BaseModel):
    """Batch of ids to resolve; lives only for one call"""
    ids: List[Any] = Field(default_factory=list)
    content_type: Optional[str] = "movie"
    language: Optional[str] = None
    region: Optional[str] = None


class Genre(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None


class BulkItem(BaseModel):
    """Summary of one movie or TV show"""
    id: Optional[int] = None
    title: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: float = 0
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    genres: List[Genre] = Field(default_factory=list)
    overview: Optional[str] = None


class BulkResponse(BaseModel):
    items: List[BulkItem]


# ===== ERROR SCHEMAS =====

class ErrorResponse(BaseModel):
    error: str
    code: str


class RateLimitErrorResponse(ErrorResponse):
    reason: str
    waitSeconds: int
    message: Dict[str, str]
