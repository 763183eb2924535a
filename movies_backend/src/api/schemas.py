from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, field_validator, model_serializer

from .models import MovieEntity
from .runtime import Runtime

MIN_YEAR = 1888
MAX_TITLE_BYTES = 500
MAX_GENRES = 5


def _validate_title(v: str) -> str:
    s = v.strip()
    if not s:
        raise ValueError("must be provided")
    if len(s.encode("utf-8")) > MAX_TITLE_BYTES:
        raise ValueError(f"must not be more than {MAX_TITLE_BYTES} bytes long")
    return s


def _validate_year(v: int) -> int:
    if v < MIN_YEAR:
        raise ValueError(f"must be greater than {MIN_YEAR - 1}")
    if v > datetime.now().year:
        raise ValueError("must not be in the future")
    return v


def _validate_runtime(v: Runtime) -> Runtime:
    if v.minutes <= 0:
        raise ValueError("must be a positive integer")
    return v


def _validate_genres(v: List[str]) -> List[str]:
    if len(v) < 1:
        raise ValueError("must contain at least 1 genre")
    if len(v) > MAX_GENRES:
        raise ValueError(f"must not contain more than {MAX_GENRES} genres")
    if len(set(v)) != len(v):
        raise ValueError("must not contain duplicate values")
    return v


# PUBLIC_INTERFACE
class MovieCreate(BaseModel):
    """
    Schema for creating a movie. Every field is required.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Moana",
                "year": 2016,
                "runtime": "107 mins",
                "genres": ["animation", "adventure"],
            }
        }
    )

    title: str = Field(..., description="Movie title")
    year: int = Field(..., description="Release year")
    runtime: Runtime = Field(..., description="Running time, as '<N> mins'")
    genres: List[str] = Field(..., description="Between 1 and 5 unique genres")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _validate_title(v)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        return _validate_year(v)

    @field_validator("runtime")
    @classmethod
    def validate_runtime(cls, v: Runtime) -> Runtime:
        return _validate_runtime(v)

    @field_validator("genres")
    @classmethod
    def validate_genres(cls, v: List[str]) -> List[str]:
        return _validate_genres(v)


# PUBLIC_INTERFACE
class MovieUpdate(BaseModel):
    """
    Schema for partially updating a movie.
    Only the fields present in the request body are changed.
    """

    title: Optional[str] = Field(default=None, description="Movie title")
    year: Optional[int] = Field(default=None, description="Release year")
    runtime: Optional[Runtime] = Field(default=None, description="Running time, as '<N> mins'")
    genres: Optional[List[str]] = Field(default=None, description="Between 1 and 5 unique genres")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _validate_title(v)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: Optional[int]) -> Optional[int]:
        return v if v is None else _validate_year(v)

    @field_validator("runtime")
    @classmethod
    def validate_runtime(cls, v: Optional[Runtime]) -> Optional[Runtime]:
        return v if v is None else _validate_runtime(v)

    @field_validator("genres")
    @classmethod
    def validate_genres(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return v if v is None else _validate_genres(v)


# PUBLIC_INTERFACE
class MovieOut(BaseModel):
    """
    A movie as returned by the API.

    created_at is never serialized. year, runtime and genres are left out of
    the output when they hold their zero value; id and version are always
    present.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Casablanca",
                "year": 1942,
                "runtime": "102 mins",
                "genres": ["drama", "romance", "war"],
                "version": 1,
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the movie")
    created_at: Optional[datetime] = Field(default=None, exclude=True)
    title: str = Field(..., description="Movie title")
    year: int = Field(default=0, description="Release year")
    runtime: Runtime = Field(default_factory=Runtime, description="Running time, as '<N> mins'")
    genres: List[str] = Field(default_factory=list, description="Genres")
    version: int = Field(..., description="Incremented on every update")

    @model_serializer(mode="wrap")
    def omit_empty_fields(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        for name in ("year", "runtime", "genres"):
            if not getattr(self, name):
                data.pop(name, None)
        return data

    # PUBLIC_INTERFACE
    @classmethod
    def from_entity(cls, entity: MovieEntity) -> "MovieOut":
        """Build the API representation of a stored movie."""
        return cls(
            id=entity["id"],
            created_at=entity["created_at"],
            title=entity["title"],
            year=entity["year"],
            runtime=Runtime(entity["runtime"]),
            genres=list(entity["genres"]),
            version=entity["version"],
        )
