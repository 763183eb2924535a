from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import Optional

from fastapi import Request

from .errors import EditConflict
from .models import MovieEntity
from .schemas import MovieCreate, MovieUpdate


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for movie storage backends."""

    @abstractmethod
    def create(self, data: MovieCreate) -> MovieEntity:
        """Create and return a new MovieEntity with version 1."""

    @abstractmethod
    def get(self, movie_id: int) -> Optional[MovieEntity]:
        """Return a MovieEntity by id, or None if not found."""

    @abstractmethod
    def update(
        self, movie_id: int, data: MovieUpdate, expected_version: Optional[int] = None
    ) -> Optional[MovieEntity]:
        """
        Apply the fields set on data and bump the version by one.
        Return the updated entity, or None if not found.
        Raise EditConflict if expected_version is given and does not match,
        or if the record changed underneath the update.
        """

    @abstractmethod
    def delete(self, movie_id: int) -> bool:
        """Delete a MovieEntity by id. Return True if deleted, False if not found."""

    @staticmethod
    def _merge(current: MovieEntity, data: MovieUpdate) -> MovieEntity:
        merged = current.copy()
        if data.title is not None:
            merged["title"] = data.title
        if data.year is not None:
            merged["year"] = data.year
        if data.runtime is not None:
            merged["runtime"] = int(data.runtime)
        if data.genres is not None:
            merged["genres"] = list(data.genres)
        return merged


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository, used when no database is configured.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[int, MovieEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now(timezone.utc).replace(microsecond=0)

    def create(self, data: MovieCreate) -> MovieEntity:
        with self._lock:
            entity: MovieEntity = {
                "id": self._next_id,
                "created_at": self._now(),
                "title": data.title,
                "year": data.year,
                "runtime": int(data.runtime),
                "genres": list(data.genres),
                "version": 1,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def get(self, movie_id: int) -> Optional[MovieEntity]:
        with self._lock:
            item = self._items.get(movie_id)
            return None if item is None else item.copy()

    def update(
        self, movie_id: int, data: MovieUpdate, expected_version: Optional[int] = None
    ) -> Optional[MovieEntity]:
        with self._lock:
            existing = self._items.get(movie_id)
            if existing is None:
                return None
            if expected_version is not None and expected_version != existing["version"]:
                raise EditConflict()

            updated = self._merge(existing, data)
            updated["genres"] = list(updated["genres"])
            updated["version"] = existing["version"] + 1
            self._items[movie_id] = updated
            return updated.copy()

    def delete(self, movie_id: int) -> bool:
        with self._lock:
            return self._items.pop(movie_id, None) is not None


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """FastAPI dependency returning the repository the app was built with."""
    return request.app.state.repository
