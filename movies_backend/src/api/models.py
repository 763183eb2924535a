from __future__ import annotations

from datetime import datetime
from typing import List, TypedDict


# PUBLIC_INTERFACE
class MovieEntity(TypedDict):
    """
    Storage record for a movie, shared by every repository backend.

    Fields:
    - id: Unique positive integer identifier, never changes
    - created_at: Creation timestamp (never exposed over the API)
    - title: Movie title
    - year: Release year, 0 when unknown
    - runtime: Running time in minutes, 0 when unknown
    - genres: Ordered list of genre names
    - version: Starts at 1 and is bumped on every update
    """

    id: int
    created_at: datetime
    title: str
    year: int
    runtime: int
    genres: List[str]
    version: int
