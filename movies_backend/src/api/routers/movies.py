from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status

from ..errors import MovieNotFound
from ..helpers import Envelope, read_id_param, write_json
from ..repositories import Repository, get_repository
from ..schemas import MovieCreate, MovieOut, MovieUpdate

router = APIRouter(
    prefix="/v1/movies",
    tags=["movies"],
)


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Movie",
    description="Create a new movie and return it, with its URL in the Location header.",
    responses={
        201: {"description": "Movie created"},
        400: {"description": "Malformed request body"},
        422: {"description": "Validation error"},
    },
)
def create_movie(payload: MovieCreate, repo: Repository = Depends(get_repository)) -> Response:
    """
    Create a new movie.
    """
    created = repo.create(payload)
    return write_json(
        status.HTTP_201_CREATED,
        Envelope("movie", MovieOut.from_entity(created)),
        headers={"Location": f"/v1/movies/{created['id']}"},
    )


# PUBLIC_INTERFACE
@router.get(
    "/{id}",
    summary="Show Movie",
    description="Get a single movie by ID.",
    responses={
        200: {"description": "Movie found"},
        404: {"description": "Movie not found or invalid ID"},
    },
)
def show_movie(
    movie_id: int = Depends(read_id_param), repo: Repository = Depends(get_repository)
) -> Response:
    """
    Retrieve a single movie by its ID.
    """
    item = repo.get(movie_id)
    if item is None:
        raise MovieNotFound()
    return write_json(status.HTTP_200_OK, Envelope("movie", MovieOut.from_entity(item)))


# PUBLIC_INTERFACE
@router.patch(
    "/{id}",
    summary="Update Movie",
    description=(
        "Partially update a movie. Every update increments the movie version. "
        "Send X-Expected-Version to reject the update if the movie changed since it was read."
    ),
    responses={
        200: {"description": "Movie updated"},
        404: {"description": "Movie not found or invalid ID"},
        409: {"description": "Edit conflict"},
    },
)
def update_movie(
    payload: MovieUpdate,
    movie_id: int = Depends(read_id_param),
    expected_version: Optional[int] = Header(default=None, alias="X-Expected-Version"),
    repo: Repository = Depends(get_repository),
) -> Response:
    updated = repo.update(movie_id, payload, expected_version=expected_version)
    if updated is None:
        raise MovieNotFound()
    return write_json(status.HTTP_200_OK, Envelope("movie", MovieOut.from_entity(updated)))


# PUBLIC_INTERFACE
@router.delete(
    "/{id}",
    summary="Delete Movie",
    responses={
        200: {"description": "Movie deleted"},
        404: {"description": "Movie not found or invalid ID"},
    },
)
def delete_movie(
    movie_id: int = Depends(read_id_param), repo: Repository = Depends(get_repository)
) -> Response:
    if not repo.delete(movie_id):
        raise MovieNotFound()
    return write_json(status.HTTP_200_OK, Envelope("message", "movie successfully deleted"))
