import pytest

from src.api.errors import EditConflict
from src.api.repositories import InMemoryRepository
from src.api.runtime import Runtime
from src.api.schemas import MovieCreate, MovieUpdate


def new_movie(repo, title="The Breakfast Club"):
    return repo.create(MovieCreate(title=title, year=1985, runtime=Runtime(96), genres=["drama"]))


class TestInMemoryRepository:
    def test_create_assigns_ids_and_version(self):
        repo = InMemoryRepository()
        first = new_movie(repo)
        second = new_movie(repo, title="Ferris Bueller's Day Off")
        assert (first["id"], second["id"]) == (1, 2)
        assert first["version"] == 1
        assert first["runtime"] == 96
        assert first["created_at"].tzinfo is not None

    def test_update_bumps_version(self):
        repo = InMemoryRepository()
        movie = new_movie(repo)
        updated = repo.update(movie["id"], MovieUpdate(genres=["comedy", "drama"]))
        assert updated is not None
        assert updated["version"] == 2
        assert updated["genres"] == ["comedy", "drama"]
        assert updated["title"] == movie["title"]
        assert updated["created_at"] == movie["created_at"]

    def test_update_with_expected_version(self):
        repo = InMemoryRepository()
        movie = new_movie(repo)
        assert repo.update(movie["id"], MovieUpdate(year=1986), expected_version=1)["version"] == 2
        with pytest.raises(EditConflict):
            repo.update(movie["id"], MovieUpdate(year=1987), expected_version=1)
        assert repo.get(movie["id"])["year"] == 1986

    def test_missing(self):
        repo = InMemoryRepository()
        assert repo.get(1) is None
        assert repo.update(1, MovieUpdate(title="x")) is None
        assert repo.delete(1) is False

    def test_returned_entities_are_copies(self):
        repo = InMemoryRepository()
        movie = new_movie(repo)
        movie["title"] = "changed"
        assert repo.get(movie["id"])["title"] == "The Breakfast Club"
