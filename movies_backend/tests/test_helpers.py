import json

import pytest
from starlette.requests import Request

from src.api.errors import InvalidIdentifier, SerializationFailure
from src.api.helpers import Envelope, parse_id, read_id_param, write_json
from src.api.runtime import Runtime
from src.api.schemas import MovieOut


def make_request(path_params):
    return Request({"type": "http", "method": "GET", "path": "/", "headers": [], "path_params": path_params})


class TestParseID:
    @pytest.mark.parametrize(
        "token,expected",
        [("1", 1), ("42", 42), ("+7", 7), ("007", 7), ("9223372036854775807", 2**63 - 1)],
    )
    def test_valid(self, token, expected):
        assert parse_id(token) == expected

    @pytest.mark.parametrize(
        "token",
        [None, "", "abc", "0", "-0", "-1", "1.5", " 1", "1 ", "1_000", "0x10", "9223372036854775808", "٣"],
    )
    def test_invalid(self, token):
        with pytest.raises(InvalidIdentifier):
            parse_id(token)

    def test_read_id_param(self):
        assert read_id_param(make_request({"id": "15"})) == 15

    def test_read_id_param_missing(self):
        with pytest.raises(InvalidIdentifier):
            read_id_param(make_request({}))


class TestWriteJSON:
    def test_status_and_headers(self):
        res = write_json(
            201,
            Envelope("movie", {"id": 1}),
            headers={"X-Custom": "v", "Content-Type": "text/plain"},
        )
        assert res.status_code == 201
        assert res.headers["content-type"] == "application/json"
        assert res.headers["x-custom"] == "v"
        assert res.headers.getlist("content-type") == ["application/json"]

    def test_multi_value_header_replaces(self):
        res = write_json(200, Envelope("ok", True), headers={"Vary": ["Accept", "Origin"]})
        assert res.headers.getlist("vary") == ["Accept", "Origin"]

    def test_movie_body_layout(self):
        movie = MovieOut(id=1, title="Casablanca", year=1942, runtime=Runtime(102), genres=["drama"], version=1)
        res = write_json(200, Envelope("movie", movie))
        assert res.body == (
            b'{\n'
            b'\t"movie": {\n'
            b'\t\t"id": 1,\n'
            b'\t\t"title": "Casablanca",\n'
            b'\t\t"year": 1942,\n'
            b'\t\t"runtime": "102 mins",\n'
            b'\t\t"genres": [\n'
            b'\t\t\t"drama"\n'
            b'\t\t],\n'
            b'\t\t"version": 1\n'
            b'\t}\n'
            b'}\n'
        )

    def test_zero_fields_are_omitted(self):
        movie = MovieOut(id=0, title="", year=0, runtime=Runtime(0), genres=[], version=0)
        body = json.loads(write_json(200, Envelope("movie", movie)).body)
        assert body == {"movie": {"id": 0, "title": "", "version": 0}}

    def test_deterministic_and_single_newline(self):
        movie = MovieOut(id=3, title="Up", year=2009, runtime=Runtime(96), genres=["animation"], version=2)
        first = write_json(200, Envelope("movie", movie)).body
        second = write_json(200, Envelope("movie", movie.model_copy())).body
        assert first == second
        assert first.endswith(b"}\n")
        assert first.count(b"\n") == first.rstrip(b"\n").count(b"\n") + 1

    def test_mapping_keys_are_sorted(self):
        res = write_json(200, {"b": 1, "a": 2})
        assert res.body == b'{\n\t"a": 2,\n\t"b": 1\n}\n'

    def test_non_ascii_is_utf8(self):
        res = write_json(200, Envelope("movie", {"title": "Amélie"}))
        assert "Amélie".encode("utf-8") in res.body

    def test_standalone_runtime(self):
        res = write_json(200, Envelope("runtime", Runtime(5)))
        assert json.loads(res.body) == {"runtime": "5 mins"}

    def test_unencodable_payload(self):
        with pytest.raises(SerializationFailure):
            write_json(200, Envelope("movie", object()))
