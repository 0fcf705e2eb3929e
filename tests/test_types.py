import json

import pytest

from conftest import make_request
from waypoint.types import Redirect
from waypoint.types import Response


class TestRequest:
    def test_params_merge_query_and_form(self) -> None:
        request = make_request(
            "POST",
            "/",
            {"content-type": "application/x-www-form-urlencoded"},
            query_string="a=1&b=2",
            body=b"b=3&c=4",
        )
        assert request.params() == {"a": "1", "b": "3", "c": "4"}
        assert request.param("missing") is None

    def test_form_ignored_for_json(self) -> None:
        request = make_request("POST", "/", {"content-type": "application/json"}, body=b'{"a": 1}')
        assert request.form == {}
        assert request.json() == {"a": 1}

    def test_header_case_insensitive(self) -> None:
        assert make_request("GET", "/", {"accept": "text/html"}).header("Accept") == "text/html"

    @pytest.mark.parametrize(
        ("headers", "remote", "expected"),
        [
            ({"client-ip": "1.1.1.1"}, "9.9.9.9", "1.1.1.1"),
            ({"x-forwarded-for": "2.2.2.2, 3.3.3.3"}, "9.9.9.9", "2.2.2.2"),
            ({}, "9.9.9.9", "9.9.9.9"),
            ({}, "::1", "127.0.0.1"),
        ],
    )
    def test_client_ip(self, headers: dict[str, str], remote: str, expected: str) -> None:
        assert make_request("GET", "/", headers, remote_addr=remote).client_ip == expected

    @pytest.mark.parametrize(
        ("remote", "expected"),
        [
            ("10.0.0.1", "2.2.2.2"),
            ("9.9.9.9", "9.9.9.9"),
        ],
    )
    def test_client_ip_trusted_proxies(self, remote: str, expected: str) -> None:
        request = make_request("GET", "/", {"x-forwarded-for": "2.2.2.2"}, remote_addr=remote)
        assert request.resolve_client_ip(["10.0.0.1"]) == expected


class TestResponse:
    def test_set_header_line(self) -> None:
        response = Response().set_header("X-Thing: a:b")
        assert response.headers == {"x-thing": "a:b"}

    def test_set_header_rejects_bad_line(self) -> None:
        with pytest.raises(ValueError):
            Response().set_header("no colon")

    def test_send_appends(self) -> None:
        response = Response().send("a").send(b"b")
        assert response.body == b"ab"
        assert response.headers["content-type"].startswith("text/html")

    def test_json(self) -> None:
        response = Response.json({"ok": True}, 201)
        assert response.status_code == 201
        assert json.loads(response.body) == {"ok": True}

    def test_redirect(self) -> None:
        response = Response().redirect("/next", 301)
        assert response.status_code == 301
        status, headers, body = response.finalize()
        assert headers["location"] == "/next"
        assert headers["content-length"] == "0"

    def test_delayed_redirect(self) -> None:
        response = Response().redirect("/next", seconds=3)
        assert response.status_code == 200
        assert response.redirection == Redirect("/next", 302, 3)
        _, headers, _ = response.finalize()
        assert headers["refresh"] == "3; url=/next"
        assert "location" not in headers
