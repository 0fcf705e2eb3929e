import pytest

from waypoint.handlers import HandlerRegistry
from waypoint.router import Router
from waypoint.router import normalize_path
from waypoint.router import similar_text
from waypoint.router import similarity
from waypoint.router import split_path
from waypoint.types import ConfigurationError
from waypoint.types import InvalidMethod


def show(request, response, app):
    return "show"


def other(request, response, app):
    return "other"


def auth(request, response, app):
    return None


class TestNormalize:
    def test_adds_leading_slash(self) -> None:
        assert normalize_path("users") == "/users"

    def test_trims_trailing_slash(self) -> None:
        assert normalize_path("/users/") == "/users"

    def test_root(self) -> None:
        assert normalize_path("") == "/"
        assert normalize_path("///") == "/"

    def test_strips_query(self) -> None:
        assert normalize_path("/users/?page=2") == "/users"

    def test_split(self) -> None:
        assert split_path("/") == []
        assert split_path("/a/:b/c") == ["a", ":b", "c"]


class TestSimilarText:
    def test_identical(self) -> None:
        assert similar_text("hello", "hello") == 5
        assert similarity("hello", "hello") == 100.0

    def test_disjoint(self) -> None:
        assert similar_text("abc", "xyz") == 0

    def test_recurses_on_both_sides(self) -> None:
        assert similar_text("Hello World", "World Hello") == 5
        assert similar_text("/a/b", "/a/c/b") == 4
        assert similar_text("World", "Word") == 4

    def test_empty(self) -> None:
        assert similar_text("", "abc") == 0
        assert similarity("", "") == 0.0


class TestRegistration:
    def test_requires_controller(self) -> None:
        with pytest.raises(ConfigurationError, match="Controller is required in: /users"):
            Router().add("GET", "/users")

    def test_invalid_method(self) -> None:
        with pytest.raises(InvalidMethod) as exc_info:
            Router().add("FETCH", "/users", show)
        assert exc_info.value.method == "FETCH"
        assert "/users" in str(exc_info.value)

    def test_method_list(self) -> None:
        r = Router()
        r.add(["GET", "POST"], "users/", show)
        assert set(r.routes["/users"]) == {"GET", "POST"}

    def test_invalid_method_in_list(self) -> None:
        with pytest.raises(InvalidMethod):
            Router().add(["GET", "get"], "/users", show)

    def test_middlewares_deduplicated(self) -> None:
        r = Router()
        r.add("GET", "/users", show, [auth, auth])
        assert r.routes["/users"]["GET"].middlewares == (auth,)

    def test_single_middleware(self) -> None:
        r = Router()
        r.add("GET", "/users", show, auth)
        assert r.routes["/users"]["GET"].middlewares == (auth,)

    def test_empty_middlewares(self) -> None:
        r = Router()
        r.add("GET", "/users", show)
        assert r.routes["/users"]["GET"].middlewares == ()

    def test_method_list_shares_middleware_iterator(self) -> None:
        r = Router()
        r.add(["GET", "POST"], "/users", show, (m for m in [auth]))
        assert r.routes["/users"]["GET"].middlewares == (auth,)
        assert r.routes["/users"]["POST"].middlewares == (auth,)

    def test_string_controller_needs_namespace(self) -> None:
        with pytest.raises(ConfigurationError, match="namespace"):
            Router().add("GET", "/users", "UsersController@index")

    def test_string_controller_resolved(self) -> None:
        class UsersController:
            def index(self, request, response, app):
                return "index"

        r = Router(HandlerRegistry(controllers={"UsersController": UsersController}))
        r.add("GET", "/users", "UsersController@index")
        assert str(r.routes["/users"]["GET"].controller) == "UsersController@index"


class TestMatching:
    def test_exact_match(self) -> None:
        r = Router()
        r.add("GET", "/users", show)
        match = r.match("GET", "/users/")
        assert match is not None
        assert match.pattern == "/users"
        assert match.entry.controller is show
        assert match.attributes == {}
        assert match.method_not_allowed is False

    def test_exact_match_wins_over_params(self) -> None:
        r = Router()
        r.add("GET", "/users/:id", other)
        r.add("GET", "/users/me", show)
        match = r.match("GET", "/users/me")
        assert match.pattern == "/users/me"
        assert match.entry.controller is show

    def test_exact_match_method_missing_does_not_fall_through(self) -> None:
        r = Router()
        r.add("GET", "/users/:id", other)
        r.add("POST", "/users/me", show)
        match = r.match("GET", "/users/me")
        assert match.pattern == "/users/me"
        assert match.method_not_allowed is True
        assert match.entry is None

    def test_attributes(self) -> None:
        r = Router()
        r.add("GET", "/users/:id/posts/:postId", show)
        match = r.match("GET", "/users/42/posts/7")
        assert match.attributes == {"id": "42", "postId": "7"}

    @pytest.mark.parametrize("path", ["/items", "/items/1/extra", "/items/1/2/3"])
    def test_segment_count(self, path: str) -> None:
        r = Router()
        r.add("GET", "/items/:id", show)
        assert r.match("GET", path) is None

    def test_not_found(self) -> None:
        r = Router()
        r.add("GET", "/users", show)
        assert r.match("GET", "/posts") is None

    def test_single_candidate_method_not_allowed(self) -> None:
        r = Router()
        r.add("GET", "/items/:id", show)
        match = r.match("DELETE", "/items/3")
        assert match.method_not_allowed is True
        assert match.attributes == {"id": "3"}

    def test_root(self) -> None:
        r = Router()
        r.add("GET", "/", show)
        assert r.match("GET", "").pattern == "/"


class TestAmbiguity:
    def _router(self) -> Router:
        r = Router()
        r.add("GET", "/a/:x/b", show)
        r.add("GET", "/a/c/:y", other)
        return r

    def test_picks_most_similar(self) -> None:
        match = self._router().match("GET", "/a/c/b")
        assert match.pattern == "/a/c/:y"
        assert match.attributes == {"y": "b"}
        assert match.entry.controller is other

    def test_deterministic(self) -> None:
        results = {self._router().match("GET", "/a/c/b").pattern for _ in range(10)}
        assert results == {"/a/c/:y"}

    def test_tie_keeps_first_registered(self) -> None:
        r = Router()
        r.add("GET", "/:a/x", show)
        r.add("GET", "/:b/x", other)
        assert r.match("GET", "/q/x").pattern == "/:a/x"
