import json
import logging
from typing import Annotated, Any, Optional

import httpx
import pytest
from pytest_httpx import HTTPXMock

from retrohttpx import (
    Body,
    ConfigurationError,
    Header,
    HeaderSpread,
    HttpMethod,
    Path,
    Query,
    QuerySpread,
    RetroHttpx,
    Service,
    config,
    descriptor_of,
    get,
    intercept,
    manipulate,
    nothing,
    patch,
    post,
    put,
)
from retrohttpx._decorators import collect_bindings
from retrohttpx._request import Binding, BindingKind


class MovieService(Service):
    @get("movie/{id}", query={"language": "en-US"})
    def movie(self, id: Annotated[int, Path()]) -> httpx.Response:
        return nothing(id)

    @get("movie/{id}/release_dates/{country=(us)}")
    def release_dates(
        self,
        id: Annotated[int, Path("id")],
        country: Annotated[Optional[str], Path("country")] = None,
    ) -> httpx.Response:
        return nothing(id, country)

    @get("discover/movie", query={"page": 1})
    def discover(
        self,
        filters: Annotated[dict[str, Any], QuerySpread()],
        year: Annotated[Optional[int], Query("year")] = None,
    ) -> httpx.Response:
        return nothing(filters, year)

    @post("movie/{id}/rating", headers={"Content_Kind": "rating"})
    def rate(
        self,
        id: Annotated[int, Path()],
        rating: Annotated[dict[str, float], Body()],
        session: Annotated[str, Header("Session")],
        extra: Annotated[Optional[dict[str, str]], HeaderSpread()] = None,
    ) -> httpx.Response:
        return nothing(id, rating, session, extra)

    @get("account")
    @manipulate(lambda response: response.json()["username"])
    def username(self) -> str:
        return nothing()

    @get("movie/{id}")
    async def movie_async(self, id: Annotated[int, Path()]) -> httpx.Response:
        return nothing(id)

    @put("list/{list_id}")
    async def update_list(
        self,
        list_id: Annotated[int, Path()],
        payload: Annotated[dict[str, Any], Body()],
    ) -> httpx.Response:
        return nothing(list_id, payload)


@pytest.fixture
def movies(client: RetroHttpx) -> MovieService:
    return client.create(MovieService)


class TestCollectBindings:
    def test_bindings_in_declaration_order(self) -> None:
        bindings, hints = collect_bindings(MovieService.rate.__wrapped__)  # type: ignore[attr-defined]

        assert bindings == [
            Binding(BindingKind.PATH_SEGMENT, 0, "id"),
            Binding(BindingKind.BODY, 1),
            Binding(BindingKind.HEADER, 2, "Session"),
            Binding(BindingKind.HEADER_SPREAD, 3),
        ]
        assert len(hints) == 4

    def test_several_markers_on_one_parameter(self) -> None:
        def operation(
            self: Any,
            extra: Annotated[dict[str, str], QuerySpread(), HeaderSpread()],
        ) -> None:
            pass

        bindings, _ = collect_bindings(operation)

        assert [binding.kind for binding in bindings] == [
            BindingKind.QUERY_SPREAD,
            BindingKind.HEADER_SPREAD,
        ]
        assert {binding.argument_index for binding in bindings} == {0}

    def test_optional_wrapped_annotated_parameter(self) -> None:
        def operation(
            self: Any,
            country: Optional[Annotated[Optional[str], Path("country")]] = None,
            filters: Optional[Annotated[dict[str, Any], QuerySpread()]] = None,
        ) -> None:
            pass

        bindings, hints = collect_bindings(operation)

        assert bindings == [
            Binding(BindingKind.PATH_SEGMENT, 0, "country"),
            Binding(BindingKind.QUERY_SPREAD, 1),
        ]
        assert len(hints) == 2

    def test_parameters_defaulting_to_none_keep_their_bindings(self) -> None:
        release_dates = descriptor_of(MovieService.release_dates)
        discover = descriptor_of(MovieService.discover)
        assert release_dates is not None
        assert discover is not None

        assert release_dates.bindings == (
            Binding(BindingKind.PATH_SEGMENT, 0, "id"),
            Binding(BindingKind.PATH_SEGMENT, 1, "country"),
        )
        assert discover.bindings == (
            Binding(BindingKind.QUERY_SPREAD, 0),
            Binding(BindingKind.QUERY, 1, "year"),
        )

    def test_marker_class_without_call(self) -> None:
        def operation(self: Any, page: Annotated[int, Query]) -> None:
            pass

        bindings, _ = collect_bindings(operation)

        assert bindings == [Binding(BindingKind.QUERY, 0, "page")]

    def test_unannotated_parameters_are_ignored(self) -> None:
        def operation(self: Any, a, b: int, c: Annotated[str, "doc"]) -> None:  # type: ignore[no-untyped-def]
            pass

        assert collect_bindings(operation)[0] == []

    def test_var_arguments_rejected(self) -> None:
        def operation(self: Any, *args: Any) -> None:
            pass

        with pytest.raises(ConfigurationError, match=r"\*args"):
            collect_bindings(operation)


class TestDeclaration:
    def test_descriptor_is_attached(self) -> None:
        descriptor = descriptor_of(MovieService.movie)

        assert descriptor is not None
        assert descriptor.method is HttpMethod.GET
        assert descriptor.url_template == "movie/{id}"
        assert descriptor.base_query == {"language": "en-US"}

    def test_descriptor_of_undeclared_method(self) -> None:
        assert descriptor_of(MovieService.__init__) is None

    def test_body_on_get_aborts_declaration(self) -> None:
        with pytest.raises(ConfigurationError, match="Body is only allowed"):

            class Broken(Service):
                @get("lists")
                def create(self, payload: Annotated[dict[str, Any], Body()]) -> None:
                    pass

    def test_missing_placeholder_aborts_declaration(self) -> None:
        with pytest.raises(ConfigurationError, match="Broken.movie: .*'movie_id'"):

            class Broken(Service):
                @get("movie/{id}")
                def movie(self, movie_id: Annotated[int, Path()]) -> None:
                    pass

    def test_malformed_placeholder_aborts_declaration(self) -> None:
        with pytest.raises(
            ConfigurationError, match=r"Broken.item: Malformed placeholder '\{item-id\}'"
        ):

            class Broken(Service):
                @get("items/{item-id}")
                def item(self, item_id: Annotated[int, Path()]) -> None:
                    pass

    def test_spread_on_scalar_aborts_declaration(self) -> None:
        with pytest.raises(ConfigurationError, match="string-keyed mapping"):

            class Broken(Service):
                @get("discover")
                def discover(self, filters: Annotated[str, QuerySpread()]) -> None:
                    pass

    def test_config_override_wins_over_shorthand(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="retrohttpx"):

            class Configured(Service):
                @get("movies", query={"page": 1, "region": "US"})
                @config(params={"region": "GB"}, timeout=3)
                def movies(self) -> None:
                    pass

        descriptor = descriptor_of(Configured.movies)
        assert descriptor is not None
        assert descriptor.base_query == {"page": 1, "region": "GB"}
        assert descriptor.timeout == 3
        assert "shorthand defaults together with a config override" in caplog.text

    def test_config_can_change_method(self) -> None:
        class Configured(Service):
            @patch("lists/{id}")
            @config(method="put")
            def replace(
                self,
                id: Annotated[int, Path()],
                payload: Annotated[dict[str, Any], Body()],
            ) -> None:
                pass

        descriptor = descriptor_of(Configured.replace)
        assert descriptor is not None
        assert descriptor.method is HttpMethod.PUT

    def test_misplaced_config_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="retrohttpx"):

            class Misplaced(Service):
                @config(params={"page": 2})
                @get("movies")
                def movies(self) -> None:
                    pass

        descriptor = descriptor_of(Misplaced.movies)
        assert descriptor is not None
        assert descriptor.base_query == {}
        assert "config decorator on" in caplog.text
        assert "is ineffective" in caplog.text

    def test_repeated_request_decorator_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="retrohttpx"):

            class Repeated(Service):
                @post("lists")
                @get("movies")
                def operation(self) -> None:
                    pass

        descriptor = descriptor_of(Repeated.operation)
        assert descriptor is not None
        assert descriptor.method is HttpMethod.POST
        assert descriptor.url_template == "lists"
        assert "More than one request decorator" in caplog.text

    def test_repeated_config_upper_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="retrohttpx"):

            class Repeated(Service):
                @get("movies")
                @config(params={"page": 2})
                @config(params={"page": 1})
                def movies(self) -> None:
                    pass

        descriptor = descriptor_of(Repeated.movies)
        assert descriptor is not None
        assert descriptor.base_query == {"page": 2}
        assert "More than one config decorator" in caplog.text


class TestCalls:
    def test_path_and_default_query(
        self, httpx_mock: HTTPXMock, movies: MovieService, base_url: str, api_key: str
    ) -> None:
        httpx_mock.add_response(json={"id": 552524, "title": "Lilo & Stitch"})

        response = movies.movie(552524)

        assert response.status_code == 200
        assert response.json()["id"] == 552524

        sent_request = httpx_mock.get_request()
        if sent_request is None:
            raise Exception("No request was sent")

        assert sent_request.method == "GET"
        assert sent_request.url == f"{base_url}movie/552524?language=en-US"
        assert sent_request.headers["Authorization"] == f"Bearer {api_key}"

    def test_keyword_arguments(
        self, httpx_mock: HTTPXMock, movies: MovieService, base_url: str
    ) -> None:
        httpx_mock.add_response()

        movies.movie(id=7)

        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert sent_request.url.path == "/3/movie/7"

    def test_path_placeholder_default(
        self, httpx_mock: HTTPXMock, movies: MovieService
    ) -> None:
        httpx_mock.add_response()
        httpx_mock.add_response()

        movies.release_dates(550)
        movies.release_dates(550, "gb")

        first, second = httpx_mock.get_requests()
        assert first.url.path == "/3/movie/550/release_dates/us"
        assert second.url.path == "/3/movie/550/release_dates/gb"

    def test_spread_then_query(self, httpx_mock: HTTPXMock, movies: MovieService) -> None:
        httpx_mock.add_response()
        httpx_mock.add_response()

        movies.discover({"year": 2020, "with_genres": "action"})
        movies.discover({"year": 2020, "with_genres": "action"}, year=2021)

        first, second = httpx_mock.get_requests()
        assert dict(first.url.params) == {
            "page": "1",
            "year": "2020",
            "with_genres": "action",
        }
        assert dict(second.url.params) == {
            "page": "1",
            "year": "2021",
            "with_genres": "action",
        }

    def test_body_and_headers(self, httpx_mock: HTTPXMock, movies: MovieService) -> None:
        httpx_mock.add_response(status_code=201, json={"success": True})

        response = movies.rate(550, {"value": 8.5}, "session-1", {"X_Request": "abc"})

        assert response.status_code == 201
        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert sent_request.method == "POST"
        assert sent_request.url.path == "/3/movie/550/rating"
        assert json.loads(sent_request.content) == {"value": 8.5}
        assert sent_request.headers["Session"] == "session-1"
        assert sent_request.headers["X_Request"] == "abc"
        assert sent_request.headers["Content_Kind"] == "rating"
        assert sent_request.headers["Content-Type"] == "application/json"

    def test_manipulator(self, httpx_mock: HTTPXMock, movies: MovieService) -> None:
        httpx_mock.add_response(json={"username": "stitch"})

        assert movies.username() == "stitch"

    def test_repeated_calls_do_not_leak_state(
        self, httpx_mock: HTTPXMock, movies: MovieService
    ) -> None:
        httpx_mock.add_response()
        httpx_mock.add_response()

        movies.discover({"with_genres": "drama"}, year=1999)
        movies.discover({})

        _, second = httpx_mock.get_requests()
        assert dict(second.url.params) == {"page": "1"}
        descriptor = descriptor_of(MovieService.discover)
        assert descriptor is not None
        assert descriptor.base_query == {"page": 1}

    def test_intercept_hooks(self, httpx_mock: HTTPXMock, client: RetroHttpx) -> None:
        seen: list[str] = []

        def on_request(request: httpx.Request) -> None:
            request.headers["Signature"] = "signed"
            seen.append(f"request {request.url.path}")

        def on_response(response: httpx.Response) -> None:
            seen.append(f"response {response.status_code}")

        class Hooked(Service):
            @get("ping")
            @intercept(request=on_request, response=on_response)
            def ping(self) -> httpx.Response:
                return nothing()

        httpx_mock.add_response(status_code=204)

        client.create(Hooked).ping()

        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert sent_request.headers["Signature"] == "signed"
        assert seen == ["request /3/ping", "response 204"]

    def test_service_without_transport(self) -> None:
        with pytest.raises(ConfigurationError, match="not created by a RetroHttpx client"):
            MovieService().movie(1)

    def test_wrong_arguments(self, movies: MovieService) -> None:
        with pytest.raises(TypeError):
            movies.movie(1, 2)  # type: ignore[call-arg]


class TestAsyncCalls:
    @pytest.mark.anyio
    async def test_async_operation(
        self, httpx_mock: HTTPXMock, movies: MovieService, base_url: str
    ) -> None:
        httpx_mock.add_response(json={"id": 7})

        response = await movies.movie_async(7)

        assert response.json() == {"id": 7}
        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert sent_request.url == f"{base_url}movie/7"

    @pytest.mark.anyio
    async def test_async_body(self, httpx_mock: HTTPXMock, movies: MovieService) -> None:
        httpx_mock.add_response()

        await movies.update_list(12, {"name": "Favourites"})

        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert sent_request.method == "PUT"
        assert sent_request.url.path == "/3/list/12"
        assert json.loads(sent_request.content) == {"name": "Favourites"}

    @pytest.mark.anyio
    async def test_async_hooks_and_manipulator(
        self, httpx_mock: HTTPXMock, client: RetroHttpx
    ) -> None:
        seen: list[int] = []

        async def on_response(response: httpx.Response) -> None:
            seen.append(response.status_code)

        async def titles(response: httpx.Response) -> list[str]:
            return [item["title"] for item in response.json()["results"]]

        class Popular(Service):
            @get("movie/popular")
            @intercept(response=on_response)
            @manipulate(titles)
            async def popular(self, page: Annotated[int, Query()] = 1) -> list[str]:
                return nothing(page)

        httpx_mock.add_response(json={"results": [{"title": "Up"}, {"title": "Cars"}]})

        assert await client.create(Popular).popular() == ["Up", "Cars"]
        assert seen == [200]
        sent_request = httpx_mock.get_request()
        assert sent_request is not None
        assert dict(sent_request.url.params) == {"page": "1"}
