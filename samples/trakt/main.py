import os
from typing import Annotated, Any, Literal, Optional

from httpx import Response

from retrohttpx import (
    Path,
    Query,
    QuerySpread,
    RetroHttpx,
    Service,
    get,
    nothing,
    setup_logging,
)

BASE_URL = "https://api.trakt.tv/"


class TraktMovie(Service):
    @get("")
    def summary(
        self, extended: Annotated[Optional[Literal["full"]], Query("extended")] = None
    ) -> Response:
        return nothing(extended)

    @get("releases/{country=(us)}")
    def releases(self, country: Annotated[Optional[str], Path("country")] = None) -> Response:
        return nothing(country)


class TraktMovies(Service):
    @get("popular", query={"page": 1, "limit": 10})
    def popular(
        self,
        page: Annotated[Optional[int], Query("page")] = None,
        limit: Annotated[Optional[int], Query("limit")] = None,
        extended: Annotated[Optional[Literal["full"]], Query("extended")] = None,
        filters: Annotated[Optional[dict[str, Any]], QuerySpread()] = None,
    ) -> Response:
        return nothing(page, limit, extended, filters)


class TraktService:
    def __init__(self) -> None:
        self._client = RetroHttpx(
            base_url=BASE_URL,
            headers={
                "Content-Type": "application/json",
                "trakt-api-key": os.environ.get("TRAKT_CLIENT_ID", ""),
                "trakt-api-version": "2",
            },
        )
        self._extensions: dict[str, RetroHttpx] = {}

    def movie(self, id: str) -> TraktMovie:
        return self._extended(f"{BASE_URL}movies/{id}/").create(TraktMovie)

    @property
    def movies(self) -> TraktMovies:
        return self._extended(f"{BASE_URL}movies/").create(TraktMovies)

    def close(self) -> None:
        for client in self._extensions.values():
            client.close()
        self._extensions.clear()
        self._client.close()

    def _extended(self, base_url: str) -> RetroHttpx:
        # one client per base url
        if base_url not in self._extensions:
            self._extensions[base_url] = self._client.extend(base_url=base_url)
        return self._extensions[base_url]


if __name__ == "__main__":
    setup_logging(should_debug=True)
    service = TraktService()
    try:
        response = service.movies.popular(limit=3, extended="full")
        print(response.json())
    finally:
        service.close()
