"""A small client for the TMDB v3 API."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

import requests

from .models import (
    Movie,
    MovieDetails,
    Season,
    Show,
    ShowDetails,
    match_season,
)

BASE_URL = "https://api.themoviedb.org/3"

_T = TypeVar("_T")


def drop_last_word(text: str) -> str:
    """text without its last space-separated word; empty when no words remain."""
    text = text.strip()
    position = text.rfind(" ")
    if position < 0:
        return ""
    return text[:position]


class Client:
    """TMDB API client authenticating with a bearer token.

    Transport failures raise requests exceptions; a body that is not valid
    JSON raises ValueError.
    """

    def __init__(
        self,
        api_key: str,
        *,
        session: requests.Session | None = None,
        base_url: str = BASE_URL,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._session = session if session is not None else requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _get(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        response = self._session.get(
            self._base_url + endpoint,
            params=params,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Accept": "application/json",
            },
            timeout=self._timeout,
        )
        with response:
            return response.json()

    def _search(self, kind: str, query: str, parse: Callable[[Any], _T]) -> list[_T]:
        payload = self._get(f"/search/{kind}", {"query": query})
        if payload is None:
            return []
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object from search")
        return [parse(item) for item in payload.get("results") or []]

    def search_tv(self, query: str) -> list[Show]:
        """TV shows matching query."""
        return self._search("tv", query, Show.from_dict)

    def search_movie(self, query: str) -> list[Movie]:
        """Movies matching query."""
        return self._search("movie", query, Movie.from_dict)

    @staticmethod
    def _smart(search: Callable[[str], list[_T]], query: str) -> tuple[list[_T], str]:
        current = query
        while current:
            results = search(current)
            if results:
                return results, current
            current = drop_last_word(current)
        return [], ""

    def smart_search_tv(self, query: str) -> tuple[list[Show], str]:
        """Search TV shows, dropping trailing words until something matches.

        Returns the results and the query that produced them; both are empty
        when nothing was found.
        """
        return self._smart(self.search_tv, query)

    def smart_search_movie(self, query: str) -> tuple[list[Movie], str]:
        """Search movies, dropping trailing words until something matches.

        Returns the results and the query that produced them; both are empty
        when nothing was found.
        """
        return self._smart(self.search_movie, query)

    def get_season(self, show_id: int, season: int) -> Season:
        """A season of a show, with its episodes."""
        return Season.from_dict(self._get(f"/tv/{show_id}/season/{season}"))

    def smart_get_season(
        self, show_id: int, disc_title: str, fallback_season: int
    ) -> tuple[Season, int]:
        """The season whose name best matches disc_title, else fallback_season.

        Returns the season and the season number used.
        """
        details = self.get_show(show_id)
        season_number = match_season(disc_title, details.seasons) or fallback_season
        return self.get_season(show_id, season_number), season_number

    def get_show(self, show_id: int) -> ShowDetails:
        """Full show details, including the season list."""
        return ShowDetails.from_dict(self._get(f"/tv/{show_id}"))

    def get_movie(self, movie_id: int) -> MovieDetails:
        """Full details of a movie."""
        return MovieDetails.from_dict(self._get(f"/movie/{movie_id}"))