import pytest
import requests
import responses
from responses import matchers

from spindrift.tmdb.client import Client, drop_last_word
from spindrift.tmdb.models import Episode, Movie, MovieDetails, Show

BASE = "https://api.example.com/3"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client():
    return Client(api_key="placeholder", base_url=BASE)


def add_search(mocked, kind, query, results):
    mocked.add(
        responses.GET,
        f"{BASE}/search/{kind}",
        json={"results": results},
        match=[matchers.query_param_matcher({"query": query})],
    )


def test_drop_last_word():
    assert drop_last_word("Demon Slayer Season 2") == "Demon Slayer Season"
    assert drop_last_word("  Two Words  ") == "Two"
    assert drop_last_word("Single") == ""
    assert drop_last_word("") == ""


def test_search_tv_sends_auth_and_parses(mocked, client):
    add_search(mocked, "tv", "Some Show", [{"id": 11, "name": "Some Show"}])
    shows = client.search_tv("Some Show")
    assert shows == [Show(id=11, name="Some Show")]
    request = mocked.calls[0].request
    assert request.headers["Authorization"] == "Bearer placeholder"
    assert request.headers["Accept"] == "application/json"
    assert "query=Some+Show" in request.url


def test_search_movie_parses(mocked, client):
    add_search(mocked, "movie", "Film", [{"id": 3, "title": "Film"}])
    assert client.search_movie("Film") == [Movie(id=3, title="Film")]


def test_search_without_results_key_is_empty(mocked, client):
    mocked.add(responses.GET, f"{BASE}/search/tv", json={"status_message": "nope"}, status=401)
    assert client.search_tv("x") == []


def test_invalid_json_raises_value_error(mocked, client):
    mocked.add(responses.GET, f"{BASE}/search/tv", body="not json")
    with pytest.raises(ValueError):
        client.search_tv("x")


def test_transport_error_propagates(mocked, client):
    mocked.add(
        responses.GET, f"{BASE}/movie/1", body=requests.ConnectionError("down")
    )
    with pytest.raises(requests.ConnectionError):
        client.get_movie(1)


def test_smart_search_tv_drops_words_until_match(mocked, client):
    add_search(mocked, "tv", "Show Name Disc 1", [])
    add_search(mocked, "tv", "Show Name Disc", [])
    add_search(mocked, "tv", "Show Name", [{"id": 5, "name": "Show Name"}])
    shows, matched = client.smart_search_tv("Show Name Disc 1")
    assert shows == [Show(id=5, name="Show Name")]
    assert matched == "Show Name"
    assert len(mocked.calls) == 3


def test_smart_search_movie_nothing_found(mocked, client):
    add_search(mocked, "movie", "A B", [])
    add_search(mocked, "movie", "A", [])
    movies, matched = client.smart_search_movie("A B")
    assert movies == []
    assert matched == ""
    assert len(mocked.calls) == 2


def test_smart_search_movie_first_query_matches(mocked, client):
    add_search(mocked, "movie", "Film Title", [{"id": 8, "title": "Film Title"}])
    movies, matched = client.smart_search_movie("Film Title")
    assert movies == [Movie(id=8, title="Film Title")]
    assert matched == "Film Title"


def test_get_season(mocked, client):
    mocked.add(
        responses.GET,
        f"{BASE}/tv/10/season/2",
        json={"episodes": [{"id": 1, "episode_number": 1, "name": "Pilot", "runtime": 24}]},
    )
    season = client.get_season(10, 2)
    assert season.episodes == [Episode(id=1, episode_number=1, name="Pilot", runtime=24)]


def test_get_show(mocked, client):
    mocked.add(
        responses.GET,
        f"{BASE}/tv/10",
        json={"id": 10, "name": "Show", "seasons": [{"season_number": 1, "name": "Season 1"}]},
    )
    details = client.get_show(10)
    assert details.name == "Show"
    assert [s.season_number for s in details.seasons] == [1]


def test_get_movie(mocked, client):
    mocked.add(
        responses.GET,
        f"{BASE}/movie/77",
        json={"title": "Film", "runtime": 101, "overview": "Plot"},
    )
    assert client.get_movie(77) == MovieDetails(title="Film", runtime=101, overview="Plot")


def test_smart_get_season_uses_matched_name(mocked, client):
    mocked.add(
        responses.GET,
        f"{BASE}/tv/4",
        json={
            "id": 4,
            "seasons": [
                {"season_number": 1, "name": "Season 1"},
                {"season_number": 3, "name": "Swordsmith Village Arc"},
            ],
        },
    )
    mocked.add(
        responses.GET,
        f"{BASE}/tv/4/season/3",
        json={"episodes": [{"id": 9, "episode_number": 1, "name": "E"}]},
    )
    season, number = client.smart_get_season(4, "Show Swordsmith Village Arc Disc 1", 1)
    assert number == 3
    assert season.episodes[0].id == 9


def test_smart_get_season_falls_back(mocked, client):
    mocked.add(
        responses.GET,
        f"{BASE}/tv/4",
        json={"id": 4, "seasons": [{"season_number": 1, "name": "Season 1"}]},
    )
    mocked.add(responses.GET, f"{BASE}/tv/4/season/2", json={"episodes": []})
    season, number = client.smart_get_season(4, "Show Season 2", 2)
    assert number == 2
    assert season.episodes == []


def test_smart_get_season_show_error_propagates(mocked, client):
    mocked.add(responses.GET, f"{BASE}/tv/4", body="<html>")
    with pytest.raises(ValueError):
        client.smart_get_season(4, "Show", 1)