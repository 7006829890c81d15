"""TMDB records and the matching of disc content against them."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


def _mapping(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    return int(value) if value is not None else 0


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value) if value is not None else ""


def _list(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"expected a JSON array for {key!r}")
    return value


@dataclass(frozen=True)
class Show:
    """A TV show search result."""

    id: int = 0
    name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Show:
        data = _mapping(data)
        return cls(id=_int(data, "id"), name=_str(data, "name"))


@dataclass(frozen=True)
class SeasonSummary:
    """A season entry in a show's details."""

    season_number: int = 0
    name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SeasonSummary:
        data = _mapping(data)
        return cls(season_number=_int(data, "season_number"), name=_str(data, "name"))


@dataclass(frozen=True)
class ShowDetails:
    """Full show metadata, including the season list."""

    id: int = 0
    name: str = ""
    seasons: list[SeasonSummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ShowDetails:
        data = _mapping(data)
        return cls(
            id=_int(data, "id"),
            name=_str(data, "name"),
            seasons=[SeasonSummary.from_dict(item) for item in _list(data, "seasons")],
        )


@dataclass(frozen=True)
class Episode:
    """A single TV episode."""

    id: int = 0
    episode_number: int = 0
    name: str = ""
    overview: str = ""
    runtime: int = 0  # minutes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Episode:
        data = _mapping(data)
        return cls(
            id=_int(data, "id"),
            episode_number=_int(data, "episode_number"),
            name=_str(data, "name"),
            overview=_str(data, "overview"),
            runtime=_int(data, "runtime"),
        )


@dataclass(frozen=True)
class Season:
    """A TV season with its episodes."""

    episodes: list[Episode] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Season:
        data = _mapping(data)
        return cls(episodes=[Episode.from_dict(item) for item in _list(data, "episodes")])


@dataclass(frozen=True)
class Movie:
    """A movie search result."""

    id: int = 0
    title: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Movie:
        data = _mapping(data)
        return cls(id=_int(data, "id"), title=_str(data, "title"))


@dataclass(frozen=True)
class MovieDetails:
    """Full movie metadata."""

    title: str = ""
    runtime: int = 0  # minutes
    overview: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> MovieDetails:
        data = _mapping(data)
        return cls(
            title=_str(data, "title"),
            runtime=_int(data, "runtime"),
            overview=_str(data, "overview"),
        )


def match_season(disc_title: str, seasons: Sequence[SeasonSummary]) -> int:
    """Number of the season whose name appears in disc_title, or 0 if none does.

    The match is a case-insensitive substring search; the longest matching
    name wins. Specials (season 0), unnamed seasons and generic "Season N"
    names are skipped.
    """
    lower = disc_title.lower()
    best_length, best_season = 0, 0
    for summary in seasons:
        name = summary.name.strip()
        if not name or summary.season_number == 0:
            continue
        lname = name.lower()
        if lname.startswith("season "):
            continue
        length = len(name.encode("utf-8"))
        if lname in lower and length > best_length:
            best_length = length
            best_season = summary.season_number
    return best_season


def match_start_episode(season: Season, disc_durations: Sequence[int]) -> int:
    """Episode number at which the disc begins, found by matching durations.

    A window as long as disc_durations (seconds) slides across the season;
    the position with the lowest total absolute difference from the TMDB
    runtimes wins. Windows containing an episode without a runtime are
    ignored. Returns 1 when nothing can be matched.
    """
    count = len(disc_durations)
    episodes = season.episodes
    if count == 0 or len(episodes) < count:
        return 1

    best_score = sys.maxsize
    best_start = 1
    for start in range(len(episodes) - count + 1):
        window = episodes[start : start + count]
        if any(episode.runtime * 60 == 0 for episode in window):
            continue
        score = sum(
            abs(duration - episode.runtime * 60)
            for duration, episode in zip(disc_durations, window)
        )
        if score < best_score:
            best_score = score
            best_start = window[0].episode_number
    return best_start


def episodes_for_disc(season: Season, start_episode: int, num_episodes: int) -> list[Episode]:
    """Up to num_episodes episodes starting at the 1-based start_episode.

    A start below 1 is treated as 1; a start past the end yields an empty list.
    """
    start = start_episode - 1 if start_episode > 1 else 0
    if start >= len(season.episodes):
        return []
    return list(season.episodes[start : start + num_episodes])