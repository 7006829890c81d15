"""Disc discovery, title metadata, and episode detection from playlists."""

from __future__ import annotations

import math
import os
import re
import sys
from dataclasses import dataclass

from ..bdmv.constants import BDMVFormatError
from ..bdmv.index import IndexBDMV, parse_index
from ..bdmv.movieobject import MovieObjectBDMV, parse_movie_object
from ..bdmv.playlist import Playlist, load_all_playlists
from .constants import (
    BDMT_ENGLISH_XML,
    CLUSTER_LOWER_BOUND,
    CLUSTER_TOLERANCE,
    CLUSTER_UPPER_BOUND,
    DEFAULT_BITRATE,
    DI_NAME_CLOSE_TAG,
    DI_NAME_OPEN_TAG,
    EPISODE_RATIO_TOLERANCE,
    MAX_EPISODE_DURATION,
    MAX_EPISODES_PER_STREAM,
    MIN_CLUSTER_DURATION,
    MIN_EPISODE_DURATION,
    MIN_MULTIPLE,
    MIN_VIABLE_DURATION,
    MULTIPLE_DETECTION_TOLERANCE,
)

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
_DISC_DIGIT = re.compile(r"disc[0-9]")
_SHORT_CLIP_SECS = 60

_BOOK_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
}


class DiscError(Exception):
    """Raised when a disc cannot be found, selected or opened."""


@dataclass
class DiscInfo:
    """Metadata derived from the disc's title."""

    show_name: str = ""
    season: int = 1
    disc: int = 1
    is_movie: bool = False
    is_series: bool = False  # title carries series indicators (arc, set, disc number)

    def detect_movie(self, episode_count: int) -> None:
        """Mark the disc as a movie when nothing suggests a series and one title is present."""
        if self.is_series:
            return
        if self.season == 1 and self.disc == 1 and episode_count == 1:
            self.is_movie = True


@dataclass
class Disc:
    """A mounted Blu-ray disc with its parsed navigation files."""

    bdmv_root: str
    info: DiscInfo
    index: IndexBDMV
    mobj: MovieObjectBDMV


def _scan_int(text: str, default: int) -> int:
    """Leading decimal integer of text, or default if there is none."""
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else default


def _index_disc_digit(text: str) -> int:
    """Index of the first "disc" immediately followed by a digit, or -1."""
    match = _DISC_DIGIT.search(text.lower())
    return match.start() if match else -1


def open_disc(bdmv_root: str) -> Disc:
    """Open the disc at bdmv_root, parsing its index and movie object files."""
    try:
        index = parse_index(os.path.join(bdmv_root, "index.bdmv"))
    except (OSError, BDMVFormatError) as err:
        raise DiscError(f"parsing index.bdmv: {err}") from err

    try:
        mobj = parse_movie_object(os.path.join(bdmv_root, "MovieObject.bdmv"))
    except (OSError, BDMVFormatError) as err:
        raise DiscError(f"parsing MovieObject.bdmv: {err}") from err

    try:
        title = parse_disc_title(bdmv_root)
    except (OSError, DiscError):
        title = os.path.basename(os.path.dirname(bdmv_root))

    return Disc(bdmv_root=bdmv_root, info=parse_disc_info(title), index=index, mobj=mobj)


def parse_disc_title(bdmv_root: str) -> str:
    """Read the disc title from the English disc metadata XML.

    Raises OSError if the file cannot be read and DiscError if it holds no name.
    """
    path = os.path.join(bdmv_root, BDMT_ENGLISH_XML)
    with open(path, encoding="utf-8", errors="replace") as handle:
        data = handle.read()

    start = data.find(DI_NAME_OPEN_TAG)
    end = data.find(DI_NAME_CLOSE_TAG)
    if start < 0 or end < 0 or end < start + len(DI_NAME_OPEN_TAG):
        raise DiscError("could not find disc name in XML")

    name = data[start + len(DI_NAME_OPEN_TAG) : end]
    return " ".join(name.split())


def parse_disc_info(title: str) -> DiscInfo:
    """Extract show name, season and disc number from a disc title."""
    info = DiscInfo()
    lower = title.lower()

    position = lower.find("disc ")
    if position >= 0:
        info.disc = _scan_int(title[position + 5 :].strip(), info.disc)
    else:
        position = _index_disc_digit(lower)
        if position >= 0:
            info.disc = _scan_int(lower[position + 4 :], info.disc)
            info.is_series = True  # "Disc1" style implies a numbered disc in a set

    position = lower.find("book ")
    if position >= 0:
        words = title[position + 5 :].split()
        if words:
            word = words[0].strip(",:").lower()
            if word in _BOOK_WORDS:
                info.season = _BOOK_WORDS[word]
            else:
                info.season = _scan_int(word, info.season)
    else:
        position = lower.find("season ")
        if position >= 0:
            info.season = _scan_int(title[position + 7 :].strip(), info.season)

    if any(keyword in lower for keyword in (" arc", " set")):
        info.is_series = True

    markers = ["Book ", "Season ", "Disc "]
    digit_index = _index_disc_digit(title)
    if digit_index > 0:
        markers.append(title[digit_index : digit_index + 5])
    for marker in markers:
        position = title.find(marker)
        if position > 0:
            info.show_name = title[:position].strip()
            break
    if not info.show_name:
        info.show_name = title

    return info


def _sorted_subdirs(root: str) -> list[str]:
    try:
        entries = sorted(os.scandir(root), key=lambda entry: entry.name)
    except OSError:
        return []
    return [
        os.path.join(root, entry.name)
        for entry in entries
        if entry.is_dir(follow_symlinks=False)
    ]


def _disc_search_roots() -> list[str]:
    if sys.platform == "darwin":
        return ["/Volumes"]
    if sys.platform.startswith("linux"):
        return [
            subdir
            for root in ("/media", "/run/media", "/mnt")
            for subdir in _sorted_subdirs(root)
        ]
    return []


def find_bdmv_roots() -> list[str]:
    """Search mounted volumes for BDMV directories."""
    roots = _disc_search_roots()
    if not roots:
        raise DiscError(f"unsupported platform: {sys.platform}")

    return [
        bdmv_path
        for root in roots
        for volume in _sorted_subdirs(root)
        if os.path.exists(bdmv_path := os.path.join(volume, "BDMV"))
    ]


def select_bdmv(arg: str | None) -> str:
    """Return a BDMV root from an explicit path, or by auto-detection.

    When several discs are mounted the user is asked to choose one.
    """
    if arg:
        if os.path.basename(os.path.normpath(arg)) == "BDMV" and os.path.exists(arg):
            return arg
        bdmv_path = os.path.join(arg, "BDMV")
        if os.path.exists(bdmv_path):
            return bdmv_path
        raise DiscError(f"no BDMV directory found at {arg}")

    found = find_bdmv_roots()
    if not found:
        raise DiscError("no Blu-ray disc found — is a disc mounted?")
    if len(found) == 1:
        return found[0]

    print("Multiple discs found:")
    for number, path in enumerate(found, start=1):
        print(f"  [{number}] {os.path.dirname(path)}")
    try:
        answer = input("Select disc [1]: ")
    except EOFError:
        answer = ""
    choice = _scan_int(answer, 1)
    if not 1 <= choice <= len(found):
        raise DiscError("invalid selection")
    return found[choice - 1]


def _ratio(numerator: int, denominator: int) -> float:
    """Floating division that yields inf/nan rather than raising on zero."""
    if denominator:
        return numerator / denominator
    if numerator == 0:
        return math.nan
    return math.inf if numerator > 0 else -math.inf


def _remove_multiples(durations: list[int]) -> list[int]:
    """Drop durations that are near-integer multiples of a smaller earlier duration."""
    if len(durations) <= 1:
        return durations

    filtered = []
    for position, duration in enumerate(durations):
        is_multiple = False
        for smaller in durations[:position]:
            ratio = _ratio(duration, smaller)
            if not math.isfinite(ratio):
                continue
            rounded = float(int(ratio + 0.5))
            if rounded < MIN_MULTIPLE or rounded > MAX_EPISODES_PER_STREAM:
                continue
            if abs(ratio - rounded) / rounded < MULTIPLE_DETECTION_TOLERANCE:
                is_multiple = True
                break
        if not is_multiple:
            filtered.append(duration)
    return filtered


def stream_durations(bdmv_root: str) -> list[int]:
    """Estimated durations of unique primary clips long enough for clustering, sorted."""
    seen: set[str] = set()
    durations = []
    for playlist in load_all_playlists(bdmv_root):
        clip = playlist.primary_clip()
        if not clip or clip in seen:
            continue
        seen.add(clip)
        duration = playlist.estimate_duration(bdmv_root, DEFAULT_BITRATE)
        if duration >= MIN_CLUSTER_DURATION:
            durations.append(duration)
    durations.sort()
    return _remove_multiples(durations)


def _truncating_half(total: int) -> int:
    return total // 2 if total >= 0 else -((-total) // 2)


def dominant_cluster(durations: list[int]) -> tuple[int, int, int]:
    """Find the cluster of similar durations holding the most total content.

    Returns (min, max, center) in seconds.
    """
    if not durations:
        return MIN_EPISODE_DURATION, MAX_EPISODE_DURATION, 0

    if len(durations) == 1:
        only = durations[0]
        return int(only * CLUSTER_LOWER_BOUND), int(only * CLUSTER_UPPER_BOUND), only

    def cluster_end(start: int) -> int:
        end = start
        for position in range(start + 1, len(durations)):
            if _ratio(durations[position], durations[start]) > CLUSTER_TOLERANCE:
                break
            end = position
        return end

    best_start, best_score = 0, 0
    for start in range(len(durations)):
        total = sum(durations[start : cluster_end(start) + 1])
        if total > best_score:
            best_score = total
            best_start = start

    cluster_min = durations[best_start]
    cluster_max = durations[cluster_end(best_start)]
    return (
        int(cluster_min * CLUSTER_LOWER_BOUND),
        int(cluster_max * CLUSTER_UPPER_BOUND),
        _truncating_half(cluster_min + cluster_max),
    )


def infer_episode_bounds(bdmv_root: str) -> tuple[int, int, int]:
    """Likely episode (min, max, cluster center) durations in seconds for a disc."""
    durations = stream_durations(bdmv_root)
    if not durations:
        return MIN_EPISODE_DURATION, MAX_EPISODE_DURATION, 0
    return dominant_cluster(durations)


def estimate_episode_count(playlist: Playlist, bdmv_root: str, cluster_dur: int) -> int:
    """Number of episodes a playlist holds, from its clips or its total duration."""
    substantial = playlist.substantial_clip_count(
        bdmv_root, DEFAULT_BITRATE, MIN_CLUSTER_DURATION
    )
    if substantial > 1:
        return substantial

    if cluster_dur <= 0:
        return 1

    total = playlist.estimate_duration(bdmv_root, DEFAULT_BITRATE)
    if total < MIN_VIABLE_DURATION:
        return 1

    ratio = total / cluster_dur
    rounded = int(ratio + 0.5)
    if rounded < 1 or rounded > MAX_EPISODES_PER_STREAM:
        return 1
    if abs(ratio - rounded) / rounded > EPISODE_RATIO_TOLERANCE:
        return 1
    return rounded


def chapter_episode_count(playlist: Playlist) -> int:
    """Episodes inferred from chapter marks, or 0 if they do not look like episodes."""
    durations = playlist.chapter_durations(MIN_EPISODE_DURATION)
    if len(durations) < 2:
        return 0

    _, _, center = dominant_cluster(durations)
    if center < MIN_EPISODE_DURATION or center > MAX_EPISODE_DURATION:
        return 0

    low = int(center * CLUSTER_LOWER_BOUND)
    high = int(center * CLUSTER_UPPER_BOUND)
    count = sum(1 for duration in durations if low <= duration <= high)
    return count if count >= 2 else 0


def load_episode_playlists(
    bdmv_root: str, min_dur: int, max_dur: int, cluster_dur: int
) -> list[Playlist]:
    """Playlists that look like episodes, with multi-episode streams expanded.

    Longer variants of an episode are preferred over shorter ones, and
    commentary variants are kept once per episode with note "commentary".
    The result is ordered by playlist name.
    """
    playlists = load_all_playlists(bdmv_root)
    durations = {
        id(playlist): playlist.estimate_duration(bdmv_root, DEFAULT_BITRATE)
        for playlist in playlists
    }
    # Longest first; on a tie, more play items first (the variant with intro/credits).
    playlists.sort(key=lambda playlist: (-durations[id(playlist)], -len(playlist.play_items)))
    counts = {
        id(playlist): estimate_episode_count(playlist, bdmv_root, cluster_dur)
        for playlist in playlists
    }

    episodes: list[Playlist] = []
    seen: set[str] = set()
    seen_commentary: set[str] = set()

    def is_commentary(playlist: Playlist, clip: str, duration: int) -> bool:
        # Commentary: the primary clip is followed (not preceded) by short overlays.
        if len(playlist.play_items) <= 1 or not min_dur <= duration <= max_dur:
            return False
        if playlist.play_items[-1].clip_name == clip:
            return False
        return all(
            item.clip_name == clip or item.duration < _SHORT_CLIP_SECS
            for item in playlist.play_items
        )

    def process(playlist: Playlist) -> None:
        clip = playlist.primary_clip()
        if not clip:
            return
        duration = durations[id(playlist)]
        if duration < MIN_VIABLE_DURATION:
            return

        episode_count = counts[id(playlist)]
        if episode_count == 1:
            chapters = chapter_episode_count(playlist)
            if chapters > 1:
                episode_count = chapters

        per_episode = duration // episode_count
        if (per_episode < min_dur or per_episode > max_dur) and episode_count <= 1:
            return

        if clip in seen:
            if (
                episode_count == 1
                and clip not in seen_commentary
                and is_commentary(playlist, clip, duration)
            ):
                seen_commentary.add(clip)
                playlist.note = "commentary"
                playlist.note_clip = clip
                episodes.append(playlist)
            return

        seen.add(clip)

        if episode_count > 1:
            covered = sum(
                1
                for item in playlist.play_items
                if item.clip_name != clip and item.clip_name in seen
            )
            if covered >= episode_count:
                return
            episodes.extend(
                Playlist(
                    name=f"{playlist.name}[{number}]",
                    play_items=playlist.play_items,
                    marks=playlist.marks,
                    episode_count=episode_count,
                    episode_index=number,
                )
                for number in range(1, episode_count + 1)
            )
        else:
            episodes.append(playlist)

    # Single-episode playlists first, so individual variants win over play-alls.
    for playlist in playlists:
        if counts[id(playlist)] == 1:
            process(playlist)
    for playlist in playlists:
        if counts[id(playlist)] > 1:
            process(playlist)

    episodes.sort(key=lambda playlist: playlist.name)
    return episodes