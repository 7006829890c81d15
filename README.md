# spindrift

A library for reading the structure of a mounted Blu-ray disc, working out
which playlists hold its episodes, and looking up show, season and movie
metadata on TMDB.

## What it does

- **`spindrift.bdmv`** reads the binary files under a disc's `BDMV` directory:
  - `index.bdmv` via `spindrift.bdmv.index.parse_index`, giving an `IndexBDMV`
    with its first-play, top-menu and title entries. Each `TitleEntry` can say
    whether it is HDMV (`is_hdmv`) or BD-J (`is_bdj`), and for HDMV titles
    `playlist_path` gives the path of the `.mpls` file it refers to.
  - `MovieObject.bdmv` via `spindrift.bdmv.movieobject.parse_movie_object`,
    giving a `MovieObjectBDMV` whose `MovieObject` entries carry their flags
    and `NavigationCommand`s.
  - `.mpls` playlists via `spindrift.bdmv.playlist.parse_playlist` and
    `load_all_playlists` (every playlist in `PLAYLIST/`, sorted by name),
    giving `Playlist` objects with their `PlayItem`s and chapter
    `PlaylistMark`s. A `Playlist` can estimate its duration from the stream
    file sizes (`estimate_duration`), find its primary clip, count clips of a
    given length and measure the gaps between its chapter marks.
    `pts_duration` and `format_duration` (`M:SS`) are there as helpers.
  - `.clpi` clip information via `spindrift.bdmv.clpi.clip_bitrate`, which
    reads the recording rate used for those duration estimates.
- **`spindrift.disc.disc`** builds on that to describe a whole disc:
  - `open_disc` parses `index.bdmv`, `MovieObject.bdmv` and the disc title
    (from `META/DL/bdmt_eng.xml`, or the volume name) into a `Disc`.
  - `parse_disc_info` pulls the show name, season ("Season 2", "Book Three")
    and disc number ("Disc 2", "Disc2") out of a disc title; the resulting
    `DiscInfo.detect_movie` marks single-title, unnumbered discs as movies.
  - `infer_episode_bounds` and `dominant_cluster` group stream durations to
    find the typical episode length on the disc.
  - `load_episode_playlists` picks out one playlist per episode, splitting
    "play all" streams into separate entries (named `00001[1]`, `00001[2]`,
    ...) and marking commentary variants with `note == "commentary"`.
  - `select_bdmv` and `find_bdmv_roots` locate a mounted disc.
- **`spindrift.tmdb`** talks to the TMDB v3 API:
  - `spindrift.tmdb.client.Client` searches shows and movies, fetches seasons,
    show details and movie details, and with `smart_search_tv` /
    `smart_search_movie` retries a search with the last word dropped until
    something matches. `smart_get_season` picks the season whose name appears
    in the disc title, falling back to a given season number. The client
    takes an optional `requests.Session`, `base_url` and `timeout`.
  - `spindrift.tmdb.models` holds the records (`Show`, `ShowDetails`,
    `SeasonSummary`, `Season`, `Episode`, `Movie`, `MovieDetails`, each with
    `from_dict`) and the helpers `match_season`, `match_start_episode` and
    `episodes_for_disc` that line disc content up with a season's episodes.

## Installation

Install the package with your usual Python package installer; it needs
Python 3.10 or later and depends on `requests`.

## Example

```python
import os

from spindrift.bdmv.playlist import format_duration
from spindrift.disc.constants import DEFAULT_BITRATE
from spindrift.disc.disc import (
    infer_episode_bounds,
    load_episode_playlists,
    open_disc,
    select_bdmv,
)
from spindrift.tmdb.client import Client
from spindrift.tmdb.models import episodes_for_disc, match_start_episode

root = select_bdmv("/Volumes/MY_SHOW_S1_D1")
disc = open_disc(root)
print(disc.info.show_name, "season", disc.info.season, "disc", disc.info.disc)

min_dur, max_dur, cluster = infer_episode_bounds(root)
episodes = load_episode_playlists(root, min_dur, max_dur, cluster)
for playlist in episodes:
    print(playlist.name, format_duration(playlist.estimate_duration(root, DEFAULT_BITRATE)))

client = Client(os.environ["TMDB_API_KEY"])
shows, matched_query = client.smart_search_tv(disc.info.show_name)
if shows:
    season, season_number = client.smart_get_season(
        shows[0].id, disc.info.show_name, disc.info.season
    )
    durations = [p.estimate_duration(root, DEFAULT_BITRATE) for p in episodes]
    start = match_start_episode(season, durations)
    for episode in episodes_for_disc(season, start, len(episodes)):
        print(episode.episode_number, episode.name)
```

Calling `select_bdmv` with an empty string or `None` searches the usual mount
points (`/Volumes` on macOS; the folders under `/media`, `/run/media` and
`/mnt` on Linux) and asks on the terminal which disc to use if more than one
is found.

## Errors

- Files that are not the expected BDMV type, or whose title or command tables
  are cut short, raise `spindrift.bdmv.constants.BDMVFormatError` (a
  `ValueError`); files that cannot be opened raise `OSError`.
- Problems finding, selecting or opening a disc raise
  `spindrift.disc.disc.DiscError`, including on platforms other than macOS
  and Linux when auto-detection is asked for.
- `clip_bitrate` never raises; it returns `0` when a `.clpi` file is missing
  or unusable, and durations then fall back to the default bitrate.
- `Client` lets `requests` exceptions through for transport failures and
  raises `ValueError` for a response body that is not the expected JSON.

## What it does not do

This is a library only: it installs no command-line program. It reads disc
structure and metadata but does not copy, rip, decode or rename any stream
files, and it does not store anything it looks up.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.