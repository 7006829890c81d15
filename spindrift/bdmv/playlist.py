"""Parsing of .mpls playlist files and duration analysis of their clips."""

from __future__ import annotations

import glob
import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from .clpi import clip_bitrate
from .constants import (
    PLAY_ITEM_CLIP_NAME_LEN,
    PLAY_ITEM_CLIP_NAME_USED,
    PLAY_ITEM_TIMESTAMP_SKIP,
    PLAYLIST_HEADER_SKIP,
    PLAYLIST_MARK_OFFSET_ADDR,
    PLAYLIST_OFFSET_ADDR,
    PTS_CLOCK,
    TYPE_INDICATOR_MPLS,
    BDMVFormatError,
)

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_UINT32_MASK = 0xFFFFFFFF
# Play items shorter than this are treated as bumpers, tails or overlays.
_SHORT_CLIP_SECS = 60


@dataclass(frozen=True)
class PlayItem:
    """A single play item within a playlist."""

    clip_name: str
    in_time: int = 0
    out_time: int = 0
    duration: int = 0  # seconds


@dataclass(frozen=True)
class PlaylistMark:
    """A chapter mark within a playlist."""

    mark_type: int = 0
    play_item_ref: int = 0
    timestamp: int = 0
    duration: int = 0


@dataclass
class Playlist:
    """A parsed .mpls playlist, possibly one episode of a shared playlist."""

    name: str
    play_items: list[PlayItem] = field(default_factory=list)
    marks: list[PlaylistMark] = field(default_factory=list)
    episode_count: int = 0  # >1 when the playlist is shared by several episodes
    episode_index: int = 0  # 1-based position within episode_count
    note: str | None = None  # e.g. "commentary"
    note_clip: str | None = None  # for commentary: the episode clip it overlays

    def chapter_count(self) -> int:
        """Number of marks assigned to this episode.

        When the playlist is shared by several episodes, the marks are split
        as evenly as possible, the remainder going to the last episodes.
        """
        total = len(self.marks)
        count = self.episode_count
        if count <= 1:
            return total
        base, remainder = divmod(total, count)
        if self.episode_index > count - remainder:
            return base + 1
        return base

    def total_duration(self) -> int:
        """Sum of all play item durations in seconds."""
        return sum(item.duration for item in self.play_items)

    def episode_duration(self) -> int:
        """Duration of unique clips, skipping repeats and clips under a minute."""
        seen: set[str] = set()
        total = 0
        for item in self.play_items:
            if item.clip_name in seen or item.duration < _SHORT_CLIP_SECS:
                continue
            seen.add(item.clip_name)
            total += item.duration
        return total

    def primary_clip(self) -> str | None:
        """Name of the first clip lasting at least a minute.

        Falls back to the first clip, or None for an empty playlist.
        """
        for item in self.play_items:
            if item.duration >= _SHORT_CLIP_SECS:
                return item.clip_name
        if self.play_items:
            return self.play_items[0].clip_name
        return None

    def stream_path(self, bdmv_root: str | os.PathLike) -> str | None:
        """Path of the primary clip's .m2ts file, or None for an empty playlist."""
        clip = self.primary_clip()
        if not clip:
            return None
        return os.path.join(bdmv_root, "STREAM", f"{clip}.m2ts")

    def _unique_clips(self):
        seen: set[str] = set()
        for item in self.play_items:
            if item.clip_name not in seen:
                seen.add(item.clip_name)
                yield item.clip_name

    def estimate_duration(self, bdmv_root: str | os.PathLike, default_bitrate: int) -> int:
        """Estimated total duration in seconds of all unique clips.

        Each clip's rate comes from its .clpi file when available, otherwise
        from default_bitrate (bits/sec).
        """
        return sum(
            _clip_duration(bdmv_root, clip, default_bitrate)
            for clip in self._unique_clips()
        )

    def substantial_clip_count(
        self, bdmv_root: str | os.PathLike, default_bitrate: int, min_dur: int
    ) -> int:
        """Number of unique clips whose estimated duration is at least min_dur seconds."""
        return sum(
            1
            for clip in self._unique_clips()
            if _clip_duration(bdmv_root, clip, default_bitrate) >= min_dur
        )

    def chapter_durations(self, min_secs: int) -> list[int]:
        """Seconds between consecutive entry marks on the same play item.

        Gaps shorter than min_secs (recaps, previews) are left out.
        """
        entries = [mark for mark in self.marks if mark.mark_type == 0]
        durations = []
        for current, following in zip(entries, entries[1:]):
            if current.play_item_ref != following.play_item_ref:
                continue
            seconds = ((following.timestamp - current.timestamp) & _UINT32_MASK) // PTS_CLOCK
            if seconds >= min_secs:
                durations.append(seconds)
        return durations


def _clip_duration(bdmv_root: str | os.PathLike, clip_name: str, default_bitrate: int) -> int:
    """Estimated duration in seconds of one clip, from its stream file size."""
    path = os.path.join(bdmv_root, "STREAM", f"{clip_name}.m2ts")
    try:
        size = os.stat(path).st_size
    except OSError:
        return 0
    rate = clip_bitrate(bdmv_root, clip_name)
    if rate == 0:
        rate = int(default_bitrate / 8)  # bits/sec to bytes/sec
    if rate == 0:
        return 0
    return int(size / rate)


def pts_duration(in_time: int, out_time: int) -> int:
    """Seconds between two 45 kHz PTS timestamps, allowing for 32-bit wraparound."""
    return ((out_time - in_time) & _UINT32_MASK) // PTS_CLOCK


def format_duration(secs: int) -> str:
    """Format a duration in seconds as M:SS."""
    minutes = int(secs / 60)
    seconds = secs - minutes * 60
    return f"{minutes}:{seconds:02d}"


def _read_uint(stream: BinaryIO, layout: struct.Struct) -> int:
    """Read one big-endian integer, yielding 0 when the data runs out."""
    raw = stream.read(layout.size)
    if len(raw) < layout.size:
        return 0
    return layout.unpack(raw)[0]


def _read_play_item(stream: BinaryIO) -> PlayItem:
    item_start = stream.tell()
    item_length = _read_uint(stream, _U16)
    clip_raw = stream.read(PLAY_ITEM_CLIP_NAME_LEN).ljust(PLAY_ITEM_CLIP_NAME_LEN, b"\x00")
    stream.seek(PLAY_ITEM_TIMESTAMP_SKIP, os.SEEK_CUR)
    in_time = _read_uint(stream, _U32)
    out_time = _read_uint(stream, _U32)
    # Jump by the declared length, whatever the number of stream entries.
    stream.seek(item_start + 2 + item_length)
    return PlayItem(
        clip_name=clip_raw[:PLAY_ITEM_CLIP_NAME_USED].decode("latin-1"),
        in_time=in_time,
        out_time=out_time,
        duration=pts_duration(in_time, out_time),
    )


def _read_marks(stream: BinaryIO, mark_offset: int) -> list[PlaylistMark]:
    stream.seek(mark_offset)
    _read_uint(stream, _U32)  # section length
    mark_count = _read_uint(stream, _U16)
    marks = []
    for _ in range(mark_count):
        # mark_type(1) + play_item_ref(2) + timestamp(4) + es_pid(2) + duration(4)
        mark_type = _read_uint(stream, _U8)
        play_item_ref = _read_uint(stream, _U16)
        timestamp = _read_uint(stream, _U32)
        _read_uint(stream, _U16)
        duration = _read_uint(stream, _U32)
        marks.append(PlaylistMark(mark_type, play_item_ref, timestamp, duration))
    return marks


def parse_playlist(path: str | os.PathLike) -> Playlist:
    """Parse the .mpls file at path.

    Raises OSError if the file cannot be opened and BDMVFormatError if it is
    not a playlist file.
    """
    with open(path, "rb") as stream:
        if stream.read(4) != TYPE_INDICATOR_MPLS:
            raise BDMVFormatError("not an mpls file")

        stream.seek(PLAYLIST_OFFSET_ADDR)
        playlist_offset = _read_uint(stream, _U32)
        stream.seek(PLAYLIST_MARK_OFFSET_ADDR)
        mark_offset = _read_uint(stream, _U32)

        stream.seek(playlist_offset + PLAYLIST_HEADER_SKIP)
        item_count = _read_uint(stream, _U16)
        stream.seek(2, os.SEEK_CUR)  # number of sub-paths

        play_items = [_read_play_item(stream) for _ in range(item_count)]
        marks = _read_marks(stream, mark_offset) if mark_offset > 0 else []

    base = os.path.basename(os.fspath(path))
    name = base[: -len(".mpls")] if base.endswith(".mpls") else base
    return Playlist(name=name, play_items=play_items, marks=marks)


def load_all_playlists(bdmv_root: str | os.PathLike) -> list[Playlist]:
    """Parse every .mpls file in the PLAYLIST directory, sorted by name.

    Files that cannot be read or parsed are skipped.
    """
    pattern = os.path.join(glob.escape(os.fspath(bdmv_root)), "PLAYLIST", "*.mpls")
    playlists = []
    for path in glob.glob(pattern):
        try:
            playlists.append(parse_playlist(path))
        except (OSError, BDMVFormatError):
            continue
    playlists.sort(key=lambda playlist: playlist.name)
    return playlists