import struct

import pytest

from spindrift.bdmv.constants import PTS_CLOCK, BDMVFormatError
from spindrift.bdmv.playlist import (
    PlayItem,
    Playlist,
    PlaylistMark,
    format_duration,
    load_all_playlists,
    parse_playlist,
    pts_duration,
)


def build_mpls(items=(), marks=(), item_padding=4, include_marks=True):
    """Build a minimal .mpls image from (clip, in, out) items and marks."""
    body = b""
    for clip, in_time, out_time in items:
        payload = (
            clip.encode("ascii")
            + b"M2TS"
            + b"\x00\x00"
            + b"\x00"
            + struct.pack(">II", in_time, out_time)
            + b"\xAA" * item_padding
        )
        body += struct.pack(">H", len(payload)) + payload
    playlist_offset = 16
    playlist = struct.pack(">I", 0) + b"\x00\x00" + struct.pack(">HH", len(items), 0) + body
    mark_offset = playlist_offset + len(playlist) if include_marks else 0
    mark_body = struct.pack(">H", len(marks)) + b"".join(
        struct.pack(">BHIHI", mark_type, ref, ts, 0, 0) for mark_type, ref, ts in marks
    )
    mark_section = struct.pack(">I", len(mark_body)) + mark_body
    return (
        b"MPLS0200"
        + struct.pack(">II", playlist_offset, mark_offset)
        + playlist
        + (mark_section if include_marks else b"")
    )


def make_root(tmp_path):
    for sub in ("PLAYLIST", "STREAM", "CLIPINF"):
        (tmp_path / sub).mkdir()
    return tmp_path


def write_stream(root, clip, size):
    with open(root / "STREAM" / f"{clip}.m2ts", "wb") as handle:
        handle.truncate(size)


def write_clpi(root, clip, rate):
    data = bytearray(0x40)
    data[0:8] = b"HDMV0200"
    data[0x34:0x38] = struct.pack(">I", rate)
    (root / "CLIPINF" / f"{clip}.clpi").write_bytes(bytes(data))


def item(clip, duration):
    return PlayItem(clip_name=clip, in_time=0, out_time=duration * PTS_CLOCK, duration=duration)


def test_parse_playlist_reads_items_and_name(tmp_path):
    path = tmp_path / "00001.mpls"
    path.write_bytes(build_mpls(items=[("01061", 0, 1500 * PTS_CLOCK), ("01062", 90000, 90000 + 30 * PTS_CLOCK)]))
    playlist = parse_playlist(path)
    assert playlist.name == "00001"
    assert [i.clip_name for i in playlist.play_items] == ["01061", "01062"]
    assert playlist.play_items[0].duration == 1500
    assert playlist.play_items[1].in_time == 90000
    assert playlist.play_items[1].duration == 30


def test_parse_playlist_honours_item_length(tmp_path):
    path = tmp_path / "00002.mpls"
    path.write_bytes(
        build_mpls(items=[("00010", 0, 100 * PTS_CLOCK), ("00011", 0, 200 * PTS_CLOCK)], item_padding=37)
    )
    playlist = parse_playlist(path)
    assert [i.clip_name for i in playlist.play_items] == ["00010", "00011"]
    assert [i.duration for i in playlist.play_items] == [100, 200]


def test_parse_playlist_reads_marks(tmp_path):
    path = tmp_path / "00003.mpls"
    marks = [(0, 0, 1000), (1, 0, 2000), (0, 1, 3000)]
    path.write_bytes(build_mpls(items=[("00001", 0, PTS_CLOCK)], marks=marks))
    playlist = parse_playlist(path)
    assert playlist.marks == [
        PlaylistMark(mark_type=0, play_item_ref=0, timestamp=1000, duration=0),
        PlaylistMark(mark_type=1, play_item_ref=0, timestamp=2000, duration=0),
        PlaylistMark(mark_type=0, play_item_ref=1, timestamp=3000, duration=0),
    ]


def test_parse_playlist_without_mark_offset_has_no_marks(tmp_path):
    path = tmp_path / "00004.mpls"
    path.write_bytes(build_mpls(items=[("00001", 0, PTS_CLOCK)], include_marks=False))
    assert parse_playlist(path).marks == []


def test_parse_playlist_rejects_other_files(tmp_path):
    path = tmp_path / "bad.mpls"
    path.write_bytes(b"INDX0200" + b"\x00" * 32)
    with pytest.raises(BDMVFormatError):
        parse_playlist(path)


def test_parse_playlist_missing_file(tmp_path):
    with pytest.raises(OSError):
        parse_playlist(tmp_path / "missing.mpls")


def test_pts_duration_simple_and_wraparound():
    assert pts_duration(0, 60 * PTS_CLOCK) == 60
    assert pts_duration(2**32 - PTS_CLOCK, PTS_CLOCK) == 2


def test_format_duration():
    assert format_duration(125) == "2:05"
    assert format_duration(0) == "0:00"
    assert format_duration(3600) == "60:00"


def test_chapter_count_single_episode_returns_all_marks():
    playlist = Playlist(name="x", marks=[PlaylistMark() for _ in range(7)])
    assert playlist.chapter_count() == 7


@pytest.mark.parametrize("total,count", [(10, 3), (12, 4), (5, 2), (2, 3)])
def test_chapter_count_shares_marks_across_episodes(total, count):
    marks = [PlaylistMark() for _ in range(total)]
    shares = [
        Playlist(name="x", marks=marks, episode_count=count, episode_index=index).chapter_count()
        for index in range(1, count + 1)
    ]
    assert sum(shares) == total
    assert shares == sorted(shares)
    assert max(shares) - min(shares) <= 1


def test_total_and_episode_duration():
    playlist = Playlist(
        name="x",
        play_items=[item("00001", 10), item("00002", 1200), item("00002", 1200), item("00003", 600)],
    )
    assert playlist.total_duration() == 10 + 1200 + 1200 + 600
    assert playlist.episode_duration() == 1200 + 600


def test_primary_clip_prefers_long_item():
    playlist = Playlist(name="x", play_items=[item("00009", 5), item("00002", 1200)])
    assert playlist.primary_clip() == "00002"


def test_primary_clip_falls_back_to_first_and_none():
    assert Playlist(name="x", play_items=[item("00009", 5), item("00008", 6)]).primary_clip() == "00009"
    assert Playlist(name="x").primary_clip() is None


def test_stream_path(tmp_path):
    playlist = Playlist(name="x", play_items=[item("00002", 1200)])
    assert playlist.stream_path(tmp_path) == str(tmp_path / "STREAM" / "00002.m2ts")
    assert Playlist(name="y").stream_path(tmp_path) is None


def test_estimate_duration_uses_default_bitrate(tmp_path):
    root = make_root(tmp_path)
    write_stream(root, "00001", 5000)
    write_stream(root, "00002", 3000)
    playlist = Playlist(name="x", play_items=[item("00001", 1), item("00002", 1), item("00001", 1)])
    # 8000 bits/sec is 1000 bytes/sec; the repeated clip counts once.
    assert playlist.estimate_duration(root, 8000) == 5 + 3


def test_estimate_duration_prefers_clpi_rate(tmp_path):
    root = make_root(tmp_path)
    rate = 2_000_000
    write_stream(root, "00001", rate * 120)
    write_clpi(root, "00001", rate)
    playlist = Playlist(name="x", play_items=[item("00001", 1)])
    assert playlist.estimate_duration(root, 8000) == 120


def test_estimate_duration_missing_stream_and_zero_rate(tmp_path):
    root = make_root(tmp_path)
    write_stream(root, "00001", 5000)
    playlist = Playlist(name="x", play_items=[item("00001", 1), item("00099", 1)])
    assert playlist.estimate_duration(root, 8000) == 5
    assert playlist.estimate_duration(root, 0) == 0


def test_substantial_clip_count(tmp_path):
    root = make_root(tmp_path)
    write_stream(root, "00001", 600_000)
    write_stream(root, "00002", 100_000)
    write_stream(root, "00003", 700_000)
    playlist = Playlist(
        name="x",
        play_items=[item("00001", 1), item("00002", 1), item("00003", 1), item("00003", 1)],
    )
    assert playlist.substantial_clip_count(root, 8000, 600) == 2
    assert playlist.substantial_clip_count(root, 8000, 0) == 3


def test_chapter_durations_filters_and_groups():
    marks = [
        PlaylistMark(0, 0, 0),
        PlaylistMark(1, 0, 5 * PTS_CLOCK),  # not an entry mark
        PlaylistMark(0, 0, 1300 * PTS_CLOCK),
        PlaylistMark(0, 0, 1330 * PTS_CLOCK),  # short gap of 30s
        PlaylistMark(0, 1, 2000 * PTS_CLOCK),  # different play item
        PlaylistMark(0, 1, 3400 * PTS_CLOCK),
    ]
    playlist = Playlist(name="x", marks=marks)
    assert playlist.chapter_durations(60) == [1300, 1400]
    assert playlist.chapter_durations(0) == [1300, 30, 1400]


def test_chapter_durations_needs_two_entry_marks():
    assert Playlist(name="x", marks=[PlaylistMark(0, 0, 0)]).chapter_durations(0) == []


def test_load_all_playlists_sorted_and_skips_bad(tmp_path):
    root = make_root(tmp_path)
    (root / "PLAYLIST" / "00005.mpls").write_bytes(build_mpls(items=[("00005", 0, PTS_CLOCK)]))
    (root / "PLAYLIST" / "00001.mpls").write_bytes(build_mpls(items=[("00001", 0, PTS_CLOCK)]))
    (root / "PLAYLIST" / "00003.mpls").write_bytes(b"JUNKJUNK")
    (root / "PLAYLIST" / "notes.txt").write_bytes(build_mpls())
    playlists = load_all_playlists(root)
    assert [p.name for p in playlists] == ["00001", "00005"]
    assert playlists[1].play_items[0].clip_name == "00005"


def test_load_all_playlists_missing_directory(tmp_path):
    assert load_all_playlists(tmp_path / "nowhere") == []