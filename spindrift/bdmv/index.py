"""Parsing of index.bdmv, the disc's title table."""

from __future__ import annotations

import os
import re
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from .constants import (
    INDEX_APP_INFO_BODY_OFFSET,
    NAV_COMMAND_SIZE,
    OBJECT_TYPE_BDJ,
    OBJECT_TYPE_HDMV,
    OBJECT_TYPE_HDMV_FIRST_PLAY,
    OBJECT_TYPE_MASK,
    TYPE_INDICATOR_INDX,
    BDMVFormatError,
)

_LEADING_DECIMAL = re.compile(rb"[ \t\r\n]*\+?(\d+)")
_UINT16_MAX = 0xFFFF


@dataclass(frozen=True)
class TitleEntry:
    """A single title (or the first-play / top-menu entry) of the index."""

    object_type: int = 0
    access_type: int = 0
    object_id_ref: int = 0

    def is_hdmv(self) -> bool:
        """True if the title uses HDMV navigation."""
        return (
            self.object_type & OBJECT_TYPE_MASK == OBJECT_TYPE_HDMV
            or self.object_type == OBJECT_TYPE_HDMV_FIRST_PLAY
        )

    def is_bdj(self) -> bool:
        """True if the title uses BD-J (Java) navigation."""
        return self.object_type & OBJECT_TYPE_MASK == OBJECT_TYPE_BDJ

    def playlist_path(self, bdmv_root: str | os.PathLike) -> str | None:
        """Path of the playlist this title refers to, or None for non-HDMV titles."""
        if not self.is_hdmv():
            return None
        return os.path.join(bdmv_root, "PLAYLIST", f"{self.object_id_ref:05d}.mpls")


@dataclass
class IndexBDMV:
    """The parsed contents of an index.bdmv file."""

    version: str
    app_info_offset: int
    ext_data_offset: int
    first_play: TitleEntry
    top_menu: TitleEntry
    titles: list[TitleEntry] = field(default_factory=list)


def _read_uint(stream: BinaryIO, fmt: str) -> int:
    """Read one big-endian integer, yielding 0 when the data runs out."""
    size = struct.calcsize(fmt)
    raw = stream.read(size)
    if len(raw) < size:
        return 0
    return struct.unpack(fmt, raw)[0]


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    raw = stream.read(size)
    if len(raw) < size:
        reason = "EOF" if not raw else "unexpected EOF"
        raise BDMVFormatError(f"{what}: {reason}")
    return raw


def _parse_decimal(raw: bytes) -> int:
    """Leading decimal number of raw, or 0 if there is none or it overflows."""
    match = _LEADING_DECIMAL.match(raw)
    if match is None:
        return 0
    value = int(match.group(1))
    return value if value <= _UINT16_MAX else 0


def _read_short_entry(stream: BinaryIO, what: str) -> TitleEntry:
    raw = _read_exact(stream, 4, what)
    object_type, access_type, ref = struct.unpack(">BBH", raw)
    return TitleEntry(object_type, access_type, ref)


def _read_title_entry(stream: BinaryIO, what: str) -> TitleEntry:
    raw = _read_exact(stream, NAV_COMMAND_SIZE, what)
    object_type, access_type = raw[0], raw[1]
    kind = object_type & OBJECT_TYPE_MASK
    if kind == OBJECT_TYPE_HDMV:
        ref = _parse_decimal(raw[6:11])
    elif kind == OBJECT_TYPE_BDJ:
        (ref,) = struct.unpack(">H", raw[6:8])
    else:
        ref = 0
    return TitleEntry(object_type, access_type, ref)


def parse_index(path: str | os.PathLike) -> IndexBDMV:
    """Parse the index.bdmv file at path.

    Raises OSError if the file cannot be opened and BDMVFormatError if it is
    not an index file or its title table is truncated.
    """
    with open(path, "rb") as stream:
        type_indicator = stream.read(4)
        version = stream.read(4)
        if type_indicator != TYPE_INDICATOR_INDX:
            raise BDMVFormatError(f"not an index.bdmv file (got {type_indicator!r})")

        app_info_offset = _read_uint(stream, ">I")
        ext_data_offset = _read_uint(stream, ">I")

        stream.seek(app_info_offset + INDEX_APP_INFO_BODY_OFFSET)
        first_play = _read_short_entry(stream, "reading FirstPlay")
        top_menu = _read_short_entry(stream, "reading TopMenu")

        title_count = _read_uint(stream, ">H")
        titles = [
            _read_title_entry(stream, f"reading title {number}")
            for number in range(title_count)
        ]

    return IndexBDMV(
        version=version.decode("latin-1"),
        app_info_offset=app_info_offset,
        ext_data_offset=ext_data_offset,
        first_play=first_play,
        top_menu=top_menu,
        titles=titles,
    )