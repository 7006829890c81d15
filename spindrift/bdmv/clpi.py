"""Reading the recording rate from clip information (.clpi) files."""

from __future__ import annotations

import os
import struct

from .constants import CLPI_MAX_RATE, CLPI_MIN_RATE, CLPI_TS_RATE_OFFSET

_CLPI_MAGIC = b"HDMV"


def clip_bitrate(bdmv_root: str | os.PathLike, clip_name: str) -> int:
    """Return the TS recording rate of a clip in bytes/sec, or 0 if unavailable.

    Zero is returned when the .clpi file is missing, is not an HDMV clip
    information file, is truncated, or holds a rate outside the plausible range.
    """
    path = os.path.join(bdmv_root, "CLIPINF", f"{clip_name}.clpi")
    try:
        with open(path, "rb") as handle:
            header = handle.read(8)
            if header[:4] != _CLPI_MAGIC:
                return 0
            handle.seek(CLPI_TS_RATE_OFFSET)
            raw = handle.read(4)
    except OSError:
        return 0

    if len(raw) < 4:
        return 0
    (rate,) = struct.unpack(">I", raw)
    if not CLPI_MIN_RATE <= rate <= CLPI_MAX_RATE:
        return 0
    return rate