"""Constants describing the on-disc BDMV structures, and the format error."""

# File type indicators found in the first four bytes of each file.
TYPE_INDICATOR_INDX = b"INDX"
TYPE_INDICATOR_MOBJ = b"MOBJ"
TYPE_INDICATOR_MPLS = b"MPLS"

# index.bdmv: the title table starts after length(4) + reserved(16).
INDEX_APP_INFO_BODY_OFFSET = 4 + 16

# Title entry object types.
OBJECT_TYPE_HDMV_FIRST_PLAY = 0x40
OBJECT_TYPE_HDMV = 0xA0
OBJECT_TYPE_BDJ = 0x60
OBJECT_TYPE_MASK = 0xE0

# MovieObject.bdmv: absolute offset of the movie object table.
MOVIE_OBJECT_TABLE_OFFSET = 0x28

# MovieObject flags.
MOBJ_FLAG_RESUME_INTENTION = 0x8000
MOBJ_FLAG_MENU_CALL_MASK = 0x4000
MOBJ_FLAG_TITLE_SEARCH_MASK = 0x2000

# Size of one navigation command (and of one index title entry) in bytes.
NAV_COMMAND_SIZE = 12

# Playlist (.mpls) parsing.
PLAYLIST_OFFSET_ADDR = 0x08
PLAYLIST_MARK_OFFSET_ADDR = 0x0C
PLAYLIST_HEADER_SKIP = 4 + 2  # length(4) + reserved(2)
PLAY_ITEM_CLIP_NAME_LEN = 9
PLAY_ITEM_CLIP_NAME_USED = 5  # only the numeric part, e.g. "01061"
# Between the clip name/codec and IN_time: flags(2) + ref_to_stc_id(1).
PLAY_ITEM_TIMESTAMP_SKIP = 3

# PTS clock rate for Blu-ray (45 kHz).
PTS_CLOCK = 45000

# CLPI: absolute file offset of TS_recording_rate.
CLPI_TS_RATE_OFFSET = 0x34

# Sanity bounds for TS_recording_rate (bytes/sec).
CLPI_MIN_RATE = 1_250_000  # 10 Mbps
CLPI_MAX_RATE = 50_000_000  # 400 Mbps


class BDMVFormatError(ValueError):
    """Raised when a BDMV file is not of the expected type or is truncated."""