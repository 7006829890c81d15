"""Thresholds and tuning values used when analysing a disc's content."""

# Bitrate estimate for duration calculation, bits/sec (35 Mbps).
DEFAULT_BITRATE = 35_000_000

# Minimum stream duration to consider at all.
MIN_VIABLE_DURATION = 2 * 60

# Minimum duration to include in cluster analysis.
MIN_CLUSTER_DURATION = 10 * 60

# Maximum plausible number of episodes in one stream.
MAX_EPISODES_PER_STREAM = 8

# Relative tolerance for episode count detection.
EPISODE_RATIO_TOLERANCE = 0.15

# Fallback episode duration bounds.
MIN_EPISODE_DURATION = 18 * 60
MAX_EPISODE_DURATION = 50 * 60

# Ratio within which durations belong to the same cluster.
CLUSTER_TOLERANCE = 1.30

# Margins by which cluster bounds are widened.
CLUSTER_LOWER_BOUND = 0.80
CLUSTER_UPPER_BOUND = 1.20

# Detection of durations that are near-integer multiples of others.
MULTIPLE_DETECTION_TOLERANCE = 0.15
MIN_MULTIPLE = 3.0

# Disc metadata XML tags.
DI_NAME_OPEN_TAG = "<di:name>"
DI_NAME_CLOSE_TAG = "</di:name>"

# Disc metadata path relative to the BDMV root.
BDMT_ENGLISH_XML = "META/DL/bdmt_eng.xml"