"""Blu-ray disc structure parsing, episode detection and TMDB matching."""

__version__ = "0.1.0"