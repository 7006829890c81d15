"""Parsers for index, movie object, playlist and clip info files in a BDMV directory."""

__all__ = ["clpi", "constants", "index", "movieobject", "playlist"]