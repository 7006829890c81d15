"""TMDB API client, metadata records and disc-to-season matching helpers."""

__all__ = ["client", "models"]