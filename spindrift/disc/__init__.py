"""Disc discovery, title metadata and episode playlist detection."""

__all__ = ["constants", "disc"]