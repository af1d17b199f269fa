"""Discovery, deduplication and confidence scoring of aesthetic and dental providers."""

__version__ = "0.1.0"
