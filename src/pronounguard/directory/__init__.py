"""Pronoun directory: label lookup, caching and source fallback."""

from .cache import PronounCache
from .directory import PronounDirectory
from .models import CacheEntryStats, CacheStats, PronounRecord
from .sources import (
    CustomEndpointSource,
    PronounDBSource,
    PronounSource,
    SourceError,
    StaticSource,
    build_sources,
)

__all__ = [
    "CacheEntryStats",
    "CacheStats",
    "CustomEndpointSource",
    "PronounCache",
    "PronounDBSource",
    "PronounDirectory",
    "PronounRecord",
    "PronounSource",
    "SourceError",
    "StaticSource",
    "build_sources",
]
