"""Order engine — storage package."""

from .metadata_cache import (
    DEFAULT_TTL_SECONDS,
    MetadataCache,
    MetadataFetcher,
    MetadataStore,
    SQLiteMetadataStore,
)

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "MetadataCache",
    "MetadataFetcher",
    "MetadataStore",
    "SQLiteMetadataStore",
]
