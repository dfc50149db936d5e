"""Order engine — data package (exchange REST transport)."""

from .rest_client import CLOBRestClient

__all__ = ["CLOBRestClient"]
