"""
ServiceWatch - Cache Module

Keeps fetched detail payloads in memory for the lifetime of the store so
navigation between services, ports and clients needs no network round trip.
"""

from servicewatch.cache.detail_cache import DetailCache

__all__ = [
    "DetailCache",
]
