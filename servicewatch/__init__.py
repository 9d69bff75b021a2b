"""
ServiceWatch - Service Traffic Dashboard Store

This package provides the client-side state and cache layer for a service
monitoring dashboard: service list, per-service, per-port and per-client
traffic detail, with on-demand and background preload retrieval.
"""

__version__ = "26.10.19"
