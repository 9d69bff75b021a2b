"""
ServiceWatch - Store Package

Selection state, cache-aware fetches, preload and the services store facade.
"""

from servicewatch.store.state import SelectionState, StoreState, describe_failure
from servicewatch.store.orchestrator import FetchOrchestrator
from servicewatch.store.preload import PreloadCoordinator, PreloadSummary
from servicewatch.store.services_store import ServicesStore

__all__ = [
    "SelectionState",
    "StoreState",
    "describe_failure",
    "FetchOrchestrator",
    "PreloadCoordinator",
    "PreloadSummary",
    "ServicesStore"
]
