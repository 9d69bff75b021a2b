"""
ServiceWatch - Preload Coordinator

Eagerly fills the detail cache for every service, port and client so that
later navigation is served without network round trips.

Two-level fan-out:
1. Service detail for every service in the list, concurrently
2. Once a service's detail arrives, port and user detail for every inbound
   tag and client email it lists, concurrently

All fetches are silent (the selection is never touched) and bounded by a
semaphore. A failing leaf only leaves its own cache entry empty.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from servicewatch.cache.detail_cache import DetailCache
from servicewatch.models.service import ServiceRecord, client_emails, inbound_tags
from servicewatch.store.orchestrator import FetchOrchestrator
from servicewatch.store.state import StoreState

logger = logging.getLogger(__name__)


@dataclass
class PreloadSummary:
    """Per-kind outcome counts of one preload run."""
    forced: bool = False
    service_count: int = 0
    service_details_ok: int = 0
    service_details_failed: int = 0
    ports_ok: int = 0
    ports_failed: int = 0
    users_ok: int = 0
    users_failed: int = 0
    failed_services: List[Any] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_failed(self) -> int:
        return self.service_details_failed + self.ports_failed + self.users_failed

    @property
    def total_ok(self) -> int:
        return self.service_details_ok + self.ports_ok + self.users_ok

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for status reporting."""
        return {
            "forced": self.forced,
            "service_count": self.service_count,
            "service_details_ok": self.service_details_ok,
            "service_details_failed": self.service_details_failed,
            "ports_ok": self.ports_ok,
            "ports_failed": self.ports_failed,
            "users_ok": self.users_ok,
            "users_failed": self.users_failed,
            "failed_services": list(self.failed_services),
            "duration_seconds": round(self.duration_seconds, 3)
        }


class PreloadCoordinator:
    """
    Walks the service list and silently populates all three cache regions.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        cache: DetailCache,
        state: StoreState,
        load_services: Callable[..., Awaitable[Any]],
        max_concurrent: int = 10
    ):
        """
        Initialize the preload coordinator.

        Args:
            orchestrator: Fetch orchestrator used for every detail fetch
            cache: Detail cache, fully cleared by a forced preload
            state: Store state providing the service list
            load_services: Coroutine function loading the list, called with force=True
            max_concurrent: Maximum gateway calls in flight at once
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.orchestrator = orchestrator
        self.cache = cache
        self.state = state
        self.load_services = load_services
        self.max_concurrent = max_concurrent

    async def preload_all(self, forced: bool = False, window_days: Optional[int] = None) -> PreloadSummary:
        """
        Fetch every derivable detail into the cache.

        Args:
            forced: Clear all cache regions first and bypass the cache on every fetch
            window_days: Traffic window; the orchestrator default when None

        Returns:
            Outcome counts; individual failures never raise
        """
        start_time = time.time()
        summary = PreloadSummary(forced=forced)

        if forced:
            self.cache.clear_all()

        if forced or not self.state.services:
            await self.load_services(force=True)

        services = self.state.services
        summary.service_count = len(services)
        if not services:
            logger.warning("[WARN] Preload skipped - no services available")
            summary.duration_seconds = time.time() - start_time
            return summary

        logger.info(
            f"[...] Preloading details for {len(services)} services "
            f"(forced={forced}, max concurrent={self.max_concurrent})"
        )

        semaphore = asyncio.Semaphore(self.max_concurrent)
        results = await asyncio.gather(
            *(self._preload_service(service, forced, window_days, semaphore, summary) for service in services),
            return_exceptions=True
        )
        for service, result in zip(services, results):
            if isinstance(result, Exception):
                logger.error(f"[ERROR] Preload of service {service.get('id')} aborted: {result}")

        summary.duration_seconds = time.time() - start_time
        logger.info(
            f"[OK] Preload complete in {summary.duration_seconds:.1f}s: "
            f"{summary.service_details_ok}/{summary.service_count} services, "
            f"{summary.ports_ok} ports, {summary.users_ok} users "
            f"({summary.total_failed} failed)"
        )
        return summary

    async def _bounded(self, semaphore: asyncio.Semaphore, fetch: Callable[[], Awaitable[Any]]) -> Any:
        async with semaphore:
            return await fetch()

    async def _preload_service(
        self,
        service: ServiceRecord,
        forced: bool,
        window_days: Optional[int],
        semaphore: asyncio.Semaphore,
        summary: PreloadSummary
    ) -> None:
        """Fetch one service's detail, then all of its ports and clients."""
        service_id = service.get("id")

        # Semaphore is held for the detail fetch only, never across the fan-out.
        detail = await self._bounded(
            semaphore,
            lambda: self.orchestrator.load_service_detail(
                service_id, window_days, force=forced, silent=True
            )
        )
        if detail is None:
            summary.service_details_failed += 1
            summary.failed_services.append(service_id)
            return
        summary.service_details_ok += 1

        tags = inbound_tags(detail)
        emails = client_emails(detail)
        if not tags and not emails:
            return

        port_fetches = [
            self._bounded(
                semaphore,
                lambda tag=tag: self.orchestrator.get_port_detail(
                    service_id, tag, window_days, force=forced, silent=True
                )
            )
            for tag in tags
        ]
        user_fetches = [
            self._bounded(
                semaphore,
                lambda email=email: self.orchestrator.get_user_detail(
                    service_id, email, window_days, force=forced, silent=True
                )
            )
            for email in emails
        ]

        results = await asyncio.gather(*port_fetches, *user_fetches, return_exceptions=True)

        for result in results[:len(tags)]:
            if result is None or isinstance(result, Exception):
                summary.ports_failed += 1
            else:
                summary.ports_ok += 1
        for result in results[len(tags):]:
            if result is None or isinstance(result, Exception):
                summary.users_failed += 1
            else:
                summary.users_ok += 1

        logger.debug(
            f"Preloaded service {service_id}: {len(tags)} ports, {len(emails)} users"
        )
