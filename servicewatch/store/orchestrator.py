"""
ServiceWatch - Fetch Orchestrator

Cache-aware fetches for service, port and user detail.

All three kinds follow the same steps: build the key, answer from cache
unless forced, otherwise ask the gateway and store the result. Failures
never escape: they are logged and reported as None so that a preload
fan-out keeps going when one leaf fails.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from servicewatch.api.gateway import GatewayError
from servicewatch.cache.detail_cache import DetailCache
from servicewatch.models.keys import CacheKey, ServiceId
from servicewatch.models.service import (
    ServiceRecord,
    find_service,
    merge_service_detail,
    same_id
)
from servicewatch.store.state import StoreState, describe_failure
from servicewatch.utils.config import DEFAULT_WINDOW_DAYS

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """
    Per-entity fetch operations over the detail cache.

    Args on every fetch:
        force: Skip the cache lookup and always call the gateway
        silent: Never touch the selection or the error field (preload)
    """

    def __init__(
        self,
        gateway,
        cache: DetailCache,
        state: StoreState,
        default_window_days: int = DEFAULT_WINDOW_DAYS
    ):
        """
        Initialize the orchestrator.

        Args:
            gateway: Client exposing get_service_detail/get_port_detail/get_user_detail
            cache: Detail cache shared with the preload coordinator
            state: Store state holding the service list and selection
            default_window_days: Window used when a caller passes None
        """
        self.gateway = gateway
        self.cache = cache
        self.state = state
        self.default_window_days = default_window_days

    def _window(self, window_days: Optional[int]) -> int:
        return self.default_window_days if window_days is None else window_days

    def _merge_base(self, service_id: ServiceId) -> ServiceRecord:
        """
        Record the detail payload is merged onto.

        The service list entry, overlaid with the current selection when it
        is the same service, so fields from earlier detail fetches survive.
        """
        base = find_service(self.state.services, service_id)
        selected = self.state.selection.current
        if selected is not None and same_id(selected.get("id"), service_id):
            base = merge_service_detail(base, selected)
        if base is None:
            base = {"id": service_id}
        return base

    def _key(self, build: Callable[..., CacheKey], silent: bool, *parts: Any) -> Optional[CacheKey]:
        """Build a cache key; an empty tag or email or a bad window gives None."""
        try:
            return build(*parts)
        except ValueError as error:
            logger.warning(f"[WARN] Fetch rejected: {error}")
            if not silent:
                self.state.set_error(str(error))
            return None

    async def _request(
        self,
        key: CacheKey,
        call: Callable[[], Awaitable[Any]],
        silent: bool
    ) -> Optional[Any]:
        """Run one gateway call, turning every failure into None."""
        try:
            return await call()
        except GatewayError as error:
            logger.warning(f"[WARN] Fetch {key.describe()} failed: {error}")
            if not silent:
                self.state.set_error(describe_failure(error))
        except Exception as error:
            logger.error(f"[ERROR] Unexpected failure fetching {key.describe()}: {error}", exc_info=True)
            if not silent:
                self.state.set_error(describe_failure(error))
        return None

    async def load_service_detail(
        self,
        service_id: ServiceId,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[ServiceRecord]:
        """
        Fetch one service's traffic detail, merged onto its known record.

        Unless silent, the result (cached or fresh) becomes the selection.

        Returns:
            Merged service record, or None if the fetch failed
        """
        key = self._key(CacheKey.service, silent, service_id, self._window(window_days))
        if key is None:
            return None

        if not force and self.cache.contains(key.kind, key):
            cached = self.cache.get(key.kind, key)
            if not silent:
                self.state.selection.select(cached)
            return cached

        # Base is fixed before the request suspends.
        base = self._merge_base(service_id)

        payload = await self._request(
            key,
            lambda: self.gateway.get_service_detail(service_id, key.window_days),
            silent
        )
        if payload is None:
            return None

        try:
            merged = merge_service_detail(base, payload)
        except (TypeError, ValueError) as error:
            logger.warning(f"[WARN] Unusable detail payload for {key.describe()}: {error}")
            return None

        self.cache.put(key.kind, key, merged)
        if not silent:
            self.state.selection.select(merged)
        logger.debug(f"Loaded {key.describe()}")
        return merged

    async def _fetch_leaf(
        self,
        key: CacheKey,
        call: Callable[[], Awaitable[Any]],
        force: bool,
        silent: bool
    ) -> Optional[Any]:
        """Port and user detail: raw payload in the cache, no selection."""
        if not force and self.cache.contains(key.kind, key):
            return self.cache.get(key.kind, key)

        payload = await self._request(key, call, silent)
        if payload is None:
            return None

        self.cache.put(key.kind, key, payload)
        return payload

    async def get_port_detail(
        self,
        service_id: ServiceId,
        tag: str,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[Any]:
        """Traffic detail for one inbound port, or None on failure."""
        key = self._key(CacheKey.port, silent, service_id, tag, self._window(window_days))
        if key is None:
            return None
        return await self._fetch_leaf(
            key,
            lambda: self.gateway.get_port_detail(service_id, tag, key.window_days),
            force,
            silent
        )

    async def get_user_detail(
        self,
        service_id: ServiceId,
        email: str,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[Any]:
        """Traffic detail for one client, or None on failure."""
        key = self._key(CacheKey.user, silent, service_id, email, self._window(window_days))
        if key is None:
            return None
        return await self._fetch_leaf(
            key,
            lambda: self.gateway.get_user_detail(service_id, email, key.window_days),
            force,
            silent
        )
