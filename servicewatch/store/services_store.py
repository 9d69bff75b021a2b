"""
ServiceWatch - Services Store

The one object the view layer talks to. It owns the service list, the
selection, the detail cache and the preload coordinator, and exposes them
through read-only properties and async operations.

Usage:
    store = ServicesStore(gateway_client)
    await store.load_services()
    store.schedule_preload()
    detail = await store.load_service_detail(service_id)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from servicewatch.api.gateway import ApplicationError, GatewayError
from servicewatch.cache.detail_cache import DetailCache
from servicewatch.models.keys import ServiceId
from servicewatch.models.service import ServiceRecord
from servicewatch.store.orchestrator import FetchOrchestrator
from servicewatch.store.preload import PreloadCoordinator, PreloadSummary
from servicewatch.store.state import Listener, StoreState, describe_failure
from servicewatch.utils.config import DEFAULT_WINDOW_DAYS

logger = logging.getLogger(__name__)


LIST_FAILED_MESSAGE = "Failed to load service list"
DELETE_FAILED_MESSAGE = "Delete failed, please try again"
RENAME_FAILED_MESSAGE = "Rename failed, please try again"


class ServicesStore:
    """
    Client-side state and cache for the service monitoring dashboard.

    A single instance lives for the whole session. Every detail fetch goes
    through the orchestrator; background population goes through the
    preload coordinator and never touches the selection.
    """

    def __init__(
        self,
        gateway,
        default_window_days: int = DEFAULT_WINDOW_DAYS,
        preload_concurrency: int = 10
    ):
        """
        Initialize the store.

        Args:
            gateway: AsyncGatewayClient or any object with the same coroutine methods
            default_window_days: Traffic window used when callers pass None
            preload_concurrency: Maximum gateway calls in flight during preload
        """
        self.gateway = gateway
        self.default_window_days = default_window_days

        self.cache = DetailCache()
        self.state = StoreState()
        self.orchestrator = FetchOrchestrator(gateway, self.cache, self.state, default_window_days)
        self.preloader = PreloadCoordinator(
            self.orchestrator,
            self.cache,
            self.state,
            self.load_services,
            max_concurrent=preload_concurrency
        )

        self._preload_task: Optional[asyncio.Task] = None
        self._preload_forced = False
        self._last_preload: Optional[PreloadSummary] = None

    # Read-only projections

    @property
    def services(self) -> List[ServiceRecord]:
        return self.state.services

    @property
    def selected_service(self) -> Optional[ServiceRecord]:
        return self.state.selected_service

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def is_preloading(self) -> bool:
        return self._preload_task is not None and not self._preload_task.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the name of each changed field."""
        return self.state.subscribe(listener)

    # Service list and selection

    async def load_services(self, force: bool = False) -> bool:
        """
        Load the service list unless it is already present.

        Args:
            force: Reload even when the list is non-empty

        Returns:
            True if the list is available afterwards
        """
        if self.state.services and not force:
            return True

        self.state.set_loading(True)
        self.state.set_error(None)
        try:
            services = await self.gateway.get_services()
            self.state.set_services(services)
            logger.info(f"[OK] Loaded {len(services)} services")
            return True
        except ApplicationError as error:
            logger.warning(f"[WARN] Service list rejected: {error}")
            self.state.set_error(str(error) or LIST_FAILED_MESSAGE)
        except GatewayError as error:
            logger.error(f"[ERROR] Failed to load service list: {error}")
            self.state.set_error(describe_failure(error, LIST_FAILED_MESSAGE))
        finally:
            self.state.set_loading(False)
        return False

    def select_service(self, service: Optional[ServiceRecord]) -> None:
        self.state.selection.select(service)

    # Detail fetches

    async def load_service_detail(
        self,
        service_id: ServiceId,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[ServiceRecord]:
        return await self.orchestrator.load_service_detail(service_id, window_days, force, silent)

    async def get_port_detail(
        self,
        service_id: ServiceId,
        tag: str,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[Any]:
        return await self.orchestrator.get_port_detail(service_id, tag, window_days, force, silent)

    async def get_user_detail(
        self,
        service_id: ServiceId,
        email: str,
        window_days: Optional[int] = None,
        force: bool = False,
        silent: bool = False
    ) -> Optional[Any]:
        return await self.orchestrator.get_user_detail(service_id, email, window_days, force, silent)

    # Preload and refresh

    async def preload_all_details(self, forced: bool = False) -> PreloadSummary:
        """Populate every cache region and wait for the whole fan-out to settle."""
        summary = await self.preloader.preload_all(forced=forced)
        self._last_preload = summary
        return summary

    def schedule_preload(self, forced: bool = False) -> asyncio.Task:
        """
        Start a preload in the background and return immediately.

        Must be called from a running event loop. A preload already in
        flight is returned instead of starting a second one, except that a
        forced request arriving during an unforced run is queued behind it.
        """
        if self.is_preloading:
            if not forced or self._preload_forced:
                logger.info("[INFO] Preload already running")
                return self._preload_task
            logger.info("[INFO] Forced preload queued behind the running preload")
            coroutine = self._preload_after(self._preload_task)
        else:
            coroutine = self.preload_all_details(forced=forced)

        self._preload_forced = forced
        self._preload_task = asyncio.create_task(coroutine)
        self._preload_task.add_done_callback(self._on_preload_done)
        return self._preload_task

    async def _preload_after(self, running: asyncio.Task) -> PreloadSummary:
        await asyncio.wait({running})
        return await self.preload_all_details(forced=True)

    def _on_preload_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("[WARN] Background preload cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[ERROR] Background preload failed: {error}")

    async def force_refresh_selected(self) -> Optional[ServiceRecord]:
        """Reload the service list and, if something is selected, its detail."""
        await self.load_services(force=True)
        selected = self.state.selected_service
        if selected is None:
            return None
        return await self.load_service_detail(selected.get("id"), self.default_window_days, force=True)

    async def force_refresh_all_data(self) -> PreloadSummary:
        """Drop every cached detail and preload everything again from the backend."""
        self.cache.clear_all()
        return await self.preload_all_details(forced=True)

    # Mutations

    async def delete_service(self, service_id: ServiceId) -> Dict[str, Any]:
        """
        Delete a service on the backend and drop it from the list.

        Cached details of the deleted service are left in place; nothing
        looks them up once the service is gone from the list.

        Returns:
            {"success": True} or {"success": False, "error": message}
        """
        try:
            await self.gateway.delete_service(service_id)
        except ApplicationError as error:
            logger.warning(f"[WARN] Delete of service {service_id} rejected: {error}")
            return {"success": False, "error": str(error) or DELETE_FAILED_MESSAGE}
        except GatewayError as error:
            logger.error(f"[ERROR] Delete of service {service_id} failed: {error}")
            return {"success": False, "error": DELETE_FAILED_MESSAGE}

        self.state.remove_service(service_id)
        logger.info(f"[OK] Deleted service {service_id}")
        return {"success": True}

    async def _rename(self, description: str, call: Callable[[], Awaitable[None]]) -> Dict[str, Any]:
        try:
            await call()
        except ApplicationError as error:
            logger.warning(f"[WARN] {description} rejected: {error}")
            return {"success": False, "error": str(error) or RENAME_FAILED_MESSAGE}
        except GatewayError as error:
            logger.error(f"[ERROR] {description} failed: {error}")
            return {"success": False, "error": describe_failure(error, RENAME_FAILED_MESSAGE)}
        logger.info(f"[OK] {description}")
        return {"success": True}

    async def update_service_custom_name(self, service_id: ServiceId, custom_name: str) -> Dict[str, Any]:
        return await self._rename(
            f"Renamed service {service_id}",
            lambda: self.gateway.update_service_custom_name(service_id, custom_name)
        )

    async def update_inbound_custom_name(self, service_id: ServiceId, tag: str, custom_name: str) -> Dict[str, Any]:
        return await self._rename(
            f"Renamed inbound {tag} of service {service_id}",
            lambda: self.gateway.update_inbound_custom_name(service_id, tag, custom_name)
        )

    async def update_client_custom_name(self, service_id: ServiceId, email: str, custom_name: str) -> Dict[str, Any]:
        return await self._rename(
            f"Renamed client {email} of service {service_id}",
            lambda: self.gateway.update_client_custom_name(service_id, email, custom_name)
        )

    def get_status(self) -> Dict[str, Any]:
        """Get current store status for monitoring."""
        selected = self.state.selected_service
        return {
            "service_count": len(self.state.services),
            "selected_service_id": selected.get("id") if selected else None,
            "loading": self.state.loading,
            "error": self.state.error,
            "cache": self.cache.get_stats(),
            "preloading": self.is_preloading,
            "last_preload": self._last_preload.to_dict() if self._last_preload else None
        }
