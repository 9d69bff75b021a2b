"""
ServiceWatch - Store State

Observable state read by the view layer: the service list, the selected
service, and the loading/error flags. Listeners are told which field
changed and read the new value through the properties.
"""

import logging
from typing import Callable, List, Optional

from servicewatch.api.gateway import ApplicationError, AuthorizationError
from servicewatch.models.keys import ServiceId
from servicewatch.models.service import ServiceRecord, find_service, same_id

logger = logging.getLogger(__name__)


Listener = Callable[[str], None]

AUTH_FAILED_MESSAGE = "Authentication failed, please log in again"
NETWORK_FAILED_MESSAGE = "Network error, please check the server connection"


def describe_failure(error: Exception, fallback: str = "Request failed") -> str:
    """
    Turn a gateway failure into a message fit for the user.

    Authorization failures and network failures get fixed messages; a
    success=false answer shows the backend's own message.
    """
    if isinstance(error, AuthorizationError):
        return AUTH_FAILED_MESSAGE
    if isinstance(error, ApplicationError):
        return str(error) or fallback
    return NETWORK_FAILED_MESSAGE


class SelectionState:
    """
    The single "currently selected service" slot.

    Only user navigation writes here; background preload never does.
    """

    def __init__(self, notify: Listener):
        self._current: Optional[ServiceRecord] = None
        self._notify = notify

    @property
    def current(self) -> Optional[ServiceRecord]:
        return self._current

    def select(self, service: Optional[ServiceRecord]) -> None:
        if service is self._current:
            return
        self._current = service
        self._notify("selected_service")

    def clear(self) -> None:
        self.select(None)

    def is_selected(self, service_id: ServiceId) -> bool:
        return self._current is not None and same_id(self._current.get("id"), service_id)


class StoreState:
    """
    Service list, selection and status flags behind read-only properties.

    Mutation goes through the set_*/remove_* methods so every change is
    announced to subscribers.
    """

    def __init__(self):
        self._services: List[ServiceRecord] = []
        self._loading = False
        self._error: Optional[str] = None
        self._listeners: List[Listener] = []
        self.selection = SelectionState(self._notify)

    @property
    def services(self) -> List[ServiceRecord]:
        """Snapshot of the service list; mutating it does not touch the store."""
        return list(self._services)

    @property
    def selected_service(self) -> Optional[ServiceRecord]:
        return self.selection.current

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def set_services(self, services: List[ServiceRecord]) -> None:
        self._services = list(services)
        self._notify("services")

    def remove_service(self, service_id: ServiceId) -> Optional[ServiceRecord]:
        """
        Drop the matching service from the list.

        Returns:
            The removed record, or None if no service had that id
        """
        removed = find_service(self._services, service_id)
        if removed is None:
            return None
        self._services = [s for s in self._services if s is not removed]
        self._notify("services")
        if self.selection.is_selected(service_id):
            self.selection.clear()
        return removed

    def set_loading(self, loading: bool) -> None:
        if loading != self._loading:
            self._loading = loading
            self._notify("loading")

    def set_error(self, error: Optional[str]) -> None:
        if error != self._error:
            self._error = error
            self._notify("error")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, field_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(field_name)
            except Exception as callback_error:
                logger.error(f"[ERROR] State listener failed on {field_name}: {callback_error}")
