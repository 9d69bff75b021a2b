"""
ServiceWatch - Async Dashboard API Client

This module provides asynchronous access to the dashboard backend using
aiohttp. Every response is a JSON envelope with a ``success`` flag plus
``data`` or ``message``.

Split into focused classes:
- AsyncGatewayConnection: Session management, bearer auth, retries, envelope unwrapping
- ServiceOperations: Service list, detail, deletion and rename endpoints
- AuthOperations: Login and token verification
- AsyncGatewayClient: Facade used by the services store
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from servicewatch.api.session import SessionTokenStore
from servicewatch.models.keys import ServiceId
from servicewatch.utils.config import DEFAULT_WINDOW_DAYS, GatewayConfig, OperationalConfig


logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for every failure raised by the gateway."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransportError(GatewayError):
    """Network failure, timeout or unexpected HTTP status after retries."""


class AuthorizationError(GatewayError):
    """
    The backend rejected the bearer token (HTTP 401).

    The session token has already been cleared when this is raised.
    """


class ApplicationError(GatewayError):
    """The request went through but the backend answered success=false."""


def _segment(value: Any) -> str:
    """Quote one URL path segment, including slashes."""
    return quote(str(value), safe="")


class AsyncGatewayConnection:
    """
    Manages the aiohttp session and request execution.

    Responsibilities:
    - Initialize and maintain aiohttp ClientSession
    - Inject the bearer token on every request
    - Retry transport failures, never 401 or success=false
    - Clear the session and notify on 401
    """

    def __init__(
        self,
        gateway_config: GatewayConfig,
        operational_config: OperationalConfig,
        token_store: SessionTokenStore,
        on_unauthorized: Optional[Callable[[], None]] = None
    ):
        """
        Initialize the connection manager.

        Args:
            gateway_config: Backend base URL and timeout
            operational_config: Retry settings
            token_store: Source of the bearer token
            on_unauthorized: Called after a 401 clears the session
        """
        self.config = gateway_config
        self.ops_config = operational_config
        self.token_store = token_store
        self.on_unauthorized = on_unauthorized
        self.session: Optional[aiohttp.ClientSession] = None

        base_url = gateway_config.base_url.rstrip("/")
        if not base_url.startswith("http"):
            base_url = f"http://{base_url}"
        self.base_url = base_url

        logger.info(f"[INFO] Dashboard API connection configured for {self.base_url}")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists, creating if needed."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self.session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=timeout
            )
            logger.debug("Created new aiohttp session")
        return self.session

    def build_headers(self) -> Dict[str, str]:
        """Per-request headers; the token may change between requests."""
        headers = {"Content-Type": "application/json"}
        token = self.token_store.load()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _handle_unauthorized(self, operation: str) -> AuthorizationError:
        logger.warning(f"[WARN] {operation} rejected with 401 - clearing session")
        self.token_store.clear()
        if self.on_unauthorized:
            try:
                self.on_unauthorized()
            except Exception as callback_error:
                logger.error(f"[ERROR] Unauthorized callback failed: {callback_error}")
        return AuthorizationError(f"{operation}: authentication required", status=401)

    async def execute_async(
        self,
        operation: str,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        raw: bool = False,
        session_request: bool = True
    ) -> Any:
        """
        Execute a request with retry logic and 401 handling.

        Args:
            operation: Description of the operation (for logging)
            method: HTTP method
            endpoint: Path relative to the base URL (e.g., /db/services)
            params: Optional query parameters
            json_body: Optional JSON request body
            raw: Return the response bytes instead of parsed JSON
            session_request: False for requests made without a session (login),
                where 401 is an ordinary rejection carrying a message

        Returns:
            Parsed JSON body, or bytes when raw is set

        Raises:
            AuthorizationError: On HTTP 401 of a session request, without retrying
            ApplicationError: On any other 4xx answer, with the server message
            TransportError: On network errors or 5xx after all retries
        """
        session = await self._ensure_session()
        url = f"{self.base_url}{endpoint}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self.ops_config.max_retries + 1):
            try:
                async with session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self.build_headers()
                ) as response:
                    if response.status == 401 and session_request:
                        raise self._handle_unauthorized(operation)

                    if response.status >= 500:
                        raise TransportError(
                            f"{operation}: server error {response.status}",
                            status=response.status
                        )

                    if response.status >= 400:
                        try:
                            body = await response.json(content_type=None)
                        except ValueError:
                            body = None
                        message = body.get("message") if isinstance(body, dict) else None
                        raise ApplicationError(
                            message or f"{operation}: request rejected ({response.status})",
                            status=response.status
                        )

                    if raw:
                        return await response.read()
                    return await response.json(content_type=None)

            except (AuthorizationError, ApplicationError):
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, TransportError, ValueError) as error:
                last_error = error
                logger.warning(
                    f"[WARN] {operation} failed (attempt {attempt}/{self.ops_config.max_retries}): {error}"
                )
                if attempt < self.ops_config.max_retries:
                    await asyncio.sleep(self.ops_config.retry_delay * attempt)

        logger.error(f"[ERROR] {operation} failed after {self.ops_config.max_retries} attempts")
        if isinstance(last_error, TransportError):
            raise last_error
        raise TransportError(f"{operation}: {last_error or 'unknown error'}")

    @staticmethod
    def unwrap(operation: str, body: Any) -> Any:
        """
        Return the ``data`` of a success envelope.

        Raises:
            ApplicationError: If the envelope reports success=false or is malformed
        """
        if not isinstance(body, dict) or "success" not in body:
            raise ApplicationError(f"{operation}: malformed response")
        if not body["success"]:
            raise ApplicationError(body.get("message") or f"{operation} failed")
        return body.get("data")

    async def close(self) -> None:
        """Close the aiohttp session and clean up resources."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("Closed aiohttp session")
        self.session = None


class ServiceOperations:
    """
    Service list, traffic detail, deletion and rename endpoints.
    """

    def __init__(self, connection: AsyncGatewayConnection):
        self.connection = connection

    async def _get_data(self, operation: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        body = await self.connection.execute_async(operation, "GET", endpoint, params=params)
        return self.connection.unwrap(operation, body)

    async def _get_required_data(self, operation: str, endpoint: str, params: Dict[str, Any]) -> Any:
        data = await self._get_data(operation, endpoint, params)
        if data is None:
            raise ApplicationError(f"{operation}: no data returned")
        return data

    async def get_services(self) -> List[Dict[str, Any]]:
        """Get the base record of every monitored service."""
        data = await self._get_data("Get services", "/db/services")
        return data or []

    async def get_service_detail(
        self,
        service_id: ServiceId,
        window_days: int = DEFAULT_WINDOW_DAYS
    ) -> Dict[str, Any]:
        """
        Get traffic detail for one service.

        Args:
            service_id: Service identifier
            window_days: Size of the traffic window in days

        Returns:
            Detail payload with inbound_traffics and client_traffics
        """
        data = await self._get_data(
            f"Get service {service_id} detail ({window_days}d)",
            f"/db/services/{_segment(service_id)}/traffic",
            {"days": window_days}
        )
        return data or {}

    async def get_port_detail(
        self,
        service_id: ServiceId,
        tag: str,
        window_days: int = DEFAULT_WINDOW_DAYS
    ) -> Any:
        """Get traffic detail for one inbound port of a service."""
        return await self._get_required_data(
            f"Get port {tag} of service {service_id} ({window_days}d)",
            f"/db/port-detail/{_segment(service_id)}/{_segment(tag)}",
            {"days": window_days}
        )

    async def get_user_detail(
        self,
        service_id: ServiceId,
        email: str,
        window_days: int = DEFAULT_WINDOW_DAYS
    ) -> Any:
        """Get traffic detail for one client of a service."""
        return await self._get_required_data(
            f"Get user {email} of service {service_id} ({window_days}d)",
            f"/db/user-detail/{_segment(service_id)}/{_segment(email)}",
            {"days": window_days}
        )

    async def delete_service(self, service_id: ServiceId) -> None:
        """Delete a service; raises on any failure."""
        operation = f"Delete service {service_id}"
        body = await self.connection.execute_async(
            operation, "DELETE", f"/db/services/{_segment(service_id)}"
        )
        self.connection.unwrap(operation, body)

    async def _put_custom_name(self, operation: str, endpoint: str, custom_name: str) -> None:
        body = await self.connection.execute_async(
            operation, "PUT", endpoint, json_body={"custom_name": custom_name}
        )
        self.connection.unwrap(operation, body)

    async def update_service_custom_name(self, service_id: ServiceId, custom_name: str) -> None:
        await self._put_custom_name(
            f"Rename service {service_id}",
            f"/db/services/{_segment(service_id)}/custom-name",
            custom_name
        )

    async def update_inbound_custom_name(self, service_id: ServiceId, tag: str, custom_name: str) -> None:
        await self._put_custom_name(
            f"Rename inbound {tag} of service {service_id}",
            f"/db/inbound/{_segment(service_id)}/{_segment(tag)}/custom-name",
            custom_name
        )

    async def update_client_custom_name(self, service_id: ServiceId, email: str, custom_name: str) -> None:
        await self._put_custom_name(
            f"Rename client {email} of service {service_id}",
            f"/db/client/{_segment(service_id)}/{_segment(email)}/custom-name",
            custom_name
        )

    async def download_port_history(self, service_id: ServiceId, tag: str) -> bytes:
        """Raw history export for one port."""
        return await self.connection.execute_async(
            f"Download port {tag} history",
            "GET",
            f"/db/download/port-history/{_segment(service_id)}/{_segment(tag)}",
            raw=True
        )

    async def download_user_history(self, service_id: ServiceId, email: str) -> bytes:
        """Raw history export for one client."""
        return await self.connection.execute_async(
            f"Download user {email} history",
            "GET",
            f"/db/download/user-history/{_segment(service_id)}/{_segment(email)}",
            raw=True
        )


class AuthOperations:
    """Login and token verification."""

    def __init__(self, connection: AsyncGatewayConnection):
        self.connection = connection

    async def login(self, password: str) -> str:
        """
        Exchange the dashboard password for a bearer token and store it.

        Returns:
            The issued token

        Raises:
            ApplicationError: Wrong password or missing token in the answer
        """
        body = await self.connection.execute_async(
            "Login",
            "POST",
            "/auth/login",
            json_body={"password": password},
            session_request=False
        )
        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise ApplicationError(message or "Login failed")
        token = body.get("token")
        if not token:
            raise ApplicationError("Login succeeded but no token was returned")
        self.connection.token_store.save(token)
        logger.info("[OK] Logged in")
        return token

    async def verify_token(self) -> bool:
        """True when the stored token is still accepted by the backend."""
        if not self.connection.token_store.has_token:
            return False
        try:
            body = await self.connection.execute_async("Verify token", "GET", "/auth/verify")
        except AuthorizationError:
            return False
        return bool(isinstance(body, dict) and body.get("success"))

    def logout(self) -> None:
        self.connection.token_store.clear()


class AsyncGatewayClient:
    """
    Async facade providing unified access to the dashboard backend.

    Usage:
        async with AsyncGatewayClient(gateway_config, ops_config, token_store) as client:
            services = await client.get_services()
    """

    def __init__(
        self,
        gateway_config: GatewayConfig,
        operational_config: OperationalConfig,
        token_store: SessionTokenStore,
        on_unauthorized: Optional[Callable[[], None]] = None
    ):
        """
        Initialize the client with all operation handlers.

        Args:
            gateway_config: Backend base URL and timeout
            operational_config: Retry settings
            token_store: Bearer token storage
            on_unauthorized: Called after a 401 clears the session
        """
        self.connection = AsyncGatewayConnection(
            gateway_config, operational_config, token_store, on_unauthorized
        )
        self.services = ServiceOperations(self.connection)
        self.auth = AuthOperations(self.connection)

        logger.info("[OK] AsyncGatewayClient initialized")

    async def __aenter__(self) -> "AsyncGatewayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Facade methods delegating to operation classes

    async def get_services(self) -> List[Dict[str, Any]]:
        return await self.services.get_services()

    async def get_service_detail(self, service_id: ServiceId, window_days: int = DEFAULT_WINDOW_DAYS) -> Dict[str, Any]:
        return await self.services.get_service_detail(service_id, window_days)

    async def get_port_detail(self, service_id: ServiceId, tag: str, window_days: int = DEFAULT_WINDOW_DAYS) -> Any:
        return await self.services.get_port_detail(service_id, tag, window_days)

    async def get_user_detail(self, service_id: ServiceId, email: str, window_days: int = DEFAULT_WINDOW_DAYS) -> Any:
        return await self.services.get_user_detail(service_id, email, window_days)

    async def delete_service(self, service_id: ServiceId) -> None:
        await self.services.delete_service(service_id)

    async def update_service_custom_name(self, service_id: ServiceId, custom_name: str) -> None:
        await self.services.update_service_custom_name(service_id, custom_name)

    async def update_inbound_custom_name(self, service_id: ServiceId, tag: str, custom_name: str) -> None:
        await self.services.update_inbound_custom_name(service_id, tag, custom_name)

    async def update_client_custom_name(self, service_id: ServiceId, email: str, custom_name: str) -> None:
        await self.services.update_client_custom_name(service_id, email, custom_name)

    async def download_port_history(self, service_id: ServiceId, tag: str) -> bytes:
        return await self.services.download_port_history(service_id, tag)

    async def download_user_history(self, service_id: ServiceId, email: str) -> bytes:
        return await self.services.download_user_history(service_id, email)

    async def login(self, password: str) -> str:
        return await self.auth.login(password)

    async def verify_token(self) -> bool:
        return await self.auth.verify_token()

    def logout(self) -> None:
        self.auth.logout()

    async def close(self) -> None:
        """Close all connections and clean up resources."""
        await self.connection.close()
        logger.debug("AsyncGatewayClient closed")
