"""
ServiceWatch - API modules

This package contains the dashboard backend client and session handling.
"""

from servicewatch.api.gateway import (
    AsyncGatewayConnection,
    ServiceOperations,
    AuthOperations,
    AsyncGatewayClient,
    GatewayError,
    TransportError,
    AuthorizationError,
    ApplicationError
)
from servicewatch.api.session import SessionTokenStore

__all__ = [
    "AsyncGatewayConnection",
    "ServiceOperations",
    "AuthOperations",
    "AsyncGatewayClient",
    "GatewayError",
    "TransportError",
    "AuthorizationError",
    "ApplicationError",
    "SessionTokenStore"
]
