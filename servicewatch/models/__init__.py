"""
ServiceWatch - Data Models Package

Cache keys and service record helpers.
"""

from servicewatch.models.keys import CacheKey, EntityKind, ServiceId
from servicewatch.models.service import (
    ServiceRecord,
    client_emails,
    find_service,
    inbound_tags,
    merge_service_detail,
    same_id
)

__all__ = [
    "CacheKey",
    "EntityKind",
    "ServiceId",
    "ServiceRecord",
    "client_emails",
    "find_service",
    "inbound_tags",
    "merge_service_detail",
    "same_id"
]
