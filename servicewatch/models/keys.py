"""
ServiceWatch - Cache Keys

Typed composite keys for the detail caches. Keys compare and hash by value,
so an email or tag containing separator characters can never collide with
another identity. Service ids are held as strings: the list endpoint reports
numeric ids while ids from a URL or the command line arrive as text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from servicewatch.utils.config import DEFAULT_WINDOW_DAYS


ServiceId = Union[int, str]


class EntityKind(Enum):
    """The three cached entity kinds, one cache region each."""
    SERVICE_DETAIL = "service-detail"
    PORT_DETAIL = "port-detail"
    USER_DETAIL = "user-detail"


@dataclass(frozen=True)
class CacheKey:
    """
    Identity of one cached resource.

    Two fetches with equal keys are the same logical resource. The
    sub-identity is the inbound tag for port detail, the client email for
    user detail and None for service detail. `1` and `"1"` name the same
    service and build equal keys.
    """
    kind: EntityKind
    service_id: str
    sub_identity: Optional[str] = None
    window_days: int = DEFAULT_WINDOW_DAYS

    def __post_init__(self):
        object.__setattr__(self, "service_id", str(self.service_id))
        needs_sub = self.kind is not EntityKind.SERVICE_DETAIL
        if needs_sub and not self.sub_identity:
            raise ValueError(f"{self.kind.value} keys need a tag or email")
        if not needs_sub and self.sub_identity is not None:
            raise ValueError("service-detail keys take no sub-identity")
        if self.window_days < 1:
            raise ValueError(f"window_days must be positive, got {self.window_days}")

    @classmethod
    def service(cls, service_id: ServiceId, window_days: int = DEFAULT_WINDOW_DAYS) -> "CacheKey":
        return cls(EntityKind.SERVICE_DETAIL, service_id, None, window_days)

    @classmethod
    def port(cls, service_id: ServiceId, tag: str, window_days: int = DEFAULT_WINDOW_DAYS) -> "CacheKey":
        return cls(EntityKind.PORT_DETAIL, service_id, tag, window_days)

    @classmethod
    def user(cls, service_id: ServiceId, email: str, window_days: int = DEFAULT_WINDOW_DAYS) -> "CacheKey":
        return cls(EntityKind.USER_DETAIL, service_id, email, window_days)

    def describe(self) -> str:
        """Human-readable form for log lines."""
        parts = [self.kind.value, str(self.service_id)]
        if self.sub_identity is not None:
            parts.append(self.sub_identity)
        parts.append(f"{self.window_days}d")
        return "/".join(parts)
