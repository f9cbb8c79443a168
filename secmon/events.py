"""Records kept by the monitor: request context, security events, flagged activities."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

FAILED_AUTHENTICATION = "failed_authentication"
UNAUTHORIZED_ACCESS = "unauthorized_access"
SUSPICIOUS_ORDER = "suspicious_order"
BLOCKED_IP_ACCESS = "blocked_ip_access"
LOCKED_USER_ACCESS = "locked_user_access"

FLAGGED = "flagged"
ACKNOWLEDGED = "acknowledged"
RESOLVED = "resolved"


def isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, timezone.utc).isoformat()


def _frozen(details) -> Mapping:
    return MappingProxyType(dict(details or {}))


@dataclass(frozen=True)
class RequestContext:
    """What the monitor needs to know about one inbound request."""

    source_address: str
    endpoint: str = ""
    http_method: str = ""
    account_id: str | None = None
    account_role: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class SecurityEvent:
    timestamp: float
    event_type: str
    source_address: str
    endpoint: str
    http_method: str
    account_id: str | None = None
    account_role: str | None = None
    user_agent: str | None = None
    details: Mapping = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "details", _frozen(self.details))

    @classmethod
    def from_context(cls, timestamp, event_type, context: RequestContext,
                     details=None):
        return cls(
            timestamp=timestamp,
            event_type=event_type,
            source_address=context.source_address,
            endpoint=context.endpoint,
            http_method=context.http_method,
            account_id=context.account_id,
            account_role=context.account_role,
            user_agent=context.user_agent,
            details=details,
        )


@dataclass(eq=False)
class SuspiciousActivity:
    """A flagged pattern.  Only `status` changes after creation."""

    timestamp: float
    activity_type: str
    source_address: str
    severity: str
    account_id: str | None = None
    details: Mapping = field(default_factory=dict)
    status: str = FLAGGED
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.details = _frozen(self.details)

    def acknowledge(self) -> None:
        self.status = ACKNOWLEDGED

    def resolve(self) -> None:
        self.status = RESOLVED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": isoformat(self.timestamp),
            "type": self.activity_type,
            "ip": self.source_address,
            "user_id": self.account_id,
            "severity": self.severity,
            "details": dict(self.details),
            "status": self.status,
        }
