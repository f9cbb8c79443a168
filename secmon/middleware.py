"""Request guard — the boundary between the HTTP layer and the monitor.

Before a handler runs, the guard refuses requests from a blocked address
(429) or a locked account (423).  Requests that pass get a SecurityRecorder
at `request.state.security`; its four record_* methods are the only way a
handler reports security-relevant outcomes.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from secmon import metrics
from secmon.engine import SecurityMonitor
from secmon.events import BLOCKED_IP_ACCESS, LOCKED_USER_ACCESS, RequestContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the identity layer."""
    id: str
    role: str | None = None


@dataclass(frozen=True)
class BlockResponse:
    status_code: int
    body: dict


ADDRESS_BLOCKED = BlockResponse(429, {
    "success": False,
    "error": "Access temporarily blocked",
    "message": "Too many failed attempts. Please try again later.",
})
ACCOUNT_LOCKED = BlockResponse(423, {
    "success": False,
    "error": "Account temporarily locked",
    "message": "Too many failed attempts. Please wait before trying again.",
})


class SecurityRecorder:
    """Recorder hooks bound to one request's context."""

    def __init__(self, monitor: SecurityMonitor, context: RequestContext):
        self._monitor = monitor
        self.context = context

    def record_event(self, event_type, details=None):
        return self._monitor.record_event(event_type, self.context, details)

    def record_failed_auth(self, reason, identifier=None):
        return self._monitor.record_failed_auth(self.context, reason, identifier)

    def record_unauthorized_access(self, required_role, attempted_action):
        return self._monitor.record_unauthorized_access(
            self.context, required_role, attempted_action
        )

    def record_suspicious_order(self, suspicion_type, order=None):
        return self._monitor.record_suspicious_order(self.context, suspicion_type, order)


class RequestGuard:
    """Framework-neutral block check."""

    def __init__(self, monitor: SecurityMonitor):
        self.monitor = monitor

    def check(self, context: RequestContext) -> BlockResponse | None:
        """Return the response to send instead of running the handler, or None."""
        if self.monitor.is_ip_blocked(context.source_address):
            metrics.blocked_requests_total.labels("address").inc()
            self.monitor.record_event(BLOCKED_IP_ACCESS, context)
            return ADDRESS_BLOCKED
        if context.account_id is not None and self.monitor.is_user_locked(context.account_id):
            metrics.blocked_requests_total.labels("account").inc()
            self.monitor.record_event(LOCKED_USER_ACCESS, context)
            return ACCOUNT_LOCKED
        return None

    def recorder(self, context: RequestContext) -> SecurityRecorder:
        return SecurityRecorder(self.monitor, context)


def get_client_ip(request: Request) -> str:
    """Client IP from the connection. Proxy headers are the ASGI server's job."""
    if request.client is None:
        return "unknown"
    return request.client.host


def context_from_request(request: Request, principal: Principal | None = None) -> RequestContext:
    return RequestContext(
        source_address=get_client_ip(request),
        endpoint=request.url.path,
        http_method=request.method,
        account_id=str(principal.id) if principal is not None else None,
        account_role=principal.role if principal is not None else None,
        user_agent=request.headers.get("user-agent"),
    )


class RequestGuardMiddleware(BaseHTTPMiddleware):
    """Starlette/FastAPI middleware running the guard on every request.

    *identify* maps a request to the authenticated Principal (or None); it
    belongs to the identity layer, which this package does not implement.
    """

    def __init__(self, app, monitor: SecurityMonitor,
                 identify: Callable[[Request], Principal | None] | None = None):
        super().__init__(app)
        self.guard = RequestGuard(monitor)
        self.identify = identify

    async def dispatch(self, request, call_next):
        principal = self.identify(request) if self.identify is not None else None
        context = context_from_request(request, principal)

        blocked = self.guard.check(context)
        if blocked is not None:
            logger.info("Request refused status=%d ip=%s user=%s path=%s",
                        blocked.status_code, context.source_address,
                        context.account_id, context.endpoint)
            return JSONResponse(blocked.body, status_code=blocked.status_code)

        request.state.security = self.guard.recorder(context)
        return await call_next(request)
