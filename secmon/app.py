"""HTTP service around one SecurityMonitor.

Mounts the request guard, the admin endpoints (report, manual unblock)
and Prometheus /metrics.  Business routes are added by the embedding
service onto the returned app; they reach the recorder hooks through
`request.state.security`.
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from prometheus_client import make_asgi_app

from secmon.engine import SecurityMonitor
from secmon.middleware import RequestGuardMiddleware
from secmon.reporting import DEFAULT_RANGE

router = APIRouter(prefix="/security", tags=["security"])


def get_monitor(request: Request) -> SecurityMonitor:
    return request.app.state.monitor


@router.get("/report")
def security_report(request: Request, time_range: str = DEFAULT_RANGE):
    """Aggregate statistics for the last hour / day / week."""
    return get_monitor(request).report(time_range)


@router.post("/reset/ip/{address}")
def reset_ip(address: str, request: Request):
    """Manually unblock a source address. Idempotent."""
    get_monitor(request).reset_address_attempts(address)
    return {"success": True, "ip": address}


@router.post("/reset/user/{account_id}")
def reset_user(account_id: str, request: Request):
    """Manually unlock an account. Idempotent."""
    get_monitor(request).reset_account_attempts(account_id)
    return {"success": True, "user_id": account_id}


def create_app(monitor: SecurityMonitor, identify=None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the retention sweeper for the lifetime of the app."""
        monitor.start()
        try:
            yield
        finally:
            monitor.stop()

    app = FastAPI(title="Security Monitor", version="0.1.0", lifespan=lifespan)
    app.state.monitor = monitor
    app.add_middleware(RequestGuardMiddleware, monitor=monitor, identify=identify)
    app.include_router(router)
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "secmon"}

    return app
