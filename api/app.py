"""
FastAPI application factory for the backup control plane.

Usage:
    python main.py -c backup.json -s 8080

Endpoints:
    /addkey?key=<key>   enqueue a key (GET or POST)
    /backup             start a backup run in the background (GET or POST)
    /health             liveness and bucket name

When the config lists ``ips``, every other caller gets status 496.  The
caller address honours X-Forwarded-For only from TRUSTED_PROXIES.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.models import STATUS_IP_FORBIDDEN, HealthOut
from api.routes import backup, keys
from editlog import EditLog
from utils.config import AppConfig

_logger = logging.getLogger("editlog_api")


def _get_client_ip(request: Request, trusted_proxies: set[str]) -> str:
    """Return the real client IP, respecting X-Forwarded-For from trusted proxies."""
    direct_ip = request.client.host if request.client else "unknown"
    if not trusted_proxies or direct_ip not in trusted_proxies:
        return direct_ip
    xff = request.headers.get("X-Forwarded-For", "")
    if xff:
        # X-Forwarded-For: client, proxy1, proxy2; leftmost is the real client
        real_ip = xff.split(",")[0].strip()
        if real_ip:
            return real_ip
    return direct_ip


def check_ip(ip: str, allowed: list[str]) -> bool:
    return ip in allowed


def create_app(edit_log: EditLog, app_config: AppConfig | None = None) -> FastAPI:
    """Create and configure the control-plane application.

    Args:
        edit_log: The bucket this server enqueues keys for and backs up.
        app_config: Server settings; read from the environment if omitted.

    Returns:
        Configured FastAPI application instance.
    """
    cfg = app_config or AppConfig.from_env()
    started = time.time()

    app = FastAPI(
        title="Bucket Backup Agent",
        summary="Enqueue object keys and trigger resumable backups.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.edit_log = edit_log

    # ── Caller allow-list ─────────────────────────────────────────────────────

    @app.middleware("http")
    async def ip_allow_list(request: Request, call_next):
        """Reject callers outside the configured ``ips`` list."""
        allowed = edit_log.ips
        path = request.url.path
        if allowed and path != "/health":
            client_ip = _get_client_ip(request, cfg.trusted_proxies)
            if not check_ip(client_ip, allowed):
                _logger.error("IP %s is not allowed", client_ip,
                              extra={"client_ip": client_ip, "path": path})
                return JSONResponse(
                    status_code=STATUS_IP_FORBIDDEN,
                    content={"error": f"IP {client_ip} is not allowed",
                             "status_code": STATUS_IP_FORBIDDEN},
                )
        return await call_next(request)

    # ── Request logging ───────────────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        _logger.debug(
            "method=%s path=%s status=%d duration_ms=%.1f",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "status_code": 500},
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check", response_model=HealthOut)
    def health():
        return HealthOut(bucket=edit_log.bucket,
                         uptime_seconds=round(time.time() - started, 2))

    app.include_router(keys.router)
    app.include_router(backup.router)
    return app
