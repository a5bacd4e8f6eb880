# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
FastAPI application.

Responsibilities
----------------
* Instantiate the FastAPI app.
* Register CORS and request-logging middleware.
* Render every ``TermbaseError`` as ``{"detail": ...}`` with its status.
* Mount the auth and admin routers.
* Create missing tables on startup.
* Expose a /health endpoint for container liveness checks.

Production note
---------------
CORS origins come from settings (``CORS_ORIGINS``) and default to
localhost only.
"""

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from admin.router import router as admin_router
from auth.router import router as auth_router
from core.config import settings
from core.exceptions import TermbaseError
from core.logger import logger
from database import init_db

app = FastAPI(title="Termbase", version="1.0.0")

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Request bodies (login payload, password fields) are never echoed.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


app.add_middleware(_RequestLogMiddleware)


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------


@app.exception_handler(TermbaseError)
async def _termbase_error(request: Request, exc: TermbaseError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(admin_router)


@app.on_event("startup")
async def _on_startup():
    init_db()
    logger.info("Termbase service starting up")


@app.on_event("shutdown")
async def _on_shutdown():
    logger.info("Termbase service shutting down")


@app.get("/health")
def health():
    return {"status": "ok"}
