from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load backend/.env before modules that read configuration at import time
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from assets.planner import ICON_SIZES, MASKABLE_ICON_SIZES, SPLASH_DIMENSIONS
from assets.synchronizer import ASSET_MAX_WORKERS, ASSET_PARTIAL_FAILURE_ALLOWED
from routes.api import router as api_router
from routes.pwa import router as pwa_router
from routes.webhooks import router as webhooks_router
from s3_client import S3_BUCKET

_LOG = logging.getLogger("uvicorn.error")

# Version for /health (Render sets RENDER_GIT_COMMIT)
VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"

app = FastAPI(title="Punchcard Assets Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)
app.include_router(api_router)
app.include_router(pwa_router)
app.include_router(webhooks_router)


@app.on_event("startup")
def startup_log() -> None:
    port = os.environ.get("PORT", "8010")
    host = os.environ.get("HOST", "127.0.0.1")
    _LOG.info(
        "Backend starting on http://%s:%s version=%s workers=%d partial_failure_allowed=%s",
        host, port, VERSION, ASSET_MAX_WORKERS, ASSET_PARTIAL_FAILURE_ALLOWED,
    )
    if not S3_BUCKET:
        _LOG.warning("S3_BUCKET is not set. Logo uploads and asset generation will fail.")
    if not os.environ.get("ADMIN_USER_ID"):
        _LOG.warning("ADMIN_USER_ID is not set. /api/generate-pwa-assets will reject every caller.")


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": VERSION,
        "storage_configured": bool(S3_BUCKET),
        "catalog": {
            "icons": len(ICON_SIZES),
            "maskable_icons": len(MASKABLE_ICON_SIZES),
            "splash_screens": len(SPLASH_DIMENSIONS),
        },
    }


@app.get("/version")
def version():
    return {
        "version": VERSION,
        "source_file": str(Path(__file__).resolve()),
        "render_service_name": os.getenv("RENDER_SERVICE_NAME", ""),
    }


def get_app() -> FastAPI:
    """
    Convenience accessor for ASGI servers.
    """
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8010,
        reload=True,
    )
