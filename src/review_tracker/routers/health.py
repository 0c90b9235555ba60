import time

from fastapi import APIRouter

from ..clock import local_now

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Simple health check endpoint.

    ライブネス/レディネス確認用の簡易エンドポイント。
    """
    return {"status": "ok"}


@router.get("/api/health")
def api_health() -> dict[str, object]:
    """Health payload for the frontend: status, server time and process uptime (seconds)."""
    return {
        "status": "ok",
        "timestamp": local_now().isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }
