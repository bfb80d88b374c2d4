from __future__ import annotations

from fastapi import APIRouter

from quiniela_api.core.config import settings

router = APIRouter(tags=["Health"])


@router.get(settings.app.health_path)
def health_check() -> dict:
    """Liveness probe for load balancers and uptime monitors.

    Exempt from the general API rate limit, however often it is polled.
    """

    return {"status": "ok"}
