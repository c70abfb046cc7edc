# habitflow/routers/health.py
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from .. import __version__
from ..dependencies import get_stores
from ..stores import Stores

router = APIRouter(
    prefix="/api/health",
    tags=["Health"],
)


@router.get("")
def health_check(request: Request, stores: Stores = Depends(get_stores)):
    healthy = stores.habits.ping()
    uptime = time.monotonic() - request.app.state.started_at
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": f"{int(uptime)}s",
        "backend": request.app.state.settings.backend,
        "database": "connected" if healthy else "disconnected",
        "version": __version__,
    }
