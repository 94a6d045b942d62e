from fastapi import APIRouter, HTTPException, Request

from sitewatch.models import WatchdogStatus


router = APIRouter(tags=["status"])


def get_watchdog(request: Request):
    watchdog = getattr(request.app.state, "watchdog", None)
    if watchdog is None:
        raise HTTPException(status_code=503, detail="Watchdog not running")
    return watchdog


@router.get("/status", response_model=WatchdogStatus)
def get_watchdog_status(request: Request):
    return get_watchdog(request).get_status()
