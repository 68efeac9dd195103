# daybot/api/routers/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from daybot.api.deps import get_services, require_admin
from daybot.core.errors import StoreUnavailable
from daybot.core.services import Services

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/dispatcher", dependencies=[Depends(require_admin)])
def health_dispatcher(services: Services = Depends(get_services)):
    scheduler = services.scheduler
    try:
        sets = services.reminders.load_all()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")

    report = scheduler.last_report
    stats = {
        "users_with_reminders": len(sets),
        "scheduled": sum(len(s.reminders) for s in sets),
        "ticks": scheduler.ticks,
        "skipped_ticks": scheduler.skipped,
        "interval_seconds": scheduler.interval_seconds,
        "running": scheduler.running,
        "last_tick_at": scheduler.last_tick_at.isoformat() if scheduler.last_tick_at else None,
        "last_report": report.as_dict() if report else None,
    }
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat(), "stats": stats}


@router.post("/dispatcher/tick", dependencies=[Depends(require_admin)])
def run_dispatcher_tick(services: Services = Depends(get_services)):
    report = services.scheduler.run_tick()
    if report is None:
        return {"ran": False, "reason": "tick already running or failed"}
    return {"ran": True, "report": report.as_dict()}
