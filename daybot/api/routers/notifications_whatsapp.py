# daybot/api/routers/notifications_whatsapp.py

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from daybot.api.deps import get_services, require_admin
from daybot.core.services import Services

router = APIRouter(
    prefix="/api/notify/whatsapp",
    tags=["Notifications - WhatsApp"],
    dependencies=[Depends(require_admin)],
)


class SendTextIn(BaseModel):
    to: str = Field(..., description="wa_id / MSISDN internacional, ej: 5215551234567")
    message: str = Field(..., min_length=1)


@router.post("/text")
def send_whatsapp_text(payload: SendTextIn, services: Services = Depends(get_services)):
    # mismo canal que usan el bot y el sweeper
    if not services.notifier.send(payload.to, payload.message):
        raise HTTPException(status_code=502, detail="Delivery failed")
    return {"ok": True, "sent_to": payload.to}
