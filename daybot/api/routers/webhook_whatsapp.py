# daybot/api/routers/webhook_whatsapp.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from daybot.api.deps import get_services
from daybot.core.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["Webhooks - WhatsApp"])

# (wa_id, texto, nombre de perfil)
InboundText = Tuple[str, str, Optional[str]]


def _dicts(value: Any) -> List[Dict[str, Any]]:
    # lo que no sea lista de objetos se ignora
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _field(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def extract_text_messages(body: Dict[str, Any]) -> List[InboundText]:
    """
    Recorre entry[].changes[].value y devuelve los mensajes de texto entrantes.
    Los callbacks de estado (sent/delivered/read) y los mensajes no-texto se ignoran,
    igual que cualquier elemento con forma inesperada.
    """
    out: List[InboundText] = []
    for entry in _dicts(body.get("entry")):
        for change in _dicts(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            names = {
                c["wa_id"]: _field(c, "profile", "name")
                for c in _dicts(value.get("contacts"))
                if isinstance(c.get("wa_id"), str)
            }
            for m in _dicts(value.get("messages")):
                if m.get("type") != "text":
                    logger.debug("[webhook] ignoring %s message from %s", m.get("type"), m.get("from"))
                    continue
                sender = m.get("from")
                text = _field(m, "text", "body")
                if not isinstance(sender, str) or not isinstance(text, str) or not sender or not text:
                    continue
                out.append((sender, text, names.get(sender)))
    return out


def process_messages(services: Services, inbound: List[InboundText]) -> None:
    for user_id, text, first_name in inbound:
        try:
            replies = services.dispatcher.handle_text(user_id, text, first_name=first_name)
        except Exception:
            logger.exception("[webhook] dispatch failed for %s", user_id)
            continue
        for reply in replies:
            services.notifier.send(user_id, reply)


@router.get("")
async def verify(request: Request, services: Services = Depends(get_services)):
    """
    Meta hace GET para verificar el webhook.
    Lee los parámetros con punto (hub.mode, hub.verify_token, hub.challenge) desde query_params.
    """
    verify_token = services.settings.meta_wa_verify_token
    if not verify_token:
        raise HTTPException(status_code=500, detail="VERIFY_TOKEN not configured")

    params = request.query_params
    mode = params.get("hub.mode") or params.get("mode") or ""
    token = params.get("hub.verify_token") or params.get("verify_token") or ""
    challenge = params.get("hub.challenge") or params.get("challenge") or ""

    if mode == "subscribe" and token == verify_token:
        # challenge puede ser número o texto
        try:
            return int(challenge)
        except ValueError:
            return challenge
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("")
async def receive(
    request: Request,
    background: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """
    Meta envía aquí los mensajes/eventos. Siempre respondemos 200 (si no, Meta reintenta);
    los comandos se procesan y se contestan en background.
    """
    try:
        body = await request.json()
    except ValueError:
        logger.warning("[webhook] invalid json body")
        return {"received": False}
    if not isinstance(body, dict):
        return {"received": False}

    inbound = extract_text_messages(body)
    if inbound:
        background.add_task(process_messages, services, inbound)
    return {"received": True, "messages": len(inbound)}
