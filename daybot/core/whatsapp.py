# daybot/core/whatsapp.py

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from daybot.core.config import Settings
from daybot.core.errors import DeliveryFailed

logger = logging.getLogger(__name__)


class WhatsAppError(DeliveryFailed):
    pass


class Notifier(Protocol):
    def send(self, user_id: str, text: str) -> bool: ...


class WhatsAppClient:
    """Wrapper mínimo de la Cloud API (Graph) para mensajes de texto."""

    def __init__(self, settings: Settings, http: Optional[httpx.Client] = None) -> None:
        self._token = settings.meta_wa_token
        self._phone_id = settings.meta_wa_phone_id
        self._version = settings.meta_wa_api_version
        self._http = http or httpx.Client(timeout=settings.http_timeout_seconds)

    def _graph_url(self, path: str) -> str:
        return f"https://graph.facebook.com/{self._version}/{path.lstrip('/')}"

    def send_text(self, to_e164: str, body_text: str) -> Dict[str, Any]:
        if not self._token or not self._phone_id:
            raise WhatsAppError("Faltan META_WA_TOKEN/META_WA_PHONE_ID en .env")

        payload = {
            "messaging_product": "whatsapp",
            "to": to_e164,
            "type": "text",
            "text": {"body": body_text},
        }
        headers = {"Authorization": f"Bearer {self._token}"}

        try:
            r = self._http.post(self._graph_url(f"{self._phone_id}/messages"), json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise WhatsAppError(f"WA transport error: {e}") from e
        try:
            data = r.json()
        except ValueError:
            data = {"error": "Invalid JSON response", "text": r.text}
        if r.status_code >= 300:
            raise WhatsAppError(f"WA error {r.status_code}: {data}")
        return data

    def close(self) -> None:
        self._http.close()


class WhatsAppNotifier:
    """Notifier del bot: user_id es el wa_id del usuario. Nunca lanza."""

    def __init__(self, client: WhatsAppClient) -> None:
        self._client = client

    def send(self, user_id: str, text: str) -> bool:
        try:
            self._client.send_text(user_id, text)
            return True
        except WhatsAppError as e:
            logger.warning("[whatsapp] delivery to %s failed: %s", user_id, e)
            return False

    def close(self) -> None:
        self._client.close()


class LogNotifier:
    """Solo registra en el log; para desarrollo sin credenciales de Meta."""

    def send(self, user_id: str, text: str) -> bool:
        logger.info("[whatsapp:log] to=%s text=%r", user_id, text)
        return True

    def close(self) -> None:
        pass
