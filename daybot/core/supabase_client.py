# daybot/core/supabase_client.py

from typing import Optional

from supabase import create_client, Client

from daybot.core.config import Settings

_service_client: Optional[Client] = None


def get_service_supabase(settings: Settings) -> Client:
    """
    Cliente con Service Role. El bot no tiene usuarios autenticados contra Supabase
    (la identidad es el wa_id), así que todo el acceso va por la service role.
    Se crea al primer uso y se reutiliza.
    """
    global _service_client
    if _service_client is not None:
        return _service_client

    url = (settings.supabase_url or "").rstrip("/")
    key = settings.supabase_service_role_key or ""
    if not url or not key:
        msg = [
            "Faltan SUPABASE_URL o SUPABASE_SERVICE_ROLE_KEY en el entorno",
            f"SUPABASE_URL: {'<vacío>' if not url else url}",
            f"SUPABASE_SERVICE_ROLE_KEY: {'<vacío>' if not key else '<presente>'}",
            "Sugerencia: usa STORE_BACKEND=memory para desarrollo local sin Supabase.",
        ]
        raise RuntimeError("\n".join(msg))

    _service_client = create_client(url, key)
    return _service_client
