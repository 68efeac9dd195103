# daybot/core/timeparse.py

import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from daybot.core.config import DEFAULT_TIME_FORMATS
from daybot.core.errors import ParseError

_SPACES = re.compile(r"\s+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def minute_floor(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def is_due(due_at: datetime, now: datetime) -> bool:
    """'Same or after' a resolución de minuto: 15:00:30 vence desde las 15:00:00."""
    return minute_floor(due_at) <= minute_floor(now)


def parse_time_of_day(text: str, formats: Sequence[str] = DEFAULT_TIME_FORMATS) -> time:
    cleaned = _SPACES.sub(" ", (text or "").strip()).upper()
    if not cleaned:
        raise ParseError("empty time")
    for fmt in formats:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    raise ParseError(f"Cannot parse time {text!r}")


def normalize_time(
    text: str,
    tz_name: str,
    *,
    now: Optional[datetime] = None,
    formats: Sequence[str] = DEFAULT_TIME_FORMATS,
    roll_forward: bool = False,
) -> datetime:
    """
    Convierte una hora libre ("3:00 PM") en un instante absoluto (UTC).

    La fecha es siempre "hoy" en la zona configurada. Si la hora ya pasó se queda
    anclada a hoy, salvo que roll_forward esté activo (entonces pasa a mañana).
    """
    zone = ZoneInfo(tz_name)
    local_now = (now or utcnow()).astimezone(zone)
    tod = parse_time_of_day(text, formats)

    local = datetime.combine(local_now.date(), tod, tzinfo=zone)
    if roll_forward and minute_floor(local) < minute_floor(local_now):
        # aritmética "wall clock" dentro de la misma zona
        local = local + timedelta(days=1)
    return local.astimezone(timezone.utc)


def format_time_of_day(dt: datetime, tz_name: str) -> str:
    return dt.astimezone(ZoneInfo(tz_name)).strftime("%I:%M %p")
