# daybot/worker/sweeper.py
"""
Barrido de recordatorios vencidos (una pasada = un "tick").

Por cada usuario con recordatorios:
  1) toma el lock del usuario y relee su lista (un /remind que llegó después
     de load_all queda incluido, no se pierde),
  2) separa vencidos / pendientes a resolución de minuto,
  3) reescribe SIEMPRE la lista con los pendientes, condicionada a la versión
     leída; si otro proceso escribió entre medio, vuelve al paso 1,
  4) suelta el lock y manda los vencidos al Notifier en el pool de envío.

Si la reescritura falla no se envía nada: el siguiente tick lo reintenta y no hay
duplicados. Con la política "at_most_once" un envío fallido cuenta como entregado;
con "retry" se vuelve a encolar con backoff hasta MAX_DELIVERY_ATTEMPTS.
"""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from daybot.core.errors import StoreUnavailable
from daybot.core.timeparse import is_due, minute_floor, utcnow
from daybot.core.whatsapp import Notifier
from daybot.schemas.reminders import Reminder
from daybot.stores.reminders import ReminderStore

logger = logging.getLogger(__name__)

BACKOFF_MINUTES = [1, 5, 15, 60, 120, 240]

DELIVERED = "delivered"
FAILED = "failed"
RETRIED = "retried"
DROPPED = "dropped"


def backoff_delay(attempts: int) -> timedelta:
    """Exponential backoff simple (minutos)."""
    idx = min(max(attempts, 0), len(BACKOFF_MINUTES) - 1)
    return timedelta(minutes=BACKOFF_MINUTES[idx])


def partition(reminders: List[Reminder], now: datetime) -> Tuple[List[Reminder], List[Reminder]]:
    due: List[Reminder] = []
    remaining: List[Reminder] = []
    for r in reminders:
        if is_due(r.effective_due_at, now):
            due.append(r)
        else:
            remaining.append(r)
    return due, remaining


@dataclass
class SweepReport:
    now: datetime
    users_scanned: int = 0
    delivered: int = 0
    failed: int = 0
    retained: int = 0
    retried: int = 0
    dropped: int = 0
    user_errors: int = 0
    aborted: bool = False

    def as_dict(self) -> dict:
        return {
            "now": self.now.isoformat(),
            "users_scanned": self.users_scanned,
            "delivered": self.delivered,
            "failed": self.failed,
            "retained": self.retained,
            "retried": self.retried,
            "dropped": self.dropped,
            "user_errors": self.user_errors,
            "aborted": self.aborted,
        }


class ReminderSweeper:
    def __init__(
        self,
        store: ReminderStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = utcnow,
        policy: str = "at_most_once",
        max_attempts: int = 5,
        executor: Optional[Executor] = None,
        workers: int = 4,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._policy = policy
        self._max_attempts = max_attempts
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="reminder-delivery"
        )

    def sweep_once(self, now: Optional[datetime] = None) -> SweepReport:
        now = minute_floor((now or self._clock()).astimezone(timezone.utc))
        report = SweepReport(now=now)

        try:
            sets = self._store.load_all()
        except Exception as e:
            logger.error("[sweeper] load_all failed, tick aborted: %s", e)
            report.aborted = True
            return report

        pending: List[Future] = []
        for rs in sets:
            report.users_scanned += 1
            try:
                due = self._sweep_user(rs.user_id, now, report)
            except StoreUnavailable as e:
                report.user_errors += 1
                logger.error("[sweeper] user %s skipped this tick: %s", rs.user_id, e)
                continue
            except Exception:
                report.user_errors += 1
                logger.exception("[sweeper] unexpected error for user %s", rs.user_id)
                continue

            for r in due:
                pending.append(self._executor.submit(self._deliver, rs.user_id, r, now))

        if pending:
            wait(pending)
        for f in pending:
            outcome = f.result()
            setattr(report, outcome, getattr(report, outcome) + 1)

        logger.info(
            "[sweeper] tick %s users=%d delivered=%d failed=%d retried=%d retained=%d errors=%d",
            now.isoformat(), report.users_scanned, report.delivered, report.failed,
            report.retried, report.retained, report.user_errors,
        )
        return report

    def _sweep_user(self, user_id: str, now: datetime, report: SweepReport) -> List[Reminder]:
        def split(current: List[Reminder]):
            due, remaining = partition(current, now)
            return remaining, (due, len(remaining))

        # relectura + reescritura condicional a la versión: si entra un /remind
        # (de este u otro proceso) se repite el partition con la lista nueva
        due, retained = self._store.update(user_id, split)
        report.retained += retained
        return due

    def _deliver(self, user_id: str, reminder: Reminder, now: datetime) -> str:
        try:
            ok = self._notifier.send(user_id, f"Reminder: {reminder.text}")
        except Exception:
            logger.exception("[sweeper] notifier raised for user %s", user_id)
            ok = False
        if ok:
            return DELIVERED

        if self._policy != "retry":
            logger.warning("[sweeper] reminder for %s not delivered, dropped: %r", user_id, reminder.text)
            return FAILED

        attempts = reminder.attempts + 1
        if attempts >= self._max_attempts:
            logger.error(
                "[sweeper] reminder for %s failed %d times, giving up: %r",
                user_id, attempts, reminder.text,
            )
            return DROPPED

        retry = reminder.model_copy(
            update={"attempts": attempts, "next_retry_at": now + backoff_delay(attempts)}
        )
        try:
            self._store.append(user_id, retry)
        except Exception as e:
            logger.error("[sweeper] could not requeue reminder for %s: %s", user_id, e)
            return DROPPED
        return RETRIED

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
