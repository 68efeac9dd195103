# daybot/worker/reminder_loop.py
import logging
import threading
import time
from datetime import datetime
from typing import Optional

from daybot.worker.sweeper import ReminderSweeper, SweepReport

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Ejecuta sweeper.sweep_once() cada `interval_seconds` en un hilo propio.

    Los ticks nunca se solapan: corren en un solo hilo, y un tick manual
    (run_tick desde la API) que llega mientras otro corre se salta.
    Si un tick tarda más que el intervalo, los slots perdidos se saltan.
    """

    def __init__(self, sweeper: ReminderSweeper, interval_seconds: float = 60.0) -> None:
        self._sweeper = sweeper
        self._interval = float(interval_seconds)
        self._stop = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        self.ticks = 0
        self.skipped = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_report: Optional[SweepReport] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_tick(self, now: Optional[datetime] = None) -> Optional[SweepReport]:
        if not self._tick_lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("[dispatcher] tick already running; skipped")
            return None
        try:
            report = self._sweeper.sweep_once(now)
        except Exception:
            # sweep_once no debería lanzar; si lo hace, el loop sigue vivo
            logger.exception("[dispatcher] tick failed")
            return None
        finally:
            self._tick_lock.release()

        self.ticks += 1
        self.last_tick_at = report.now
        self.last_report = report
        return report

    def _run(self) -> None:
        logger.info("[dispatcher] running; interval=%ss", self._interval)
        next_at = time.monotonic() + self._interval
        while not self._stop.wait(max(0.0, next_at - time.monotonic())):
            self.run_tick()
            next_at += self._interval
            lag = time.monotonic() - next_at
            if lag >= 0:
                missed = int(lag // self._interval) + 1
                self.skipped += missed
                next_at += missed * self._interval
                logger.warning("[dispatcher] tick overran; skipped %d slot(s)", missed)
        logger.info("[dispatcher] stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="reminder-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_forever(self) -> None:
        """Modo worker: bloquea el hilo actual hasta Ctrl+C."""
        self.start()
        try:
            while self.running:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("[dispatcher] interrupted")
        finally:
            self.stop()


def run() -> None:
    from daybot.core.config import Settings, configure_logging
    from daybot.core.services import build_services

    settings = Settings.from_env()
    configure_logging(settings)
    services = build_services(settings)
    try:
        services.scheduler.run_forever()
    finally:
        services.close()


if __name__ == "__main__":
    run()
