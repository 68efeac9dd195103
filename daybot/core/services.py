# daybot/core/services.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from daybot.bot.dispatcher import CommandDispatcher
from daybot.core.config import Settings
from daybot.core.supabase_client import get_service_supabase
from daybot.core.timeparse import utcnow
from daybot.core.whatsapp import LogNotifier, Notifier, WhatsAppClient, WhatsAppNotifier
from daybot.stores.documents import ListTable, MemoryListTable, SupabaseListTable
from daybot.stores.reminders import ReminderStore
from daybot.stores.tasks import TaskStore
from daybot.worker.reminder_loop import ReminderScheduler
from daybot.worker.sweeper import ReminderSweeper

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    reminders: ReminderStore
    tasks: TaskStore
    notifier: Notifier
    dispatcher: CommandDispatcher
    sweeper: ReminderSweeper
    scheduler: ReminderScheduler

    def close(self) -> None:
        self.scheduler.stop()
        self.sweeper.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            close()


def _tables(settings: Settings) -> Tuple[ListTable, ListTable]:
    if settings.store_backend == "memory":
        logger.warning("[services] STORE_BACKEND=memory: data is lost on restart")
        return MemoryListTable("reminders"), MemoryListTable("tasks")

    sb = get_service_supabase(settings)
    return (
        SupabaseListTable(sb, settings.reminders_table, "reminders"),
        SupabaseListTable(sb, settings.tasks_table, "tasks"),
    )


def _notifier(settings: Settings) -> Notifier:
    if settings.notifier_backend == "log":
        return LogNotifier()
    if not settings.meta_wa_token or not settings.meta_wa_phone_id:
        logger.warning("[services] META_WA_TOKEN/META_WA_PHONE_ID missing; deliveries will fail")
    return WhatsAppNotifier(WhatsAppClient(settings))


def build_services(
    settings: Settings,
    *,
    reminders: Optional[ReminderStore] = None,
    tasks: Optional[TaskStore] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Arma el grafo de dependencias una sola vez (app web o worker)."""
    if reminders is None or tasks is None:
        reminders_table, tasks_table = _tables(settings)
        reminders = reminders or ReminderStore(reminders_table)
        tasks = tasks or TaskStore(tasks_table)
    notifier = notifier or _notifier(settings)

    sweeper = ReminderSweeper(
        reminders,
        notifier,
        clock=clock,
        policy=settings.delivery_policy,
        max_attempts=settings.max_delivery_attempts,
        workers=settings.delivery_workers,
    )
    return Services(
        settings=settings,
        reminders=reminders,
        tasks=tasks,
        notifier=notifier,
        dispatcher=CommandDispatcher(reminders, tasks, settings, clock=clock),
        sweeper=sweeper,
        scheduler=ReminderScheduler(sweeper, settings.sweep_interval_seconds),
    )
