import pytest

from daybot.core.config import Settings
from daybot.core.services import build_services
from daybot.stores.documents import MemoryListTable
from daybot.stores.reminders import ReminderStore
from daybot.stores.tasks import TaskStore
from helpers import Clock, RecordingNotifier, ist


@pytest.fixture
def settings():
    return Settings(
        store_backend="memory",
        notifier_backend="log",
        run_scheduler=False,
        admin_token="secret",
        meta_wa_verify_token="verify-me",
        delivery_workers=2,
    )


@pytest.fixture
def clock():
    return Clock(ist(10, 0))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def reminder_table():
    return MemoryListTable("reminders")


@pytest.fixture
def reminder_store(reminder_table):
    return ReminderStore(reminder_table)


@pytest.fixture
def task_store():
    return TaskStore(MemoryListTable("tasks"))


@pytest.fixture
def services(settings, reminder_store, task_store, notifier, clock):
    svc = build_services(
        settings, reminders=reminder_store, tasks=task_store, notifier=notifier, clock=clock
    )
    yield svc
    svc.close()
