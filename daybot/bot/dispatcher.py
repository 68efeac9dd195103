# daybot/bot/dispatcher.py
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from daybot.bot import messages
from daybot.core.config import Settings
from daybot.core.errors import NotFound, ParseError, StoreUnavailable
from daybot.core.timeparse import format_time_of_day, normalize_time, utcnow
from daybot.schemas.reminders import Reminder
from daybot.stores.reminders import ReminderStore
from daybot.stores.tasks import TaskStore

logger = logging.getLogger(__name__)

Handler = Callable[[str, str, Optional[str]], List[str]]


def parse_command(text: str) -> Optional[Tuple[str, str]]:
    """'/remind Call mom at 3:00 PM' -> ('/remind', 'Call mom at 3:00 PM')."""
    text = (text or "").strip()
    if not text.startswith("/"):
        return None
    parts = text.split(None, 1)
    name = parts[0].lower()
    args = parts[1].strip() if len(parts) > 1 else ""
    return name, args


def split_reminder_args(args: str) -> Optional[Tuple[str, str]]:
    # separa por el ÚLTIMO " at ": "Lunch at the park at 1:00 PM"
    head, sep, tail = args.rpartition(" at ")
    if not sep or not head.strip() or not tail.strip():
        return None
    return head.strip(), tail.strip()


class CommandDispatcher:
    def __init__(
        self,
        reminders: ReminderStore,
        tasks: TaskStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._reminders = reminders
        self._tasks = tasks
        self._settings = settings
        self._clock = clock
        self._handlers: Dict[str, Handler] = {
            "/start": self._start,
            "/help": self._start,
            "/addtask": self._add_task,
            "/listtasks": self._list_tasks,
            "/deletetask": self._delete_task,
            "/deletealltasks": self._delete_all_tasks,
            "/remind": self._remind,
            "/listreminders": self._list_reminders,
        }

    @property
    def commands(self) -> List[str]:
        return list(self._handlers)

    def handle_text(self, user_id: str, text: str, *, first_name: Optional[str] = None) -> List[str]:
        parsed = parse_command(text)
        if parsed is None:
            return []
        name, args = parsed
        return self.handle_command(user_id, name, args, first_name=first_name)

    def handle_command(
        self, user_id: str, command_name: str, args: str = "", *, first_name: Optional[str] = None
    ) -> List[str]:
        handler = self._handlers.get(command_name.lower())
        if handler is None:
            return [messages.UNKNOWN_COMMAND]
        try:
            return handler(user_id, (args or "").strip(), first_name)
        except StoreUnavailable as e:
            logger.error("[bot] %s for %s failed: %s", command_name, user_id, e)
            return [messages.STORE_ERROR]

    # -----------------------
    # Handlers
    # -----------------------
    def _start(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        return [messages.welcome(first_name or "there")]

    def _add_task(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        if not args:
            return [messages.USAGE_ADDTASK]
        self._tasks.append(user_id, args)
        return [f"Task added: {args}"]

    def _list_tasks(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        tl = self._tasks.get(user_id)
        if not tl.tasks:
            return [messages.NO_TASKS]
        return ["Here are your tasks:\n" + "\n".join(tl.numbered())]

    def _delete_task(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        if not args:
            return [messages.USAGE_DELETETASK]
        if not args.isdecimal():
            return [messages.INVALID_TASK_NUMBER]
        try:
            removed = self._tasks.delete_at(user_id, int(args))
        except NotFound:
            return [messages.INVALID_TASK_NUMBER]
        return [f"Task deleted: {removed}"]

    def _delete_all_tasks(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        if self._tasks.clear(user_id) == 0:
            return [messages.NO_TASKS]
        return [messages.ALL_TASKS_DELETED]

    def _remind(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        parts = split_reminder_args(args)
        if parts is None:
            return [messages.USAGE_REMIND]
        text, time_text = parts
        try:
            due_at = normalize_time(
                time_text,
                self._settings.timezone,
                now=self._clock(),
                formats=self._settings.time_formats,
                roll_forward=self._settings.roll_past_times,
            )
        except ParseError:
            return [messages.bad_time(time_text)]

        self._reminders.append(user_id, Reminder(text=text, due_at=due_at))
        logger.info("[bot] reminder set for %s at %s", user_id, due_at.isoformat())
        return [f"Reminder set: {text} at {time_text}"]

    def _list_reminders(self, user_id: str, args: str, first_name: Optional[str]) -> List[str]:
        items = self._reminders.get(user_id)
        if not items:
            return [messages.NO_REMINDERS]
        tz = self._settings.timezone
        lines = [f"{format_time_of_day(r.due_at, tz)}: {r.text}" for r in items]
        return ["Here are your reminders:\n" + "\n".join(lines)]
