# daybot/stores/reminders.py

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple, TypeVar

from pydantic import ValidationError

from daybot.core.errors import StoreUnavailable
from daybot.schemas.reminders import Reminder, UserReminderSet
from daybot.stores.documents import ListTable, UserLocks, update_list

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(user_id: str, items: list) -> List[Reminder]:
    try:
        return [Reminder.model_validate(i) for i in items]
    except ValidationError as e:
        raise StoreUnavailable(f"corrupt reminder document for user {user_id}: {e}") from e


class ReminderStore:
    """
    user_id -> lista ordenada de Reminder.

    Cada escritura es un read-modify-write condicional a la versión de la fila
    (ver update_list), así que un /remind que llega entre la lectura y la
    escritura del sweeper no se pierde aunque vengan de procesos distintos.
    """

    def __init__(self, table: ListTable, locks: Optional[UserLocks] = None) -> None:
        self._table = table
        self._locks = locks or UserLocks()

    @contextmanager
    def locked(self, user_id: str) -> Iterator[None]:
        with self._locks.hold(user_id):
            yield

    def get(self, user_id: str) -> List[Reminder]:
        return _decode(user_id, self._table.fetch(user_id))

    def update(
        self, user_id: str, fn: Callable[[List[Reminder]], Tuple[List[Reminder], T]]
    ) -> T:
        """`fn(actuales) -> (nueva lista, resultado)`; puede reintentarse."""

        def mutate(items: list) -> T:
            new, result = fn(_decode(user_id, items))
            items[:] = [r.to_document() for r in new]
            return result

        with self.locked(user_id):
            return update_list(self._table, user_id, mutate)

    def append(self, user_id: str, reminder: Reminder) -> None:
        doc = reminder.to_document()
        with self.locked(user_id):
            update_list(self._table, user_id, lambda items: items.append(doc))

    def replace(self, user_id: str, reminders: List[Reminder]) -> None:
        self.update(user_id, lambda _current: (list(reminders), None))

    def load_all(self) -> List[UserReminderSet]:
        out: List[UserReminderSet] = []
        for user_id, items in self._table.scan():
            if not items:
                continue
            try:
                out.append(UserReminderSet(user_id=user_id, reminders=_decode(user_id, items)))
            except StoreUnavailable as e:
                # un documento roto no debe tumbar el barrido del resto
                logger.error("[reminders] skipping user %s: %s", user_id, e)
        return out
