# daybot/stores/tasks.py

from typing import Optional

from daybot.core.errors import NotFound
from daybot.schemas.tasks import UserTaskList
from daybot.stores.documents import ListTable, UserLocks, update_list


class TaskStore:
    def __init__(self, table: ListTable, locks: Optional[UserLocks] = None) -> None:
        self._table = table
        self._locks = locks or UserLocks()

    def get(self, user_id: str) -> UserTaskList:
        items = self._table.fetch(user_id)
        return UserTaskList(user_id=user_id, tasks=[str(t) for t in items])

    def append(self, user_id: str, task: str) -> None:
        with self._locks.hold(user_id):
            update_list(self._table, user_id, lambda items: items.append(task))

    def delete_at(self, user_id: str, number: int) -> str:
        """Borra la tarea `number` (1-based). Devuelve el texto borrado."""

        def pop(items: list) -> str:
            if number < 1 or number > len(items):
                raise NotFound(f"task {number} not found for user {user_id}")
            return str(items.pop(number - 1))

        with self._locks.hold(user_id):
            return update_list(self._table, user_id, pop)

    def clear(self, user_id: str) -> int:
        def wipe(items: list) -> int:
            n = len(items)
            items.clear()
            return n

        with self._locks.hold(user_id):
            return update_list(self._table, user_id, wipe)
