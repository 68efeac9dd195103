# daybot/schemas/tasks.py
from typing import List

from pydantic import BaseModel


class UserTaskList(BaseModel):
    user_id: str
    tasks: List[str] = []

    def numbered(self) -> List[str]:
        # índices 1-based, como los ve el usuario
        return [f"{i}. {t}" for i, t in enumerate(self.tasks, start=1)]
