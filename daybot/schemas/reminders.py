# daybot/schemas/reminders.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Reminder(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    due_at: datetime
    # solo para la política "retry"
    attempts: int = 0
    next_retry_at: Optional[datetime] = None

    @field_validator("due_at", "next_retry_at")
    @classmethod
    def _must_be_aware(cls, v: Optional[datetime]):
        # nunca persistimos horas "flotantes" sin zona
        if v is not None and v.tzinfo is None:
            raise ValueError("timestamp must include a timezone offset")
        return v

    @property
    def effective_due_at(self) -> datetime:
        return self.next_retry_at or self.due_at

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_defaults=True)


class UserReminderSet(BaseModel):
    user_id: str
    reminders: List[Reminder] = []
