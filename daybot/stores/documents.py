# daybot/stores/documents.py
"""
Tablas "documento": una fila por usuario con un arreglo JSON ordenado.

    reminders(user_id text primary key, reminders jsonb, version bigint not null default 1)
    tasks(user_id text primary key, tasks jsonb, version bigint not null default 1)

Toda escritura es condicional a la `version` leída (compare-and-set): si otro
proceso (webhook y worker separados) escribió la fila entre medio, la escritura
no aplica y update_list vuelve a leer y reintenta. El lock por usuario solo
evita reintentos dentro del mismo proceso.

Dos backends con la misma interfaz (fetch / fetch_versioned / write_if / scan):
- SupabaseListTable: PostgREST vía supabase-py v2 (service role).
- MemoryListTable: diccionario en proceso, para desarrollo y tests.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from supabase import Client

from daybot.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# None = la fila todavía no existe
Version = Optional[int]

MAX_WRITE_ATTEMPTS = 5

# Postgres unique_violation: otro proceso insertó la fila primero
_UNIQUE_VIOLATION = "23505"


class ListTable(Protocol):
    field: str

    def fetch(self, user_id: str) -> list: ...

    def fetch_versioned(self, user_id: str) -> Tuple[list, Version]: ...

    def write_if(self, user_id: str, items: list, version: Version) -> bool: ...

    def scan(self) -> List[Tuple[str, list]]: ...


def update_list(
    table: ListTable,
    user_id: str,
    mutate: Callable[[list], Any],
    attempts: int = MAX_WRITE_ATTEMPTS,
) -> Any:
    """
    Read-modify-write optimista: `mutate` modifica la lista in-place y devuelve
    un resultado. Si la versión cambió antes de escribir se repite todo
    (mutate puede correr más de una vez; no debe tener efectos externos).
    """
    for attempt in range(1, attempts + 1):
        items, version = table.fetch_versioned(user_id)
        result = mutate(items)
        if table.write_if(user_id, items, version):
            return result
        logger.info("[store] %s/%s changed concurrently; retry %d", table.field, user_id, attempt)
    raise StoreUnavailable(f"{table.field} for user {user_id} kept changing; gave up after {attempts} attempts")


class UserLocks:
    """Un RLock por user_id mientras alguien lo usa; se descarta al soltarse."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # user_id -> [lock, holders]
        self._locks: Dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_id]


class MemoryListTable:
    def __init__(self, field: str) -> None:
        self.field = field
        self._rows: Dict[str, Tuple[int, list]] = {}
        self._mutex = threading.Lock()

    def fetch(self, user_id: str) -> list:
        return self.fetch_versioned(user_id)[0]

    def fetch_versioned(self, user_id: str) -> Tuple[list, Version]:
        with self._mutex:
            row = self._rows.get(user_id)
            if row is None:
                return [], None
            version, items = row
            return copy.deepcopy(items), version

    def write_if(self, user_id: str, items: list, version: Version) -> bool:
        with self._mutex:
            row = self._rows.get(user_id)
            current = row[0] if row is not None else None
            if current != version:
                return False
            self._rows[user_id] = ((version or 0) + 1, copy.deepcopy(list(items)))
            return True

    def scan(self) -> List[Tuple[str, list]]:
        with self._mutex:
            return [(uid, copy.deepcopy(items)) for uid, (_, items) in self._rows.items()]


class SupabaseListTable:
    PAGE_SIZE = 500

    def __init__(self, client: Client, table: str, field: str) -> None:
        self._sb = client
        self.table = table
        self.field = field

    def fetch(self, user_id: str) -> list:
        return self.fetch_versioned(user_id)[0]

    def fetch_versioned(self, user_id: str) -> Tuple[list, Version]:
        try:
            res = (
                self._sb.table(self.table)
                .select(f"user_id, {self.field}, version")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StoreUnavailable(f"[{self.table}.fetch] {e}") from e
        rows = res.data or []
        if not rows:
            return [], None
        row = rows[0]
        return row.get(self.field) or [], int(row.get("version") or 0)

    def write_if(self, user_id: str, items: list, version: Version) -> bool:
        try:
            if version is None:
                # fila nueva: si otro proceso la insertó primero, choca con la PK
                self._sb.table(self.table).insert(
                    {"user_id": user_id, self.field: list(items), "version": 1}
                ).execute()
                return True
            res = (
                self._sb.table(self.table)
                .update({self.field: list(items), "version": version + 1})
                .eq("user_id", user_id)
                .eq("version", version)
                .execute()
            )
        except Exception as e:
            if version is None and getattr(e, "code", None) == _UNIQUE_VIOLATION:
                return False
            raise StoreUnavailable(f"[{self.table}.write] {e}") from e
        # 0 filas actualizadas = alguien escribió después de nuestra lectura
        return bool(res.data)

    def scan(self) -> List[Tuple[str, list]]:
        out: List[Tuple[str, list]] = []
        start = 0
        while True:
            end = start + self.PAGE_SIZE - 1
            try:
                res = (
                    self._sb.table(self.table)
                    .select(f"user_id, {self.field}")
                    .order("user_id", desc=False)
                    .range(start, end)
                    .execute()
                )
            except Exception as e:
                raise StoreUnavailable(f"[{self.table}.scan] {e}") from e
            rows = res.data or []
            out.extend((r["user_id"], r.get(self.field) or []) for r in rows)
            if len(rows) < self.PAGE_SIZE:
                return out
            start += self.PAGE_SIZE
