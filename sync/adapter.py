"""Persistenz-Schnittstelle und die beiden lokalen Implementierungen.

Der Kern ruft immer nur diese Schnittstelle auf und verzweigt nie auf
"Backend konfiguriert?":

  NullAdapter   – kein Backend: fetch_all() → None, Schreibzugriffe gelingen.
  MemoryAdapter – relationaler In-Process-Spiegel der drei Tabellen
                  (universities, subjects, items), u.a. für Tests.
  RestAdapter   – siehe sync/rest_adapter.py.

Schreibfehler werden nie als Exception gemeldet, sondern als False.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from models.ids import utc_now
from models.item import Item
from models.store import Store
from models.subject import Subject
from sync.rows import item_row, store_from_rows, subject_row, university_row

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    UNIVERSITY = "universities"
    SUBJECT = "subjects"
    ITEM = "items"


ChangeCallback = Callable[[RecordKind], None]


class Subscription:
    """Handle einer Änderungsbenachrichtigung; cancel() meldet ab."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if self.active and self._on_cancel is not None:
            self._on_cancel()
        self.active = False


class PersistenceAdapter(ABC):
    """Best-effort-Spiegel des Stores (lokaler Zustand bleibt maßgeblich)."""

    name = "abstract"

    @abstractmethod
    async def fetch_all(self) -> Optional[Store]:
        """Kompletter Bestand oder None, wenn nicht verfügbar."""

    @abstractmethod
    async def upsert_university(self, university_id: str, name: str) -> bool: ...

    @abstractmethod
    async def upsert_subject(
        self, subject_id: str, university_id: str, subject: Subject
    ) -> bool: ...

    @abstractmethod
    async def upsert_item(self, item_id: str, subject_id: str, item: Item) -> bool: ...

    @abstractmethod
    async def delete_university(self, university_id: str) -> bool: ...

    @abstractmethod
    async def delete_subject(self, subject_id: str) -> bool: ...

    @abstractmethod
    async def delete_item(self, item_id: str) -> bool: ...

    def subscribe(self, callback: ChangeCallback) -> Optional[Subscription]:
        """Meldet Änderungen an; None, wenn das Backend keine liefert."""
        return None

    async def close(self) -> None:
        return None


class NullAdapter(PersistenceAdapter):
    """Kein Backend konfiguriert."""

    name = "none"

    async def fetch_all(self) -> Optional[Store]:
        return None

    async def upsert_university(self, university_id: str, name: str) -> bool:
        return True

    async def upsert_subject(self, subject_id, university_id, subject) -> bool:
        return True

    async def upsert_item(self, item_id, subject_id, item) -> bool:
        return True

    async def delete_university(self, university_id: str) -> bool:
        return True

    async def delete_subject(self, subject_id: str) -> bool:
        return True

    async def delete_item(self, item_id: str) -> bool:
        return True


class MemoryAdapter(PersistenceAdapter):
    """Tabellen als dicts (Einfügereihenfolge = Erstellreihenfolge).

    Löschen einer Université bzw. Matière kaskadiert wie in der Datenbank.
    Nach jedem Schreibzugriff werden die Abonnenten benachrichtigt.
    """

    name = "memory"

    def __init__(self) -> None:
        self.tables: dict[RecordKind, dict[str, dict]] = {k: {} for k in RecordKind}
        self._subscribers: list[ChangeCallback] = []

    # ─── Lesen ───

    async def fetch_all(self) -> Optional[Store]:
        return store_from_rows(
            list(self.tables[RecordKind.UNIVERSITY].values()),
            list(self.tables[RecordKind.SUBJECT].values()),
            list(self.tables[RecordKind.ITEM].values()),
        )

    # ─── Schreiben ───

    def _upsert(self, kind: RecordKind, row: dict) -> bool:
        table = self.tables[kind]
        existing = table.get(row["id"])
        if existing is None:
            row = dict(row, created_at=utc_now().isoformat())
            table[row["id"]] = row
        else:
            existing.update(row)
        self._notify(kind)
        return True

    async def upsert_university(self, university_id: str, name: str) -> bool:
        return self._upsert(RecordKind.UNIVERSITY, university_row(university_id, name))

    async def upsert_subject(self, subject_id, university_id, subject) -> bool:
        return self._upsert(
            RecordKind.SUBJECT, subject_row(subject_id, university_id, subject)
        )

    async def upsert_item(self, item_id, subject_id, item) -> bool:
        return self._upsert(RecordKind.ITEM, item_row(item_id, subject_id, item))

    def _drop_items(self, subject_ids: set[str]) -> None:
        items = self.tables[RecordKind.ITEM]
        for item_id in [i for i, r in items.items() if r["subject_id"] in subject_ids]:
            del items[item_id]

    async def delete_university(self, university_id: str) -> bool:
        subjects = self.tables[RecordKind.SUBJECT]
        subject_ids = {
            s for s, r in subjects.items() if r["university_id"] == university_id
        }
        self._drop_items(subject_ids)
        for subject_id in subject_ids:
            del subjects[subject_id]
        self.tables[RecordKind.UNIVERSITY].pop(university_id, None)
        self._notify(RecordKind.UNIVERSITY)
        return True

    async def delete_subject(self, subject_id: str) -> bool:
        self._drop_items({subject_id})
        self.tables[RecordKind.SUBJECT].pop(subject_id, None)
        self._notify(RecordKind.SUBJECT)
        return True

    async def delete_item(self, item_id: str) -> bool:
        self.tables[RecordKind.ITEM].pop(item_id, None)
        self._notify(RecordKind.ITEM)
        return True

    # ─── Benachrichtigung ───

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        self._subscribers.append(callback)

        def _remove():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return Subscription(_remove)

    def _notify(self, kind: RecordKind) -> None:
        for callback in list(self._subscribers):
            callback(kind)
