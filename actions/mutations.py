"""Mutationsaktionen auf dem Store einer DashboardSession.

Jede Aktion prüft zuerst, ob das Ziel in der aktiven Université existiert
(sonst ActionResult(ok=False), keine Änderung), wendet die Änderung an,
stempelt updatedAt, sichert den Store lokal und gibt die betroffenen
Entitäten an den Persistenz-Adapter weiter. Schreibfehler des Adapters
ändern nichts am lokalen Ergebnis, sie werden als failed_writes gezählt.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from models.ids import utc_now
from models.item import PROTECTED_ITEM_FIELDS, Item, ItemStatus, Priority, parse_deadline
from models.store import FilterField, Filters, ViewName, default_ui_state
from models.university import University

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Ergebnis einer Aktion; falsy, wenn sie abgelehnt wurde."""

    ok: bool
    message: str = ""
    failed_writes: int = 0

    def __bool__(self) -> bool:
        return self.ok


def _fail(message: str) -> ActionResult:
    logger.info(f"Aktion abgelehnt: {message}")
    return ActionResult(ok=False, message=message)


# camelCase- und snake_case-Schlüssel → Attributname
_ITEM_KEYS = {
    **{name: name for name in Item.model_fields},
    **{f.alias: name for name, f in Item.model_fields.items() if f.alias},
}

_FILTER_ATTRS = {
    FilterField.SUBJECT_ID: "subject_id",
    FilterField.OWNER: "owner",
    FilterField.STATUS: "status",
    FilterField.PRIORITY: "priority",
    FilterField.OVERDUE_ONLY: "overdue_only",
    FilterField.HAS_DEADLINE: "has_deadline",
}

_TRUE = {"true", "1", "yes", "oui", "on"}
_FALSE = {"false", "0", "no", "non", "off"}
_ANY = {"", "any", "none", "null", "tous"}


def parse_tristate(value: Any) -> Optional[bool]:
    """True/False/None aus Bool oder Text ("true", "non", "any", ...)."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _ANY:
        return None
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Kein Wahrheitswert: {value!r}")


class Actions:
    """Alle Benutzeraktionen, gebunden an eine Session (Store, Lock, Adapter)."""

    def __init__(self, session) -> None:
        self.session = session

    @property
    def store(self):
        return self.session.store

    @property
    def adapter(self):
        return self.session.adapter

    def _active(self) -> Optional[University]:
        return self.store.find_university(self.store.ui.active_university_id)

    def _commit(self) -> None:
        self.store.touch()
        self.session.commit()

    @staticmethod
    def _count_failures(results) -> int:
        return sum(1 for ok in results if not ok)

    def _result(self, message: str, failed: int) -> ActionResult:
        if failed:
            logger.warning(f"{message}: {failed} Schreibvorgänge fehlgeschlagen")
        return ActionResult(ok=True, message=message, failed_writes=failed)

    # ─── Fiches ───

    async def update_item(self, item_id: str, fields: dict) -> ActionResult:
        """Übernimmt alle Felder außer id/subjectId/title/subjectNameCache.

        Ergibt sich Statut VALIDE, wird der Fortschritt auf 100 gesetzt.
        Ungültige Werte (unbekannter Statut, Fortschritt außerhalb 0..100,
        unlesbare Deadline) lehnen die ganze Änderung ab.
        """
        async with self.session.lock:
            university = self._active()
            item = university.find_item(item_id) if university else None
            if item is None:
                return _fail(f"Fiche introuvable : {item_id}")

            data = item.model_dump()
            for key, value in fields.items():
                name = _ITEM_KEYS.get(key)
                if name is None:
                    return _fail(f"Champ inconnu : {key}")
                if name in PROTECTED_ITEM_FIELDS:
                    continue
                data[name] = value
            if data["status"] == ItemStatus.VALIDE:
                data["progress"] = 100
            data["updated_at"] = utc_now()

            try:
                updated = Item.model_validate(data)
            except ValidationError as e:
                return _fail(f"Valeur invalide : {e.errors()[0]['msg']}")
            if updated.deadline and updated.deadline_date is None:
                return _fail(f"Deadline invalide : {updated.deadline}")

            university.items[university.items.index(item)] = updated
            self._commit()

        ok = await self.adapter.upsert_item(updated.id, updated.subject_id, updated)
        return self._result("Fiche mise à jour", 0 if ok else 1)

    async def move_item_status(self, item_id: str, status) -> ActionResult:
        return await self.update_item(item_id, {"status": status})

    async def delete_item(self, item_id: str) -> ActionResult:
        async with self.session.lock:
            university = self._active()
            item = university.find_item(item_id) if university else None
            if item is None:
                return _fail(f"Fiche introuvable : {item_id}")
            university.items.remove(item)
            self._commit()

        ok = await self.adapter.delete_item(item_id)
        return self._result("Fiche supprimée", 0 if ok else 1)

    # ─── Matières ───

    async def assign_subject_meta(
        self, subject_id: str, owner: str, method: str = "", remark: str = ""
    ) -> ActionResult:
        async with self.session.lock:
            university = self._active()
            subject = university.find_subject(subject_id) if university else None
            if subject is None:
                return _fail(f"Matière introuvable : {subject_id}")
            subject.owner = (owner or "").strip()
            subject.method = method or ""
            subject.remark = remark or ""
            self._commit()
            snapshot = subject.model_copy()

        ok = await self.adapter.upsert_subject(snapshot.id, university.id, snapshot)
        return self._result("Matière mise à jour", 0 if ok else 1)

    async def set_subject_deadline(self, subject_id: str, deadline: str) -> ActionResult:
        """Setzt die Deadline aller Fiches einer Matière (Sammeloperation)."""
        text = (deadline or "").strip()
        parsed = parse_deadline(text)
        if text and parsed is None:
            return _fail(f"Deadline invalide : {deadline}")
        value = parsed.isoformat() if parsed else ""

        async with self.session.lock:
            university = self._active()
            if university is None or university.find_subject(subject_id) is None:
                return _fail(f"Matière introuvable : {subject_id}")
            now = utc_now()
            items = university.items_of_subject(subject_id)
            for item in items:
                item.deadline = value
                item.updated_at = now
            self._commit()
            snapshots = [i.model_copy() for i in items]

        results = await asyncio.gather(*[
            self.adapter.upsert_item(i.id, i.subject_id, i) for i in snapshots
        ])
        return self._result(
            f"Deadline appliquée à {len(snapshots)} fiches", self._count_failures(results)
        )

    async def delete_subject(self, subject_id: str) -> ActionResult:
        """Entfernt die Matière und alle ihre Fiches."""
        async with self.session.lock:
            university = self._active()
            subject = university.find_subject(subject_id) if university else None
            if subject is None:
                return _fail(f"Matière introuvable : {subject_id}")
            university.subjects.remove(subject)
            university.items = [i for i in university.items if i.subject_id != subject_id]
            self._commit()

        ok = await self.adapter.delete_subject(subject_id)
        return self._result("Matière supprimée", 0 if ok else 1)

    # ─── Universités ───

    async def delete_university(self, university_id: str) -> ActionResult:
        """Entfernt eine Université; war sie aktiv, wird die erste verbleibende aktiv."""
        async with self.session.lock:
            university = self.store.find_university(university_id)
            if university is None:
                return _fail(f"Université introuvable : {university_id}")
            self.store.universities.remove(university)
            if self.store.ui.active_university_id == university_id:
                self.store.ui.active_university_id = (
                    self.store.universities[0].id if self.store.universities else None
                )
            self._commit()

        ok = await self.adapter.delete_university(university_id)
        return self._result(f"Université « {university.name} » supprimée", 0 if ok else 1)

    async def delete_all(self) -> ActionResult:
        """Leert den Store und setzt den UI-Zustand zurück."""
        async with self.session.lock:
            ids = [u.id for u in self.store.universities]
            self.store.universities = []
            self.store.ui = default_ui_state()
            self._commit()

        results = await asyncio.gather(*[self.adapter.delete_university(i) for i in ids])
        return self._result("Toutes les données ont été supprimées", self._count_failures(results))

    # ─── UI-Zustand ───

    async def set_active_university(self, university_id: str) -> ActionResult:
        async with self.session.lock:
            university = self.store.find_university(university_id)
            if university is None:
                return _fail(f"Université introuvable : {university_id}")
            self.store.ui.active_university_id = university.id
            self._commit()
        return ActionResult(ok=True, message=f"Université active : {university.name}")

    async def apply_filter(self, field, value: Any) -> ActionResult:
        """Setzt einen Filter; leere Werte bedeuten "beliebig"."""
        try:
            field = FilterField(field)
            if field is FilterField.STATUS:
                value = ItemStatus(value) if value else None
            elif field is FilterField.PRIORITY:
                value = Priority(value) if value else None
            elif field is FilterField.OVERDUE_ONLY:
                value = bool(parse_tristate(value))
            elif field is FilterField.HAS_DEADLINE:
                value = parse_tristate(value)
            else:
                value = "" if value is None else str(value)
        except ValueError as e:
            return _fail(f"Filtre invalide : {e}")

        async with self.session.lock:
            setattr(self.store.ui.filters, _FILTER_ATTRS[field], value)
            self._commit()
        return ActionResult(ok=True, message=f"Filtre {field.value} appliqué")

    async def clear_filters(self) -> ActionResult:
        async with self.session.lock:
            self.store.ui.filters = Filters()
            self._commit()
        return ActionResult(ok=True, message="Filtres réinitialisés")

    async def set_view(self, view) -> ActionResult:
        try:
            view = ViewName(view)
        except ValueError:
            return _fail(f"Vue inconnue : {view}")
        async with self.session.lock:
            self.store.ui.view = view
            self._commit()
        return ActionResult(ok=True, message=f"Vue : {view.value}")
