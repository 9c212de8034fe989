"""Selektoren und Kennzahlen: reine Funktionen über einem Store.

Keine Funktion in diesem Modul verändert den Store. Alle Ableitungen beziehen
sich auf die aktive Université; KPIs folgen den aktiven Filtern.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from models.item import Item, ItemStatus
from models.store import Filters, Store
from models.university import University


def round_half_up(numerator: int, denominator: int) -> int:
    """Ganzzahlige Division mit kaufmännischer Rundung (x.5 → aufrunden).

    Nur für nicht-negative Werte; denominator muss > 0 sein.
    """
    return (2 * numerator + denominator) // (2 * denominator)


# ─── Université / Fiches ─────────────────────────────────────────────────────

def active_university(store: Optional[Store]) -> Optional[University]:
    """Die Université mit id == ui.activeUniversityId, sonst None."""
    if store is None:
        return None
    return store.find_university(store.ui.active_university_id)


def is_overdue(item: Item, today: Optional[date] = None) -> bool:
    """Deadline strikt vor heute (Kalenderdatum, lokale Zeit) und nicht validiert."""
    if not item.deadline or item.status == ItemStatus.VALIDE:
        return False
    deadline = item.deadline_date
    if deadline is None:
        return False
    return deadline < (today or date.today())


def _apply_filters(
    university: University, items: list[Item], filters: Filters, today: Optional[date]
) -> list[Item]:
    # Reihenfolge: Matière → Responsable → Statut → Priorität → Retard → Deadline
    if filters.subject_id:
        items = [i for i in items if i.subject_id == filters.subject_id]

    if filters.owner:
        owners = {s.id: s.owner for s in university.subjects}
        items = [i for i in items if owners.get(i.subject_id) == filters.owner]

    if filters.status is not None:
        items = [i for i in items if i.status == filters.status]

    if filters.priority is not None:
        items = [i for i in items if i.priority == filters.priority]

    if filters.overdue_only:
        items = [i for i in items if is_overdue(i, today)]

    if filters.has_deadline is True:
        items = [i for i in items if i.deadline]
    elif filters.has_deadline is False:
        items = [i for i in items if not i.deadline]

    return items


def filtered_items(store: Optional[Store], today: Optional[date] = None) -> list[Item]:
    """Fiches der aktiven Université nach Anwendung aller aktiven Filter."""
    university = active_university(store)
    if university is None:
        return []
    return _apply_filters(university, list(university.items), store.ui.filters, today)


def subject_progress(store: Optional[Store], subject_id: str) -> int:
    """Durchschnittlicher effektiver Fortschritt einer Matière (0 ohne Fiches)."""
    university = active_university(store)
    if university is None:
        return 0
    items = university.items_of_subject(subject_id)
    if not items:
        return 0
    return round_half_up(sum(i.effective_progress for i in items), len(items))


def nearest_deadline(store: Optional[Store], subject_id: str) -> Optional[Item]:
    """Fiche der Matière mit der frühesten gültigen Deadline.

    Unlesbare Deadlines werden ignoriert; bei Gleichstand gewinnt die zuerst
    gespeicherte Fiche.
    """
    university = active_university(store)
    if university is None:
        return None
    best: Optional[Item] = None
    best_date: Optional[date] = None
    for item in university.items_of_subject(subject_id):
        deadline = item.deadline_date
        if deadline is None:
            continue
        if best_date is None or deadline < best_date:
            best, best_date = item, deadline
    return best


def all_owners(store: Optional[Store]) -> list[str]:
    """Alle nicht-leeren Responsables der aktiven Université, sortiert."""
    university = active_university(store)
    if university is None:
        return []
    return sorted({s.owner.strip() for s in university.subjects if s.owner.strip()})


# ─── KPIs ────────────────────────────────────────────────────────────────────

class KpiReport(BaseModel):
    """Kennzahlen über die gefilterten Fiches der aktiven Université."""

    total: int = 0
    validated: int = 0
    validated_percent: int = 0
    overdue: int = 0
    by_status: dict[ItemStatus, int] = Field(
        default_factory=lambda: {s: 0 for s in ItemStatus}
    )
    average_progress: int = 0

    def status_distribution(self) -> list[tuple[ItemStatus, int, int]]:
        """(Statut, Anzahl, Prozent) in Enum-Reihenfolge."""
        rows = []
        for status in ItemStatus:
            count = self.by_status.get(status, 0)
            percent = round_half_up(100 * count, self.total) if self.total else 0
            rows.append((status, count, percent))
        return rows


def kpis(store: Optional[Store], today: Optional[date] = None) -> KpiReport:
    """Berechnet die KPIs; ohne aktive Université ist alles 0."""
    if active_university(store) is None:
        return KpiReport()

    items = filtered_items(store, today)
    total = len(items)
    by_status = {s: 0 for s in ItemStatus}
    for item in items:
        by_status[item.status] += 1
    validated = by_status[ItemStatus.VALIDE]

    if total == 0:
        return KpiReport(by_status=by_status)

    return KpiReport(
        total=total,
        validated=validated,
        validated_percent=round_half_up(100 * validated, total),
        overdue=sum(1 for i in items if is_overdue(i, today)),
        by_status=by_status,
        average_progress=round_half_up(sum(i.effective_progress for i in items), total),
    )
