"""Ansichtsmodelle für Tabelle, Kanban und Kalender.

Baut auf den Selektoren auf und liefert fertig gruppierte Daten, die ein
Renderer (Terminal, Excel) nur noch ausgeben muss.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from analysis.selectors import (
    active_university, filtered_items, nearest_deadline, subject_progress,
)
from config.defaults import PRIORITY_RANK, STATUS_RANK, method_label
from models.item import Item, ItemStatus
from models.store import Store
from models.subject import Subject


class SortColumn(str, Enum):
    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    DEADLINE = "deadline"
    PROGRESS = "progress"


def _sort_value(item: Item, column: SortColumn):
    if column is SortColumn.TITLE:
        return item.title.lower()
    if column is SortColumn.STATUS:
        return STATUS_RANK[item.status]
    if column is SortColumn.PRIORITY:
        return PRIORITY_RANK[item.priority]
    if column is SortColumn.DEADLINE:
        # Ohne (lesbare) Deadline zuerst
        deadline = item.deadline_date
        return deadline.toordinal() if deadline else 0
    if column is SortColumn.PROGRESS:
        return item.effective_progress
    raise ValueError(f"Unbekannte Sortierspalte: {column!r}")


def search_items(store: Store, items: list[Item], term: str) -> list[Item]:
    """Filtert nach Suchbegriff in Matière-Name oder Fiche-Titel (case-insensitiv)."""
    term = (term or "").strip().lower()
    if not term:
        return list(items)
    university = active_university(store)
    names = {s.id: s.name.lower() for s in university.subjects} if university else {}
    return [
        i for i in items
        if term in names.get(i.subject_id, "") or term in i.title.lower()
    ]


def sort_items(
    items: list[Item], column: Optional[SortColumn], descending: bool = False
) -> list[Item]:
    """Stabile Sortierung nach Spalte; column=None lässt die Reihenfolge unverändert."""
    if column is None:
        return list(items)
    column = SortColumn(column)
    return sorted(items, key=lambda i: _sort_value(i, column), reverse=descending)


# ─── Tabelle ─────────────────────────────────────────────────────────────────

@dataclass
class SubjectGroup:
    """Eine Matière mit ihren (gefilterten) Fiches für die Tabellenansicht."""

    subject_id: str
    name: str
    owner: str
    method: str
    remark: str
    progress: int
    items: list[Item] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)


def table_groups(
    store: Store,
    term: str = "",
    column: Optional[SortColumn] = None,
    descending: bool = False,
) -> list[SubjectGroup]:
    """Gefilterte, durchsuchte und sortierte Fiches, gruppiert nach Matière.

    Gruppen erscheinen in der Reihenfolge ihres ersten Vorkommens.
    """
    university = active_university(store)
    if university is None:
        return []
    items = sort_items(search_items(store, filtered_items(store), term), column, descending)

    groups: dict[str, SubjectGroup] = {}
    for item in items:
        group = groups.get(item.subject_id)
        if group is None:
            subject: Optional[Subject] = university.find_subject(item.subject_id)
            group = SubjectGroup(
                subject_id=item.subject_id,
                name=subject.name if subject else (item.subject_name_cache or "Inconnu"),
                owner=subject.owner if subject else "",
                method=method_label(subject.method) if subject else "",
                remark=subject.remark if subject else "",
                progress=subject_progress(store, item.subject_id),
            )
            groups[item.subject_id] = group
        group.items.append(item)
    return list(groups.values())


# ─── Kanban ──────────────────────────────────────────────────────────────────

def kanban_columns(store: Store) -> dict[ItemStatus, list[Item]]:
    """Gefilterte Fiches je Statut; jede Spalte ist vorhanden (Enum-Reihenfolge)."""
    columns: dict[ItemStatus, list[Item]] = {s: [] for s in ItemStatus}
    for item in filtered_items(store):
        columns[item.status].append(item)
    return columns


# ─── Kalender ────────────────────────────────────────────────────────────────

@dataclass
class CalendarDay:
    day: date
    items: list[Item] = field(default_factory=list)
    # Matières, deren nächste Deadline auf diesen Tag fällt
    subjects: list[str] = field(default_factory=list)


@dataclass
class CalendarMonth:
    year: int
    month: int
    weeks: list[list[Optional[CalendarDay]]] = field(default_factory=list)

    def days(self) -> list[CalendarDay]:
        return [d for week in self.weeks for d in week if d is not None]


def calendar_month(store: Store, year: int, month: int) -> CalendarMonth:
    """Monatsraster (Montag zuerst) mit den gefilterten Fiches je Deadline-Tag.

    Tage außerhalb des Monats sind None. Fiches ohne lesbare Deadline fehlen.
    Zusätzlich trägt jeder Tag die Matières, deren nächste Deadline dort liegt.
    """
    by_date: dict[date, list[Item]] = {}
    for item in filtered_items(store):
        deadline = item.deadline_date
        if deadline is not None:
            by_date.setdefault(deadline, []).append(item)

    markers: dict[date, list[str]] = {}
    university = active_university(store)
    subject_filter = store.ui.filters.subject_id if store else None
    for subject in university.subjects if university else []:
        if subject_filter and subject.id != subject_filter:
            continue
        nearest = nearest_deadline(store, subject.id)
        if nearest is not None:
            markers.setdefault(nearest.deadline_date, []).append(subject.name)

    result = CalendarMonth(year=year, month=month)
    for week in calendar.Calendar(firstweekday=0).monthdayscalendar(year, month):
        row: list[Optional[CalendarDay]] = []
        for day_num in week:
            if day_num == 0:
                row.append(None)
                continue
            d = date(year, month, day_num)
            row.append(CalendarDay(
                day=d, items=by_date.get(d, []), subjects=markers.get(d, []),
            ))
        result.weeks.append(row)
    return result
