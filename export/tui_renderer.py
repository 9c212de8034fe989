"""Terminal-Darstellung des Dashboards mit rich.

Die *_rows-Funktionen liefern reine Textzeilen (testbar ohne Terminal),
die build_*-Funktionen daraus rich-Tabellen bzw. -Panels für main.py.
"""

from datetime import date
from typing import Optional

from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from analysis.selectors import KpiReport, active_university, is_overdue, kpis
from analysis.views import (
    CalendarMonth, SortColumn, SubjectGroup, calendar_month, kanban_columns, table_groups,
)
from config.defaults import priority_label, status_label
from models.item import Item, ItemStatus
from models.store import Store, ViewName

from export.helpers import (
    PRIORITY_STYLES, STATUS_STYLES, format_deadline, progress_bar,
)

WEEKDAYS = ["Lun", "Mar", "Mer", "Jeu", "Ven", "Sam", "Dim"]
MONTHS = [
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin", "Juillet",
    "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]


# ─── Kopfbereich ──────────────────────────────────────────────────────────────

def build_tabs(store: Store) -> Text:
    """Université-Reiter; die aktive fett und unterstrichen."""
    text = Text()
    if not store.universities:
        return Text("Aucune université. Importez un fichier Excel.", style="italic")
    for i, university in enumerate(store.universities):
        if i:
            text.append("  │  ", style="dim")
        style = "bold underline cyan" if university.id == store.ui.active_university_id else ""
        text.append(university.name, style=style)
    return text


def kpi_rows(report: KpiReport) -> list[list[str]]:
    return [
        ["Total fiches", str(report.total)],
        ["Validées", f"{report.validated} ({report.validated_percent}%)"],
        ["En retard", str(report.overdue)],
        ["Avancement moyen", progress_bar(report.average_progress)],
    ]


def build_kpis(report: KpiReport) -> Table:
    table = Table(box=box.ROUNDED, show_header=False, title="Indicateurs")
    table.add_column("KPI", style="bold")
    table.add_column("Valeur")
    for label, value in kpi_rows(report):
        table.add_row(label, value)
    for status, count, percent in report.status_distribution():
        table.add_row(
            Text(status_label(status), style=STATUS_STYLES[status]), f"{count} ({percent}%)"
        )
    return table


def filter_summary(store: Store) -> str:
    """Aktive Filter als eine Zeile, z.B. 'statut=En cours, en retard'."""
    f = store.ui.filters
    parts = []
    if f.subject_id:
        university = active_university(store)
        name = university.subject_name(f.subject_id) if university else ""
        parts.append(f"matière={name or f.subject_id}")
    if f.owner:
        parts.append(f"responsable={f.owner}")
    if f.status is not None:
        parts.append(f"statut={status_label(f.status)}")
    if f.priority is not None:
        parts.append(f"priorité={priority_label(f.priority)}")
    if f.overdue_only:
        parts.append("en retard")
    if f.has_deadline is True:
        parts.append("avec deadline")
    elif f.has_deadline is False:
        parts.append("sans deadline")
    return ", ".join(parts) if parts else "aucun"


# ─── Tabelle ──────────────────────────────────────────────────────────────────

def item_row(item: Item, today: Optional[date] = None) -> list[str]:
    deadline = format_deadline(item.deadline)
    if deadline and is_overdue(item, today):
        deadline += " ⚠"
    return [
        item.title,
        status_label(item.status),
        priority_label(item.priority),
        deadline,
        f"{item.effective_progress}%",
        item.professor,
        item.comment,
    ]


def build_table_view(groups: list[SubjectGroup], today: Optional[date] = None) -> Table:
    table = Table(box=box.SIMPLE_HEAVY, expand=True)
    for header in ("Fiche", "Statut", "Priorité", "Deadline", "Avanc.", "Prof. amphi",
                   "Commentaire"):
        table.add_column(header)
    for group in groups:
        meta = " · ".join(p for p in (group.owner, group.method, group.remark) if p)
        table.add_row(
            Text(f"{group.name} ({group.item_count})", style="bold magenta"),
            meta, "", "", progress_bar(group.progress), "", "",
        )
        for item in group.items:
            cells = item_row(item, today)
            table.add_row(
                "  " + cells[0],
                Text(cells[1], style=STATUS_STYLES[item.status]),
                Text(cells[2], style=PRIORITY_STYLES[item.priority]),
                Text(cells[3], style="red" if cells[3].endswith("⚠") else ""),
                *cells[4:],
            )
        table.add_section()
    return table


# ─── Kanban ───────────────────────────────────────────────────────────────────

def kanban_rows(store: Store) -> dict[ItemStatus, list[str]]:
    """Karten-Texte je Statut-Spalte ('Titel · Matière')."""
    university = active_university(store)
    result = {}
    for status, items in kanban_columns(store).items():
        result[status] = [
            f"{i.title} · {university.subject_name(i.subject_id) if university else ''}"
            for i in items
        ]
    return result


def build_kanban(store: Store) -> Table:
    columns = kanban_rows(store)
    table = Table(box=box.ROUNDED, expand=True)
    for status in ItemStatus:
        table.add_column(
            f"{status_label(status)} ({len(columns[status])})",
            style=STATUS_STYLES[status],
        )
    height = max((len(c) for c in columns.values()), default=0)
    for row in range(height):
        table.add_row(*[
            columns[s][row] if row < len(columns[s]) else "" for s in ItemStatus
        ])
    return table


# ─── Kalender ─────────────────────────────────────────────────────────────────

def calendar_rows(month: CalendarMonth) -> list[list[str]]:
    """Wochenzeilen; Zelle = Tag + Anzahl Fiches, leer außerhalb des Monats.

    ◆ markiert Tage, an denen die nächste Deadline einer Matière liegt.
    """
    rows = []
    for week in month.weeks:
        cells = []
        for day in week:
            if day is None:
                cells.append("")
                continue
            cell = str(day.day.day)
            if day.items:
                cell += f" ● {len(day.items)}"
            if day.subjects:
                cell += " ◆"
            cells.append(cell)
        rows.append(cells)
    return rows


def build_calendar(month: CalendarMonth) -> Panel:
    table = Table(box=box.SQUARE, expand=True)
    for name in WEEKDAYS:
        table.add_column(name, justify="center")
    for cells in calendar_rows(month):
        table.add_row(*cells)

    details = Table(box=None, show_header=False)
    details.add_column("Jour", style="bold")
    details.add_column("Fiches")
    for day in month.days():
        entries = [i.title for i in day.items] + [f"({name})" for name in day.subjects]
        if entries:
            details.add_row(day.day.strftime("%d/%m"), ", ".join(entries))
    title = f"{MONTHS[month.month - 1]} {month.year}"
    return Panel(Group(table, details), title=title, border_style="cyan")


# ─── Gesamtansicht ────────────────────────────────────────────────────────────

def build_dashboard(
    store: Store,
    view: Optional[ViewName] = None,
    term: str = "",
    column: Optional[SortColumn] = None,
    descending: bool = False,
    today: Optional[date] = None,
) -> list:
    """Alle Renderables in Anzeigereihenfolge (Reiter, KPIs, Filter, Ansicht)."""
    today = today or date.today()
    view = ViewName(view or store.ui.view)
    parts = [
        build_tabs(store),
        build_kpis(kpis(store, today)),
        Text(f"Filtres : {filter_summary(store)}", style="dim"),
    ]
    if view is ViewName.KANBAN:
        parts.append(build_kanban(store))
    elif view is ViewName.CALENDAR:
        parts.append(build_calendar(calendar_month(store, today.year, today.month)))
    else:
        groups = table_groups(store, term, column, descending)
        if groups:
            parts.append(build_table_view(groups, today))
        else:
            parts.append(Text("Aucune fiche ne correspond aux filtres.", style="italic"))
    return parts
