"""Gemeinsame Hilfsfunktionen für Excel-Export und Terminal-Anzeige."""

from datetime import date, datetime
from typing import Optional

from models.item import Item, ItemStatus, Priority, parse_deadline

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    ItemStatus.EN_ATTENTE.value:   "E0E0E0",
    ItemStatus.EN_COURS.value:     "B3D4FF",
    ItemStatus.EN_RELECTURE.value: "FFF2B3",
    ItemStatus.VALIDE.value:       "B3FFB3",
    "overdue":                     "FF9999",
    "header":                      "4472C4",
}

# Rich-Stile je Statut und Priorität
STATUS_STYLES: dict[ItemStatus, str] = {
    ItemStatus.EN_ATTENTE: "dim",
    ItemStatus.EN_COURS: "blue",
    ItemStatus.EN_RELECTURE: "yellow",
    ItemStatus.VALIDE: "green",
}

PRIORITY_STYLES: dict[Priority, str] = {
    Priority.BASSE: "dim",
    Priority.MOYENNE: "",
    Priority.HAUTE: "bold red",
}


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Wandelt RRGGBB-String in (r, g, b)-Tupel um."""
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def today_str() -> str:
    """Gibt das heutige Datum als DD/MM/YYYY zurück."""
    return date.today().strftime("%d/%m/%Y")


def format_deadline(deadline: str) -> str:
    """ISO-Deadline → DD/MM/YYYY; leer bleibt leer, Unlesbares unverändert."""
    parsed = parse_deadline(deadline)
    if parsed is None:
        return deadline or ""
    return parsed.strftime("%d/%m/%Y")


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M")


def progress_bar(percent: int, width: int = 10) -> str:
    """Textbalken, z.B. '██████░░░░ 60%'."""
    percent = max(0, min(100, percent))
    filled = percent * width // 100
    return "█" * filled + "░" * (width - filled) + f" {percent}%"


def item_fill_color(item: Item, overdue: bool = False) -> str:
    """Hintergrundfarbe einer Fiche (überfällig schlägt Statut)."""
    if overdue:
        return COLORS["overdue"]
    return COLORS[item.status.value]
