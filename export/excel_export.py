"""Excel-Export des Dashboards (openpyxl): ein Tabellenblatt pro Université.

Spalte A/B sind Matière/Fiche wie in der Import-Vorlage; eine exportierte
Arbeitsmappe lässt sich wieder importieren (die Kopfzeile wird dabei erkannt
und übersprungen).
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import Optional

from analysis.selectors import is_overdue
from config.defaults import method_label, priority_label, status_label
from models.store import Store
from models.university import University

from export.helpers import (
    COLORS, format_deadline, format_timestamp, item_fill_color,
)

logger = logging.getLogger(__name__)

HEADERS = [
    "Matière", "Fiche", "Statut", "Priorité", "Responsable", "Méthode",
    "Deadline", "Avancement", "Commentaire", "Prof. amphi", "Dernière MAJ",
]

_INVALID_TITLE_RE = re.compile(r"[\[\]:*?/\\]")


def sheet_title(name: str, used: set[str]) -> str:
    """Gültiger, eindeutiger Blattname (max. 31 Zeichen, ohne []:*?/\\)."""
    base = _INVALID_TITLE_RE.sub("-", name).strip() or "Université"
    base = base[:31]
    title, n = base, 2
    while title.lower() in used:
        suffix = f" ({n})"
        title = base[: 31 - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


class ExcelExporter:
    """Exportiert alle Universités eines Stores in eine .xlsx-Datei."""

    # Spaltenbreiten (Excel-Einheiten), Reihenfolge wie HEADERS
    COL_WIDTHS = [24, 40, 14, 11, 20, 24, 12, 12, 36, 20, 17]

    ROW_HEADER_H = 22

    def __init__(self, store: Store, today: Optional[date] = None):
        self.store = store
        self.today = today or date.today()

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path) -> Path:
        """Erstellt die Excel-Datei; ohne Universités ein leeres Blatt mit Kopfzeile."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        used: set[str] = set()
        for university in self.store.universities:
            self._sheet_university(wb, university, sheet_title(university.name, used))
        if not self.store.universities:
            ws = wb.create_sheet(title="Dashboard")
            self._setup_sheet(ws)
            self._write_header_row(ws)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Excel-Export geschrieben: {output_path}")
        return output_path

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _setup_sheet(self, ws) -> None:
        from openpyxl.utils import get_column_letter
        for col, width in enumerate(self.COL_WIDTHS, 1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = "C2"

    def _write_header_row(self, ws) -> None:
        from openpyxl.styles import Alignment, Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(HEADERS, 1):
            cell = ws.cell(row=1, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border
        ws.row_dimensions[1].height = self.ROW_HEADER_H

    # ─── Sheet: Université ────────────────────────────────────────────────────

    def _sheet_university(self, wb, university: University, title: str) -> None:
        from openpyxl.styles import Alignment

        ws = wb.create_sheet(title=title)
        self._setup_sheet(ws)
        self._write_header_row(ws)
        border = self._thin_border()
        wrap = Alignment(wrap_text=True, vertical="top")

        row = 2
        for subject in university.subjects:
            for item in university.items_of_subject(subject.id):
                values = [
                    subject.name,
                    item.title,
                    status_label(item.status),
                    priority_label(item.priority),
                    subject.owner,
                    method_label(subject.method),
                    format_deadline(item.deadline),
                    item.effective_progress / 100,
                    item.comment,
                    item.professor,
                    format_timestamp(item.updated_at),
                ]
                for col, value in enumerate(values, 1):
                    c = ws.cell(row=row, column=col, value=value)
                    c.border = border
                    c.alignment = wrap
                ws.cell(row=row, column=8).number_format = "0%"
                ws.cell(row=row, column=3).fill = self._fill(
                    item_fill_color(item, is_overdue(item, self.today))
                )
                row += 1

        if row > 2:
            ws.auto_filter.ref = f"A1:K{row - 1}"
