"""Excel-/CSV-Import: Arbeitsmappe → Tabellenblätter → (Matière, Fiche)-Zeilen.

Lesen:        .xlsx über openpyxl, .csv als einzelnes Blatt (Name = Dateiname).
Extraktion:   Spalte A = Matière, Spalte B = Fiche; Kopf-/Legendenzeilen werden
              erkannt und übersprungen, leere Matière-Zellen übernehmen die
              zuletzt gesehene Matière des Blatts.
Jedes Blatt mit mindestens einer gültigen Zeile wird zu einer Université-Gruppe.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class ExcelImportError(Exception):
    """Fehler beim Lesen einer Arbeitsmappe."""


class NoValidDataError(ExcelImportError):
    """Die Arbeitsmappe enthält keine einzige verwertbare Zeile."""

    def __init__(self, message: str = (
        "Aucune donnée valide trouvée (colonnes Matière / Fiche attendues)"
    )) -> None:
        super().__init__(message)


@dataclass
class SheetGrid:
    """Ein Tabellenblatt als rechteckiges Zeilenraster (fehlende Zellen = "")."""

    name: str
    rows: list[list] = field(default_factory=list)


@dataclass
class ImportRow:
    """Eine verwertbare Zeile: Matière, Fiche-Titel, Zeilennummer (1-basiert)."""

    subject: str
    title: str
    row_index: int


@dataclass
class UniversityGroup:
    """Alle verwertbaren Zeilen eines Blatts, Schlüssel = normalisierter Blattname."""

    university_name: str
    rows: list[ImportRow] = field(default_factory=list)


# ─── Normalisierung ──────────────────────────────────────────────────────────

_WS_RE = re.compile(r"\s+")


def normalize_text(value) -> str:
    """Trimmt und fasst Whitespace zusammen; Nicht-Strings → ""."""
    if not value or not isinstance(value, str):
        return ""
    return _WS_RE.sub(" ", value.strip())


def _fold(text: str) -> str:
    """Kleinbuchstaben ohne Akzente (für Kopfzeilen-Erkennung)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower()


def is_header_row(subject: str, title: str) -> bool:
    """Erkennt Kopf- und Legendenzeilen ("Matière", "Fiches de cours actualisées")."""
    subj = _fold(subject)
    item = _fold(title)
    return (
        subj.startswith("mati")
        or "fiches de cours actualisees" in item
        or item.startswith("fiches de cours")
        or ("mati" in subj and "fiche" in item)
    )


def extract_sheet_rows(sheet: SheetGrid) -> list[ImportRow]:
    """Wandelt ein Blatt in verwertbare Zeilen um (Reihenfolge bleibt erhalten)."""
    rows: list[ImportRow] = []
    last_subject = ""
    for index, raw in enumerate(sheet.rows):
        subject = normalize_text(raw[0] if len(raw) > 0 else "")
        title = normalize_text(raw[1] if len(raw) > 1 else "")

        if is_header_row(subject, title):
            continue
        if not subject and title and last_subject:
            subject = last_subject
        if subject:
            last_subject = subject
        if title and subject:
            rows.append(ImportRow(subject=subject, title=title, row_index=index + 1))
    return rows


def extract_groups(sheets: list[SheetGrid]) -> list[UniversityGroup]:
    """Alle Blätter → Université-Gruppen; Blätter ohne Zeilen entfallen."""
    groups: list[UniversityGroup] = []
    for sheet in sheets:
        rows = extract_sheet_rows(sheet)
        name = normalize_text(sheet.name)
        if not rows or not name:
            logger.debug(f"Blatt '{sheet.name}' ohne verwertbare Zeilen übersprungen")
            continue
        groups.append(UniversityGroup(university_name=name, rows=rows))
    return groups


# ─── Lesen ───────────────────────────────────────────────────────────────────

def _cell(value):
    return "" if value is None else value


class ExcelImporter:
    """Liest alle Blätter einer .xlsx-Arbeitsmappe als Zeilenraster."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._wb = None

    def _open(self):
        try:
            import openpyxl
            self._wb = openpyxl.load_workbook(
                str(self.path), read_only=True, data_only=True
            )
        except FileNotFoundError:
            raise ExcelImportError(f"Datei nicht gefunden: {self.path}")
        except Exception as e:
            raise ExcelImportError(f"Fehler beim Öffnen der Excel-Datei: {e}")

    def read_sheets(self) -> list[SheetGrid]:
        if self._wb is None:
            self._open()
        sheets = []
        try:
            for name in self._wb.sheetnames:
                ws = self._wb[name]
                rows = [
                    [_cell(v) for v in row]
                    for row in ws.iter_rows(values_only=True)
                ]
                sheets.append(SheetGrid(name=name, rows=_rectangular(rows)))
        finally:
            self._wb.close()
            self._wb = None
        logger.info(f"{self.path.name}: {len(sheets)} Blätter gelesen")
        return sheets


class CsvImporter(ExcelImporter):
    """Liest eine einzelne .csv-Datei als ein Blatt (Name = Dateiname ohne Suffix)."""

    def read_sheets(self) -> list[SheetGrid]:
        import csv

        if not self.path.exists():
            raise ExcelImportError(f"Datei nicht gefunden: {self.path}")
        try:
            with open(self.path, encoding="utf-8-sig", newline="") as f:
                sample = f.read(4096)
                f.seek(0)
                try:
                    dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
                except csv.Error:
                    dialect = csv.excel
                rows = [list(row) for row in csv.reader(f, dialect)]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise ExcelImportError(f"Fehler beim Lesen der CSV-Datei: {e}")
        return [SheetGrid(name=self.path.stem, rows=_rectangular(rows))]


def _rectangular(rows: list[list]) -> list[list]:
    """Füllt kürzere Zeilen mit "" auf die maximale Spaltenzahl auf."""
    width = max((len(r) for r in rows), default=0)
    return [list(r) + [""] * (width - len(r)) for r in rows]


def read_workbook(path: Path) -> list[SheetGrid]:
    """Liest .xlsx oder .csv → Liste von SheetGrid.

    Raises:
        ExcelImportError: Bei unbekanntem Format oder unlesbarer Datei.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        return ExcelImporter(path).read_sheets()
    if suffix == ".csv":
        return CsvImporter(path).read_sheets()
    raise ExcelImportError(
        f"Unbekanntes Dateiformat: {path}. Erwartet: .xlsx oder .csv."
    )


def load_groups(path: Path) -> list[UniversityGroup]:
    """Liest eine Datei und extrahiert die Université-Gruppen.

    Raises:
        ExcelImportError: Datei unlesbar.
        NoValidDataError: Keine verwertbare Zeile in der ganzen Arbeitsmappe.
    """
    groups = extract_groups(read_workbook(path))
    if not groups:
        raise NoValidDataError()
    return groups
