"""Tests für den Excel-/CSV-Import und den Abgleich mit dem Store."""

from pathlib import Path

import pytest

from data.excel_import import (
    ExcelImportError, NoValidDataError, SheetGrid, extract_groups, extract_sheet_rows,
    is_header_row, load_groups, normalize_text, read_workbook,
)
from data.reconcile import reconcile_groups
from models.item import Item, ItemStatus, Priority
from models.store import Store, UIState
from models.subject import Subject
from models.university import University


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _sheet(name: str, *rows) -> SheetGrid:
    return SheetGrid(name=name, rows=[list(r) for r in rows])


def _write_xlsx(path: Path, sheets: dict[str, list[list]]) -> Path:
    from openpyxl import Workbook
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


def _import(store: Store, *sheets: SheetGrid):
    return reconcile_groups(store, extract_groups(list(sheets)))


# ─── Normalisierung / Kopfzeilen ──────────────────────────────────────────────

class TestNormalization:
    def test_normalize_collapses_whitespace(self):
        assert normalize_text("  Bio   chimie\n ") == "Bio chimie"

    @pytest.mark.parametrize("value", [None, 42, 3.5, ""])
    def test_non_strings_become_empty(self, value):
        assert normalize_text(value) == ""

    @pytest.mark.parametrize("subject,title", [
        ("Matière", "Fiches de cours actualisées"),
        ("MATIERE", ""),
        ("", "Fiches de cours 2024"),
        ("", "Liste des FICHES DE COURS ACTUALISEES"),
        ("Matières du S1", "Fiche"),
    ])
    def test_header_rows(self, subject, title):
        assert is_header_row(subject, title) is True

    def test_regular_row_is_not_header(self):
        assert is_header_row("Biochimie", "Enzymes") is False


# ─── Zeilenextraktion ─────────────────────────────────────────────────────────

class TestExtraction:
    def test_header_row_produces_nothing(self):
        """["Matière", "Fiches de cours actualisées"] erzeugt keine Zeile."""
        rows = extract_sheet_rows(_sheet("U", ["Matière", "Fiches de cours actualisées"]))
        assert rows == []

    def test_carry_forward_subject(self):
        """Leere Matière übernimmt die zuletzt gesehene Matière des Blatts."""
        rows = extract_sheet_rows(_sheet("U", ["Bio", "Topic A"], ["", "Topic B"]))
        assert [(r.subject, r.title) for r in rows] == [("Bio", "Topic A"), ("Bio", "Topic B")]
        assert [r.row_index for r in rows] == [1, 2]

    def test_title_without_any_subject_is_skipped(self):
        rows = extract_sheet_rows(_sheet("U", ["", "Orphelin"], ["Bio", ""], ["", "A"]))
        assert [(r.subject, r.title) for r in rows] == [("Bio", "A")]

    def test_extra_columns_ignored(self):
        rows = extract_sheet_rows(_sheet("U", ["Bio", "A", "ignoré", 12]))
        assert rows[0].title == "A"

    def test_empty_sheets_are_dropped(self):
        groups = extract_groups([
            _sheet("  Paris   Cité ", ["Bio", "A"]),
            _sheet("Vide", ["Matière", "Fiche"], ["", ""]),
        ])
        assert [g.university_name for g in groups] == ["Paris Cité"]


# ─── Dateien lesen ────────────────────────────────────────────────────────────

class TestReadWorkbook:
    def test_read_xlsx_all_sheets(self, tmp_path: Path):
        path = _write_xlsx(tmp_path / "fiches.xlsx", {
            "Sorbonne": [["Matière", "Fiche"], ["Bio", "A"], [None, "B"]],
            "Lyon": [["Anatomie", "Cœur", "x"]],
        })
        sheets = read_workbook(path)
        assert [s.name for s in sheets] == ["Sorbonne", "Lyon"]
        assert sheets[0].rows[2] == ["", "B"]

    def test_load_groups_from_csv(self, tmp_path: Path):
        """CSV = ein Blatt, benannt nach dem Dateinamen (Semikolon erkannt)."""
        path = tmp_path / "Lyon.csv"
        path.write_text("Matière;Fiche\nBio;A\n;B\n", encoding="utf-8")
        groups = load_groups(path)
        assert groups[0].university_name == "Lyon"
        assert [r.title for r in groups[0].rows] == ["A", "B"]

    def test_unknown_suffix_raises(self, tmp_path: Path):
        path = tmp_path / "daten.txt"
        path.write_text("x")
        with pytest.raises(ExcelImportError):
            read_workbook(path)

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(ExcelImportError):
            read_workbook(tmp_path / "fehlt.xlsx")

    def test_no_valid_data_raises(self, tmp_path: Path):
        path = _write_xlsx(tmp_path / "leer.xlsx", {"S": [["Matière", "Fiche"]]})
        with pytest.raises(NoValidDataError):
            load_groups(path)


# ─── Abgleich ─────────────────────────────────────────────────────────────────

class TestReconcile:
    def test_creates_university_subjects_and_items(self):
        store = Store()
        report = _import(store, _sheet("Sorbonne", ["Bio", "A"], ["", "B"], ["Anat", "C"]))

        assert len(store.universities) == 1
        uni = store.universities[0]
        assert store.ui.active_university_id == uni.id
        assert [s.name for s in uni.subjects] == ["Bio", "Anat"]
        assert report.items_created == 3
        assert report.subjects_created == 2
        assert report.rows_processed == 3
        assert report.universities_created == [uni.id]
        assert report.message == "Import réussi : 3 nouvelles fiches créées sur 3 lignes"
        assert report.model_dump()["subjects_created"] == 2

        item = uni.items[0]
        assert item.status == ItemStatus.EN_ATTENTE
        assert item.priority == Priority.MOYENNE
        assert item.progress == 0
        assert item.deadline == ""
        assert item.subject_name_cache == "Bio"

    def test_import_twice_is_idempotent(self):
        """Zweiter Import derselben Datei erzeugt keine weiteren Fiches."""
        store = Store()
        sheet = _sheet("Sorbonne", ["Bio", "A"], ["", "B"])
        _import(store, sheet)
        report = _import(store, sheet)
        assert report.items_created == 0
        assert report.rows_processed == 2
        assert len(store.universities[0].items) == 2

    def test_duplicates_within_one_pass(self):
        store = Store()
        report = _import(store, _sheet("S", ["Bio", "A"], ["bio ", "A"]))
        assert report.items_created == 1
        assert len(store.universities[0].subjects) == 1

    def test_existing_items_untouched(self):
        """Bestehende Fiche behält Statut, Fortschritt und updatedAt."""
        item = Item(id="i-1", subject_id="s-1", title="A", status=ItemStatus.EN_COURS,
                    progress=40)
        stamp = item.updated_at
        store = Store(
            ui=UIState(active_university_id="u-1"),
            universities=[University(
                id="u-1", name="Sorbonne",
                subjects=[Subject(id="s-1", name="Bio")], items=[item],
            )],
        )
        report = _import(store, _sheet("SORBONNE", ["  BIO", "A"], ["Bio", "Nouveau"]))

        uni = store.universities[0]
        assert len(store.universities) == 1
        assert report.universities_created == []
        assert report.items_created == 1
        assert uni.items[0].status == ItemStatus.EN_COURS
        assert uni.items[0].progress == 40
        assert uni.items[0].updated_at == stamp
        assert uni.items[1].subject_id == "s-1"

    def test_last_group_becomes_active(self):
        store = Store()
        _import(store, _sheet("Paris", ["Bio", "A"]), _sheet("Lyon", ["Bio", "A"]))
        assert store.find_university(store.ui.active_university_id).name == "Lyon"
        assert len(store.universities) == 2
