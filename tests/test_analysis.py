"""Tests für Selektoren, KPIs und die abgeleiteten Ansichten (Tabelle, Kanban, Kalender)."""

from datetime import date, timedelta

import pytest

from analysis.selectors import (
    active_university, all_owners, filtered_items, is_overdue, kpis, nearest_deadline,
    round_half_up, subject_progress,
)
from analysis.views import (
    SortColumn, calendar_month, kanban_columns, search_items, sort_items, table_groups,
)
from models.item import Item, ItemStatus, Priority
from models.store import Filters, Store, UIState
from models.subject import Subject
from models.university import University

TODAY = date(2024, 5, 15)


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _item(item_id: str, subject_id: str = "s-bio", **fields) -> Item:
    fields.setdefault("title", f"Fiche {item_id}")
    return Item(id=item_id, subject_id=subject_id, **fields)


def _make_store(items: list[Item], **filters) -> Store:
    uni = University(
        id="u-1", name="Sorbonne",
        subjects=[
            Subject(id="s-bio", name="Biochimie", owner="Dr. Martin", method="NB_AUDIO_AKV"),
            Subject(id="s-ana", name="Anatomie", owner=" Dr. Dupont ", remark="urgent"),
            Subject(id="s-phy", name="Physiologie"),
        ],
        items=items,
    )
    return Store(
        ui=UIState(active_university_id="u-1", filters=Filters(**filters)),
        universities=[uni],
    )


def _kpi_store() -> Store:
    return _make_store([
        _item("a", status=ItemStatus.EN_ATTENTE, progress=0),
        _item("b", status=ItemStatus.EN_COURS, progress=50),
        _item("c", status=ItemStatus.VALIDE, progress=100),
        _item("d", status=ItemStatus.VALIDE, progress=100),
    ])


# ─── Rundung ──────────────────────────────────────────────────────────────────

class TestRounding:
    @pytest.mark.parametrize("num,den,expected", [
        (250, 4, 63), (249, 4, 62), (1, 2, 1), (1, 3, 0), (200, 3, 67), (0, 5, 0),
    ])
    def test_round_half_up(self, num, den, expected):
        assert round_half_up(num, den) == expected


# ─── Überfälligkeit ───────────────────────────────────────────────────────────

class TestIsOverdue:
    def test_yesterday_is_overdue(self):
        """Deadline gestern, nicht validiert → überfällig."""
        item = _item("x", deadline=(TODAY - timedelta(days=1)).isoformat())
        assert is_overdue(item, TODAY) is True

    def test_yesterday_validated_is_not_overdue(self):
        item = _item("x", deadline=(TODAY - timedelta(days=1)).isoformat(),
                     status=ItemStatus.VALIDE)
        assert is_overdue(item, TODAY) is False

    def test_today_is_not_overdue(self):
        assert is_overdue(_item("x", deadline=TODAY.isoformat()), TODAY) is False

    def test_timestamp_deadline_compares_dates(self):
        """Uhrzeit der Deadline spielt keine Rolle."""
        item = _item("x", deadline=f"{TODAY.isoformat()}T00:00:01")
        assert is_overdue(item, TODAY) is False

    @pytest.mark.parametrize("deadline", ["", "bientôt"])
    def test_empty_or_invalid_deadline_not_overdue(self, deadline):
        assert is_overdue(_item("x", deadline=deadline), TODAY) is False


# ─── Filter ───────────────────────────────────────────────────────────────────

class TestFilteredItems:
    def _items(self) -> list[Item]:
        return [
            _item("1", "s-bio", status=ItemStatus.EN_COURS, priority=Priority.HAUTE,
                  deadline="2024-05-01"),
            _item("2", "s-bio", deadline=""),
            _item("3", "s-ana", status=ItemStatus.EN_COURS, deadline="2024-06-01"),
            _item("4", "s-ana", status=ItemStatus.VALIDE, deadline="2024-05-01"),
        ]

    def _ids(self, store: Store) -> list[str]:
        return [i.id for i in filtered_items(store, TODAY)]

    def test_no_filters_returns_all(self):
        assert self._ids(_make_store(self._items())) == ["1", "2", "3", "4"]

    def test_no_active_university(self):
        store = _make_store(self._items())
        store.ui.active_university_id = None
        assert filtered_items(store) == []
        assert active_university(store) is None

    def test_subject_filter(self):
        assert self._ids(_make_store(self._items(), subject_id="s-ana")) == ["3", "4"]

    def test_owner_filter_resolves_via_subject(self):
        """Responsable wird über die Matière der Fiche aufgelöst (exakter Vergleich)."""
        assert self._ids(_make_store(self._items(), owner="Dr. Martin")) == ["1", "2"]

    def test_status_and_priority_filters(self):
        store = _make_store(self._items(), status=ItemStatus.EN_COURS, priority=Priority.HAUTE)
        assert self._ids(store) == ["1"]

    def test_overdue_only(self):
        """Validierte Fiche mit alter Deadline ist nicht überfällig."""
        assert self._ids(_make_store(self._items(), overdue_only=True)) == ["1"]

    def test_has_deadline_none_equals_no_filter(self):
        items = self._items()
        assert self._ids(_make_store(items, has_deadline=None)) == self._ids(_make_store(items))

    def test_has_deadline_false_returns_only_empty_deadlines(self):
        assert self._ids(_make_store(self._items(), has_deadline=False)) == ["2"]

    def test_has_deadline_true(self):
        assert self._ids(_make_store(self._items(), has_deadline=True)) == ["1", "3", "4"]


# ─── Matière-Ableitungen ──────────────────────────────────────────────────────

class TestSubjectSelectors:
    def test_subject_progress_uses_effective_progress(self):
        store = _make_store([
            _item("1", status=ItemStatus.VALIDE, progress=10),
            _item("2", progress=25),
        ])
        assert subject_progress(store, "s-bio") == 63

    def test_subject_progress_without_items(self):
        assert subject_progress(_make_store([]), "s-phy") == 0

    def test_nearest_deadline_skips_invalid_and_keeps_first_on_tie(self):
        store = _make_store([
            _item("1", deadline="n'importe"),
            _item("2", deadline="2024-06-01"),
            _item("3", deadline="2024-05-20"),
            _item("4", deadline="2024-05-20T10:00:00"),
        ])
        assert nearest_deadline(store, "s-bio").id == "3"

    def test_nearest_deadline_none(self):
        store = _make_store([_item("1", deadline="")])
        assert nearest_deadline(store, "s-bio") is None

    def test_all_owners_sorted_and_trimmed(self):
        assert all_owners(_make_store([])) == ["Dr. Dupont", "Dr. Martin"]


# ─── KPIs ─────────────────────────────────────────────────────────────────────

class TestKpis:
    def test_kpi_scenario(self):
        """4 Fiches [EN_ATTENTE, EN_COURS, VALIDE, VALIDE], Fortschritt [0,50,100,100]."""
        report = kpis(_kpi_store(), TODAY)
        assert report.total == 4
        assert report.validated == 2
        assert report.validated_percent == 50
        assert report.average_progress == 63
        assert report.by_status[ItemStatus.VALIDE] == 2
        assert report.by_status[ItemStatus.EN_RELECTURE] == 0

    def test_kpis_follow_filters(self):
        store = _kpi_store()
        store.ui.filters.status = ItemStatus.EN_COURS
        report = kpis(store, TODAY)
        assert report.total == 1
        assert report.validated_percent == 0
        assert report.average_progress == 50

    def test_kpis_empty(self):
        report = kpis(_make_store([]), TODAY)
        assert report.total == 0
        assert report.validated_percent == 0
        assert report.average_progress == 0

    def test_kpis_without_active_university(self):
        store = _kpi_store()
        store.ui.active_university_id = None
        assert kpis(store).total == 0

    def test_overdue_count(self):
        store = _make_store([
            _item("1", deadline="2024-05-14"),
            _item("2", deadline="2024-05-15"),
        ])
        assert kpis(store, TODAY).overdue == 1

    def test_status_distribution(self):
        rows = kpis(_kpi_store(), TODAY).status_distribution()
        assert [s for s, _, _ in rows] == list(ItemStatus)
        assert rows[0] == (ItemStatus.EN_ATTENTE, 1, 25)
        assert rows[3] == (ItemStatus.VALIDE, 2, 50)


# ─── Ansichten ────────────────────────────────────────────────────────────────

class TestViews:
    def _items(self) -> list[Item]:
        return [
            _item("1", "s-bio", title="Enzymes", priority=Priority.HAUTE, deadline="2024-05-20",
                  progress=30),
            _item("2", "s-ana", title="Cœur", deadline="", status=ItemStatus.VALIDE),
            _item("3", "s-bio", title="acides aminés", priority=Priority.BASSE,
                  deadline="2024-05-02", progress=80),
        ]

    def test_search_matches_subject_or_title(self):
        store = _make_store(self._items())
        items = store.universities[0].items
        assert [i.id for i in search_items(store, items, "ANATO")] == ["2"]
        assert [i.id for i in search_items(store, items, "enzy")] == ["1"]
        assert len(search_items(store, items, "  ")) == 3

    @pytest.mark.parametrize("column,expected", [
        (SortColumn.TITLE, ["3", "2", "1"]),
        (SortColumn.PRIORITY, ["3", "2", "1"]),
        (SortColumn.DEADLINE, ["2", "3", "1"]),
        (SortColumn.PROGRESS, ["1", "3", "2"]),
        (SortColumn.STATUS, ["1", "3", "2"]),
    ])
    def test_sort_items(self, column, expected):
        items = self._items()
        assert [i.id for i in sort_items(items, column)] == expected

    def test_sort_descending(self):
        items = self._items()
        assert [i.id for i in sort_items(items, SortColumn.PROGRESS, True)] == ["2", "3", "1"]

    def test_sort_none_keeps_order(self):
        assert [i.id for i in sort_items(self._items(), None)] == ["1", "2", "3"]

    def test_table_groups_first_appearance_order(self):
        groups = table_groups(_make_store(self._items()))
        assert [g.name for g in groups] == ["Biochimie", "Anatomie"]
        bio = groups[0]
        assert bio.item_count == 2
        assert bio.method == "NB + audio + AKV"
        assert bio.owner == "Dr. Martin"
        assert bio.progress == 55
        assert groups[1].remark == "urgent"

    def test_table_groups_sorted(self):
        groups = table_groups(_make_store(self._items()), column=SortColumn.DEADLINE)
        assert [g.name for g in groups] == ["Anatomie", "Biochimie"]
        assert [i.id for i in groups[1].items] == ["3", "1"]

    def test_kanban_columns_has_every_status(self):
        columns = kanban_columns(_make_store(self._items()))
        assert list(columns) == list(ItemStatus)
        assert [i.id for i in columns[ItemStatus.EN_ATTENTE]] == ["1", "3"]
        assert [i.id for i in columns[ItemStatus.VALIDE]] == ["2"]
        assert columns[ItemStatus.EN_COURS] == []

    def test_calendar_month_monday_first(self):
        """Mai 2024 beginnt an einem Mittwoch."""
        month = calendar_month(_make_store(self._items()), 2024, 5)
        assert month.weeks[0][:2] == [None, None]
        assert month.weeks[0][2].day == date(2024, 5, 1)
        assert len(month.days()) == 31
        by_day = {d.day: [i.id for i in d.items] for d in month.days()}
        assert by_day[date(2024, 5, 20)] == ["1"]
        assert by_day[date(2024, 5, 2)] == ["3"]

    def test_calendar_marks_nearest_subject_deadline(self):
        month = calendar_month(_make_store(self._items()), 2024, 5)
        markers = {d.day: d.subjects for d in month.days() if d.subjects}
        assert markers == {date(2024, 5, 2): ["Biochimie"]}

    def test_calendar_markers_follow_subject_filter(self):
        store = _make_store(self._items(), subject_id="s-ana")
        assert all(not d.subjects for d in calendar_month(store, 2024, 5).days())

    def test_calendar_skips_invalid_deadlines(self):
        store = _make_store([_item("1", deadline="plus tard")])
        month = calendar_month(store, 2024, 5)
        assert all(not d.items for d in month.days())
