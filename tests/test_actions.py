"""Tests für die Mutationsaktionen (Fiches, Matières, Universités, UI-Zustand)."""

import asyncio

import pytest

from actions import ActionResult, parse_tristate
from models.item import Item, ItemStatus, Priority
from models.store import FilterField, Store, UIState, ViewName
from models.subject import Subject
from models.university import University
from sync import DashboardSession, MemoryAdapter, RecordKind


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

class FailingAdapter(MemoryAdapter):
    """Speichert nichts; jeder Schreibzugriff schlägt fehl."""

    async def upsert_item(self, item_id, subject_id, item) -> bool:
        return False

    async def upsert_subject(self, subject_id, university_id, subject) -> bool:
        return False

    async def delete_item(self, item_id) -> bool:
        return False

    async def delete_subject(self, subject_id) -> bool:
        return False

    async def delete_university(self, university_id) -> bool:
        return False


def _make_store() -> Store:
    sorbonne = University(
        id="u-1", name="Sorbonne",
        subjects=[
            Subject(id="s-bio", name="Biochimie", owner="Dr. Martin"),
            Subject(id="s-ana", name="Anatomie"),
        ],
        items=[
            Item(id="i-1", subject_id="s-bio", title="Enzymes", progress=20),
            Item(id="i-2", subject_id="s-bio", title="Lipides"),
            Item(id="i-3", subject_id="s-bio", title="Glucides"),
            Item(id="i-4", subject_id="s-ana", title="Cœur"),
        ],
    )
    lyon = University(id="u-2", name="Lyon")
    return Store(ui=UIState(active_university_id="u-1"), universities=[sorbonne, lyon])


def _session(adapter=None) -> DashboardSession:
    session = DashboardSession(adapter=adapter or MemoryAdapter())
    session.store = _make_store()
    session.loaded = True
    return session


def _run(coro):
    return asyncio.run(coro)


def _uni(session: DashboardSession) -> University:
    return session.store.find_university("u-1")


# ─── ActionResult ─────────────────────────────────────────────────────────────

class TestActionResult:
    def test_falsy_when_rejected(self):
        assert not ActionResult(ok=False)
        assert ActionResult(ok=True)

    @pytest.mark.parametrize("value,expected", [
        (None, None), ("", None), ("any", None), (True, True), ("oui", True),
        ("false", False), ("0", False),
    ])
    def test_parse_tristate(self, value, expected):
        assert parse_tristate(value) is expected

    def test_parse_tristate_invalid(self):
        with pytest.raises(ValueError):
            parse_tristate("vielleicht")


# ─── update_item / move_item_status ───────────────────────────────────────────

class TestUpdateItem:
    def test_update_fields(self):
        session = _session()
        result = _run(session.actions.update_item("i-1", {
            "status": "EN_COURS", "priority": "HAUTE", "deadline": "2024-06-01",
            "progress": 60, "comment": "ok", "professor": "Pr. X",
        }))
        assert result
        item = _uni(session).find_item("i-1")
        assert item.status == ItemStatus.EN_COURS
        assert item.priority == Priority.HAUTE
        assert item.deadline == "2024-06-01"
        assert item.progress == 60
        assert item.professor == "Pr. X"

    def test_validated_forces_progress_100(self):
        """Statut VALIDE erzwingt Fortschritt 100, egal was übergeben wurde."""
        session = _session()
        _run(session.actions.update_item("i-1", {"status": "VALIDE", "progress": 30}))
        assert _uni(session).find_item("i-1").progress == 100

    def test_move_item_status_forces_progress(self):
        session = _session()
        assert _run(session.actions.move_item_status("i-2", ItemStatus.VALIDE))
        item = _uni(session).find_item("i-2")
        assert item.status == ItemStatus.VALIDE
        assert item.progress == 100

    def test_validated_always_has_full_progress(self):
        session = _session()
        for item_id in ("i-1", "i-2", "i-3"):
            _run(session.actions.update_item(item_id, {"status": "VALIDE"}))
        for item in _uni(session).items:
            if item.status == ItemStatus.VALIDE:
                assert item.progress == 100

    def test_protected_fields_are_ignored(self):
        session = _session()
        result = _run(session.actions.update_item("i-1", {
            "id": "neu", "subjectId": "s-ana", "title": "Autre", "subjectNameCache": "X",
            "comment": "vu",
        }))
        assert result
        item = _uni(session).find_item("i-1")
        assert (item.subject_id, item.title, item.comment) == ("s-bio", "Enzymes", "vu")

    def test_stamps_updated_at(self):
        session = _session()
        before = _uni(session).find_item("i-1").updated_at
        _run(session.actions.update_item("i-1", {"comment": "neu"}))
        assert _uni(session).find_item("i-1").updated_at >= before

    def test_unknown_item_fails_without_change(self):
        session = _session()
        before = session.store.model_dump()
        result = _run(session.actions.update_item("fehlt", {"comment": "x"}))
        assert not result
        assert session.store.model_dump() == before

    def test_item_of_other_university_not_found(self):
        """Aktionen wirken nur auf die aktive Université."""
        session = _session()
        session.store.ui.active_university_id = "u-2"
        assert not _run(session.actions.update_item("i-1", {"comment": "x"}))

    @pytest.mark.parametrize("fields", [
        {"status": "TERMINE"},
        {"progress": 150},
        {"deadline": "demain"},
        {"inconnu": 1},
    ])
    def test_invalid_values_rejected(self, fields):
        session = _session()
        result = _run(session.actions.update_item("i-1", fields))
        assert not result
        assert _uni(session).find_item("i-1").progress == 20

    def test_item_is_pushed_to_adapter(self):
        adapter = MemoryAdapter()
        session = _session(adapter)
        _run(session.actions.update_item("i-1", {"comment": "sync"}))
        assert adapter.tables[RecordKind.ITEM]["i-1"]["comment"] == "sync"
        assert adapter.tables[RecordKind.SUBJECT] == {}

    def test_remote_failure_keeps_local_change(self):
        session = _session(FailingAdapter())
        result = _run(session.actions.update_item("i-1", {"comment": "local"}))
        assert result
        assert result.failed_writes == 1
        assert _uni(session).find_item("i-1").comment == "local"


# ─── Löschen ──────────────────────────────────────────────────────────────────

class TestDelete:
    def test_delete_item(self):
        session = _session()
        assert _run(session.actions.delete_item("i-4"))
        assert _uni(session).find_item("i-4") is None

    def test_delete_unknown_item(self):
        assert not _run(_session().actions.delete_item("fehlt"))

    def test_delete_subject_cascades(self):
        """Matière mit 3 Fiches löschen entfernt alle 3 Fiches und die Matière."""
        session = _session()
        assert _run(session.actions.delete_subject("s-bio"))
        uni = _uni(session)
        assert uni.find_subject("s-bio") is None
        assert [i.id for i in uni.items] == ["i-4"]
        assert uni.orphan_items() == []

    def test_delete_active_university_activates_first_remaining(self):
        session = _session()
        assert _run(session.actions.delete_university("u-1"))
        assert session.store.ui.active_university_id == "u-2"

    def test_delete_inactive_university_keeps_active(self):
        session = _session()
        _run(session.actions.delete_university("u-2"))
        assert session.store.ui.active_university_id == "u-1"

    def test_delete_last_university(self):
        session = _session()
        _run(session.actions.delete_university("u-2"))
        _run(session.actions.delete_university("u-1"))
        assert session.store.ui.active_university_id is None

    def test_delete_all_resets_ui(self):
        session = _session()
        session.store.ui.view = ViewName.KANBAN
        session.store.ui.filters.overdue_only = True
        result = _run(session.actions.delete_all())
        assert result
        assert session.store.universities == []
        assert session.store.ui.active_university_id is None
        assert session.store.ui.view == ViewName.TABLE
        assert session.store.ui.filters.overdue_only is False

    def test_delete_all_counts_failures(self):
        result = _run(_session(FailingAdapter()).actions.delete_all())
        assert result
        assert result.failed_writes == 2


# ─── Matières ─────────────────────────────────────────────────────────────────

class TestSubjectActions:
    def test_assign_subject_meta_trims_owner(self):
        session = _session()
        assert _run(session.actions.assign_subject_meta(
            "s-ana", "  Dr. Dupont ", "NB_AUDIO_POLY", "à revoir"))
        subject = _uni(session).find_subject("s-ana")
        assert (subject.owner, subject.method, subject.remark) == (
            "Dr. Dupont", "NB_AUDIO_POLY", "à revoir")

    def test_assign_unknown_subject(self):
        assert not _run(_session().actions.assign_subject_meta("fehlt", "X"))

    def test_set_subject_deadline_bulk(self):
        session = _session()
        result = _run(session.actions.set_subject_deadline("s-bio", "2024-07-01"))
        assert result
        deadlines = {i.id: i.deadline for i in _uni(session).items}
        assert deadlines == {"i-1": "2024-07-01", "i-2": "2024-07-01", "i-3": "2024-07-01",
                             "i-4": ""}

    def test_clear_subject_deadline(self):
        session = _session()
        _run(session.actions.set_subject_deadline("s-bio", "2024-07-01"))
        _run(session.actions.set_subject_deadline("s-bio", ""))
        assert all(i.deadline == "" for i in _uni(session).items)

    def test_subject_deadline_without_items_is_noop(self):
        session = _session()
        _run(session.actions.delete_item("i-4"))
        assert _run(session.actions.set_subject_deadline("s-ana", "2024-07-01"))

    def test_invalid_subject_deadline(self):
        session = _session()
        assert not _run(session.actions.set_subject_deadline("s-bio", "31/02"))
        assert all(i.deadline == "" for i in _uni(session).items)

    def test_subject_deadline_failures_counted(self):
        result = _run(_session(FailingAdapter()).actions.set_subject_deadline(
            "s-bio", "2024-07-01"))
        assert result.failed_writes == 3


# ─── UI-Zustand ───────────────────────────────────────────────────────────────

class TestUIActions:
    def test_set_active_university(self):
        session = _session()
        assert _run(session.actions.set_active_university("u-2"))
        assert session.store.ui.active_university_id == "u-2"
        assert not _run(session.actions.set_active_university("fehlt"))
        assert session.store.ui.active_university_id == "u-2"

    def test_apply_filters(self):
        session = _session()
        actions = session.actions
        assert _run(actions.apply_filter(FilterField.STATUS, "EN_COURS"))
        assert _run(actions.apply_filter("priority", "HAUTE"))
        assert _run(actions.apply_filter("overdueOnly", "true"))
        assert _run(actions.apply_filter("hasDeadline", "false"))
        assert _run(actions.apply_filter("owner", "Dr. Martin"))
        f = session.store.ui.filters
        assert f.status == ItemStatus.EN_COURS
        assert f.priority == Priority.HAUTE
        assert f.overdue_only is True
        assert f.has_deadline is False
        assert f.owner == "Dr. Martin"

    def test_filter_reset_to_any(self):
        session = _session()
        _run(session.actions.apply_filter("status", "VALIDE"))
        _run(session.actions.apply_filter("status", ""))
        _run(session.actions.apply_filter("hasDeadline", None))
        assert session.store.ui.filters.status is None
        assert session.store.ui.filters.has_deadline is None

    @pytest.mark.parametrize("field,value", [
        ("status", "FINI"), ("colour", "x"), ("hasDeadline", "peut-être"),
    ])
    def test_invalid_filter(self, field, value):
        assert not _run(_session().actions.apply_filter(field, value))

    def test_clear_filters(self):
        session = _session()
        _run(session.actions.apply_filter("owner", "X"))
        _run(session.actions.clear_filters())
        assert session.store.ui.filters.owner == ""

    def test_set_view(self):
        session = _session()
        assert _run(session.actions.set_view("calendar"))
        assert session.store.ui.view == ViewName.CALENDAR
        assert not _run(session.actions.set_view("gantt"))
