"""Abgleich importierter Daten mit dem bestehenden Store.

Zwei Einstiegspunkte:
  - reconcile_groups(): Excel-Zeilen → Universités/Matières/Fiches (Dedup).
  - merge_stores():     lokaler Store ⊕ importierter Store (JSON-Backup).

Beide verändern nur den übergebenen Store bzw. liefern einen neuen; Objekte
aus dem Import werden nie in den Ergebnis-Store übernommen, sondern kopiert.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from data.excel_import import UniversityGroup
from models.ids import new_id, utc_now
from models.item import PROTECTED_ITEM_FIELDS, Item, ItemStatus, Priority, dedup_key
from models.store import Store
from models.subject import Subject
from models.university import University

logger = logging.getLogger(__name__)


class ImportReport(BaseModel):
    """Ergebnis eines Excel-Imports (für die Erfolgsmeldung)."""

    rows_processed: int = 0
    items_created: int = 0
    subjects_created: int = 0
    universities_created: list[str] = Field(default_factory=list)
    # University-IDs in Import-Reihenfolge (für die Synchronisation)
    touched_university_ids: list[str] = Field(default_factory=list)
    failed_writes: int = 0

    @property
    def message(self) -> str:
        return (
            f"Import réussi : {self.items_created} nouvelles fiches créées "
            f"sur {self.rows_processed} lignes"
        )


# ─── Excel-Abgleich ──────────────────────────────────────────────────────────

def _find_or_create_university(
    store: Store, name: str, report: ImportReport
) -> University:
    university = store.find_university_by_name(name)
    if university is None:
        university = University(id=new_id(), name=name)
        store.universities.append(university)
        report.universities_created.append(university.id)
        logger.info(f"Neue Université angelegt: {name}")
    return university


def reconcile_groups(store: Store, groups: list[UniversityGroup]) -> ImportReport:
    """Übernimmt Université-Gruppen in den Store (in-place).

    Matières werden über den getrimmten, case-insensitiven Namen gefunden oder
    angelegt. Fiches werden über (subjectId, Titel) dedupliziert; bestehende
    Fiches bleiben unverändert. Die zuletzt verarbeitete Université wird aktiv.
    """
    report = ImportReport()
    for group in groups:
        university = _find_or_create_university(store, group.university_name, report)
        store.ui.active_university_id = university.id
        if university.id not in report.touched_university_ids:
            report.touched_university_ids.append(university.id)

        subjects = {s.match_key: s for s in university.subjects}
        existing_keys = {i.dedup_key for i in university.items}

        for row in group.rows:
            subject_name = row.subject.strip()
            subject = subjects.get(subject_name.lower())
            if subject is None:
                subject = Subject(id=new_id(), name=subject_name)
                university.subjects.append(subject)
                subjects[subject.match_key] = subject
                report.subjects_created += 1

            key = dedup_key(subject.id, row.title)
            if key not in existing_keys:
                university.items.append(Item(
                    id=new_id(),
                    subject_id=subject.id,
                    subject_name_cache=subject.name,
                    title=key[1],
                    status=ItemStatus.EN_ATTENTE,
                    priority=Priority.MOYENNE,
                    deadline="",
                    progress=0,
                    updated_at=utc_now(),
                ))
                existing_keys.add(key)
                report.items_created += 1
            report.rows_processed += 1

    store.touch()
    logger.info(
        f"Excel-Abgleich: {report.rows_processed} Zeilen, "
        f"{report.items_created} neue Fiches, {report.subjects_created} neue Matières"
    )
    return report


# ─── Snapshot-Merge ──────────────────────────────────────────────────────────

def drop_orphan_items(university: University) -> int:
    """Entfernt Fiches ohne Matière in ihrer Université; gibt die Anzahl zurück."""
    orphans = university.orphan_items()
    for item in orphans:
        logger.warning(
            f"Fiche {item.id} ({item.title}) ignoriert: Matière {item.subject_id} "
            f"fehlt in {university.name}"
        )
    if orphans:
        orphan_ids = {i.id for i in orphans}
        university.items = [i for i in university.items if i.id not in orphan_ids]
    return len(orphans)


def _merge_items(existing: University, incoming: University) -> None:
    subject_ids = {s.id for s in existing.subjects}
    by_key = {i.dedup_key: i for i in existing.items}
    for imported in incoming.items:
        if imported.subject_id not in subject_ids:
            logger.warning(
                f"Fiche {imported.id} ({imported.title}) ignoriert: Matière "
                f"{imported.subject_id} fehlt in {existing.name}"
            )
            continue
        local = by_key.get(imported.dedup_key)
        if local is None:
            copy = imported.model_copy(deep=True)
            existing.items.append(copy)
            by_key[copy.dedup_key] = copy
            continue
        # Nur leere lokale Felder werden aus dem Import befüllt
        for name in Item.model_fields:
            if name in PROTECTED_ITEM_FIELDS:
                continue
            if not getattr(local, name):
                setattr(local, name, getattr(imported, name))
        local.updated_at = utc_now()


def _merge_university(existing: University, incoming: University) -> None:
    subjects = {s.id: s for s in existing.subjects}
    for imported in incoming.subjects:
        local = subjects.get(imported.id)
        if local is None:
            copy = imported.model_copy(deep=True)
            existing.subjects.append(copy)
            subjects[copy.id] = copy
        elif imported.owner:
            local.owner = imported.owner
    _merge_items(existing, incoming)


def merge_stores(current: Optional[Store], imported: Store) -> Store:
    """Nicht-destruktiver Merge: vorhandene, nicht-leere lokale Werte bleiben.

    Ohne lokalen Store ersetzt der Import ihn vollständig. Universités werden
    über die ID zugeordnet, Matières über die ID, Fiches über (subjectId, Titel).
    Fiches, deren Matière im Ergebnis fehlt, werden verworfen.
    Das Ergebnis ist ein neuer Store ohne geteilte Objekte mit den Eingaben.
    """
    if current is None:
        merged = imported.model_copy(deep=True)
        for university in merged.universities:
            drop_orphan_items(university)
        merged.ensure_active_university()
        return merged

    merged = current.model_copy(deep=True)
    by_id = {u.id: u for u in merged.universities}
    for incoming in imported.universities:
        existing = by_id.get(incoming.id)
        if existing is None:
            copy = incoming.model_copy(deep=True)
            drop_orphan_items(copy)
            merged.universities.append(copy)
            by_id[copy.id] = copy
        else:
            _merge_university(existing, incoming)

    # UI-Zustand des Imports nur, wenn die Datei einen mitbringt
    if "ui" in imported.model_fields_set:
        merged.ui = imported.ui.model_copy(deep=True)
    merged.ensure_active_university()
    merged.touch()
    return merged
