"""Umwandlung zwischen Datenbankzeilen (snake_case-Spalten) und dem Store-Baum."""

from typing import Iterable, Optional

from models.ids import utc_now
from models.item import Item
from models.store import Filters, Store, UIState, ViewName
from models.subject import Subject
from models.university import University


def university_row(university_id: str, name: str) -> dict:
    return {"id": university_id, "name": name}


def subject_row(subject_id: str, university_id: str, subject: Subject) -> dict:
    return {
        "id": subject_id,
        "university_id": university_id,
        "name": subject.name or "",
        "owner": subject.owner or "",
        "method": subject.method or "",
        "remark": subject.remark or "",
    }


def item_row(item_id: str, subject_id: str, item: Item) -> dict:
    return {
        "id": item_id,
        "subject_id": subject_id,
        "title": item.title or "",
        "status": item.status.value,
        "priority": item.priority.value,
        "deadline": item.deadline or None,
        "progress": item.progress,
        "comment": item.comment or "",
        "professor": item.professor or "",
        "updated_at": utc_now().isoformat(),
    }


def store_from_rows(
    universities: Iterable[dict],
    subjects: Iterable[dict],
    items: Iterable[dict],
) -> Store:
    """Baut aus drei nach Erstellzeit sortierten Tabellen einen Store.

    Fiches ohne bekannte Matière werden verworfen. Die erste Université wird
    aktiv, Filter und Ansicht stehen auf Standard.
    """
    subjects_by_university: dict[str, list[Subject]] = {}
    for row in subjects:
        subjects_by_university.setdefault(row.get("university_id"), []).append(Subject(
            id=row["id"],
            name=row.get("name") or "",
            owner=row.get("owner") or "",
            method=row.get("method") or "",
            remark=row.get("remark") or "",
        ))

    items_by_subject: dict[str, list[dict]] = {}
    for row in items:
        items_by_subject.setdefault(row.get("subject_id"), []).append(row)

    result: list[University] = []
    for row in universities:
        university = University(id=row["id"], name=row.get("name") or "")
        university.subjects = subjects_by_university.get(row["id"], [])
        for subject in university.subjects:
            for item in items_by_subject.get(subject.id, []):
                university.items.append(_item_from_row(item, subject.name))
        result.append(university)

    first_id: Optional[str] = result[0].id if result else None
    return Store(
        ui=UIState(active_university_id=first_id, filters=Filters(), view=ViewName.TABLE),
        universities=result,
    )


def _item_from_row(row: dict, subject_name: str) -> Item:
    return Item(
        id=row["id"],
        subject_id=row["subject_id"],
        subject_name_cache=subject_name,
        title=row.get("title") or "",
        status=row.get("status"),
        priority=row.get("priority"),
        deadline=row.get("deadline"),
        progress=row.get("progress"),
        comment=row.get("comment"),
        professor=row.get("professor"),
        updated_at=row.get("updated_at") or utc_now(),
    )
