"""Beispieldaten für den ersten Start (eine Université, zwei Matières, sechs Fiches).

Deadlines liegen relativ zu heute:
eine Fiche in einer Woche, eine seit zwei Tagen überfällig, eine in zwei Wochen.
"""

from datetime import date, timedelta
from typing import Optional

from models.ids import new_id, utc_now
from models.item import Item, ItemStatus, Priority
from models.store import Filters, Store, UIState, ViewName
from models.subject import Subject
from models.university import University

# (Titel, Statut, Priorität, Deadline-Offset in Tagen oder None, Fortschritt, Kommentar)
_SEED_ITEMS: dict[str, list[tuple]] = {
    "Biochimie": [
        ("Introduction à la biochimie", ItemStatus.EN_ATTENTE, Priority.MOYENNE, None, 0, ""),
        ("Métabolisme cellulaire", ItemStatus.EN_COURS, Priority.HAUTE, 7, 45,
         "En cours de rédaction"),
        ("Enzymes et catalyse", ItemStatus.EN_RELECTURE, Priority.MOYENNE, -2, 90, ""),
    ],
    "Anatomie": [
        ("Système cardiovasculaire", ItemStatus.VALIDE, Priority.BASSE, None, 100,
         "Validé par le comité"),
        ("Système respiratoire", ItemStatus.EN_COURS, Priority.HAUTE, 14, 30, ""),
        ("Système digestif", ItemStatus.EN_ATTENTE, Priority.MOYENNE, None, 0, ""),
    ],
}

_SEED_SUBJECTS = [
    ("Biochimie", "Dr. Martin", "NB_AUDIO_AKV"),
    ("Anatomie", "Dr. Dupont", "NB_AUDIO_POLY"),
]


def default_store(today: Optional[date] = None) -> Store:
    """Erzeugt den Standard-Store mit frischen IDs."""
    today = today or date.today()
    university = University(id=new_id(), name="Sorbonne Paris Nord")

    for name, owner, method in _SEED_SUBJECTS:
        subject = Subject(id=new_id(), name=name, owner=owner, method=method)
        university.subjects.append(subject)
        for title, status, priority, offset, progress, comment in _SEED_ITEMS[name]:
            deadline = (today + timedelta(days=offset)).isoformat() if offset is not None else ""
            university.items.append(Item(
                id=new_id(),
                subject_id=subject.id,
                subject_name_cache=name,
                title=title,
                status=status,
                priority=priority,
                deadline=deadline,
                progress=progress,
                comment=comment,
                updated_at=utc_now(),
            ))

    return Store(
        ui=UIState(
            active_university_id=university.id,
            filters=Filters(),
            view=ViewName.TABLE,
        ),
        universities=[university],
    )
