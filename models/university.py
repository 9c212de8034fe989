"""Datenmodell für eine Université mit ihren Matières und Fiches."""

from typing import Optional

from pydantic import Field

from models.base import DashboardModel
from models.item import Item
from models.subject import Subject, match_key


class University(DashboardModel):
    """Oberste Gruppierung ("Tab"). Besitzt Matières und Fiches exklusiv."""

    id: str
    name: str
    subjects: list[Subject] = Field(default_factory=list)   # Reihenfolge = Anzeige
    items: list[Item] = Field(default_factory=list)

    # ─── Suche ───

    def find_subject(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self.subjects if s.id == subject_id), None)

    def find_subject_by_name(self, name: str) -> Optional[Subject]:
        key = match_key(name)
        return next((s for s in self.subjects if s.match_key == key), None)

    def find_item(self, item_id: str) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)

    def items_of_subject(self, subject_id: str) -> list[Item]:
        return [i for i in self.items if i.subject_id == subject_id]

    def subject_name(self, subject_id: str) -> str:
        """Name der Matière, Fallback auf subjectNameCache der ersten Fiche."""
        subject = self.find_subject(subject_id)
        if subject is not None:
            return subject.name
        for item in self.items_of_subject(subject_id):
            if item.subject_name_cache:
                return item.subject_name_cache
        return ""

    def orphan_items(self) -> list[Item]:
        """Fiches, deren subjectId keine Matière dieser Université trifft."""
        ids = {s.id for s in self.subjects}
        return [i for i in self.items if i.subject_id not in ids]
