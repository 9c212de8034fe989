"""Datenmodell für eine Fiche (Item) inkl. Status- und Prioritäts-Enums."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from models.base import DashboardModel
from models.ids import utc_now


class ItemStatus(str, Enum):
    EN_ATTENTE = "EN_ATTENTE"
    EN_COURS = "EN_COURS"
    EN_RELECTURE = "EN_RELECTURE"
    VALIDE = "VALIDE"


class Priority(str, Enum):
    BASSE = "BASSE"
    MOYENNE = "MOYENNE"
    HAUTE = "HAUTE"


# Felder, die weder Aktionen noch der Snapshot-Merge überschreiben dürfen
PROTECTED_ITEM_FIELDS = frozenset({"id", "subject_id", "title", "subject_name_cache"})


def parse_deadline(raw: Optional[str]) -> Optional[date]:
    """Parst eine Deadline ('YYYY-MM-DD' oder ISO-Zeitstempel) → Kalenderdatum.

    Leere oder unlesbare Werte ergeben None.
    """
    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


class Item(DashboardModel):
    """Eine einzelne Fiche, die zu genau einer Matière gehört."""

    id: str
    subject_id: str
    subject_name_cache: str = ""   # nur Anzeige/Fallback, nie maßgeblich
    title: str
    status: ItemStatus = ItemStatus.EN_ATTENTE
    priority: Priority = Priority.MOYENNE
    deadline: str = ""             # ISO-Datum oder leer
    progress: int = Field(0, ge=0, le=100)
    comment: str = ""
    professor: str = ""
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v):
        return v or ItemStatus.EN_ATTENTE

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, v):
        return v or Priority.MOYENNE

    @field_validator("deadline", mode="before")
    @classmethod
    def _normalize_deadline(cls, v):
        if v is None:
            return ""
        if isinstance(v, date):
            return v.isoformat()
        return v

    @field_validator("progress", mode="before")
    @classmethod
    def _default_progress(cls, v):
        return 0 if v in (None, "") else v

    @field_validator("comment", "professor", "subject_name_cache", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def effective_progress(self) -> int:
        """100 wenn validiert, sonst der gespeicherte Fortschritt."""
        return 100 if self.status == ItemStatus.VALIDE else self.progress

    @property
    def deadline_date(self) -> Optional[date]:
        return parse_deadline(self.deadline)

    @property
    def dedup_key(self) -> tuple[str, str]:
        return dedup_key(self.subject_id, self.title)


def dedup_key(subject_id: str, title: str) -> tuple[str, str]:
    """Schlüssel (subjectId, getrimmter Titel) für Import und Merge."""
    return subject_id, (title or "").strip()
