"""Store: Wurzel des Datenmodells (Universités + UI-Zustand), JSON-Persistenz."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator

from models.base import DashboardModel
from models.ids import utc_now
from models.item import ItemStatus, Priority
from models.university import University

SCHEMA_VERSION = 1


class ViewName(str, Enum):
    TABLE = "table"
    KANBAN = "kanban"
    CALENDAR = "calendar"


class FilterField(str, Enum):
    SUBJECT_ID = "subjectId"
    OWNER = "owner"
    STATUS = "status"
    PRIORITY = "priority"
    OVERDUE_ONLY = "overdueOnly"
    HAS_DEADLINE = "hasDeadline"


class Filters(DashboardModel):
    """Aktive Filter. Leerer String / None bedeutet jeweils "beliebig".

    has_deadline ist dreiwertig: True (nur mit Deadline), False (nur ohne),
    None (kein Filter).
    """

    subject_id: str = ""
    owner: str = ""
    status: Optional[ItemStatus] = None
    priority: Optional[Priority] = None
    overdue_only: bool = False
    has_deadline: Optional[bool] = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _empty_is_any(cls, v):
        return v or None

    @field_validator("subject_id", "owner", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("overdue_only", mode="before")
    @classmethod
    def _none_to_false(cls, v):
        return False if v is None else v


class UIState(DashboardModel):
    """UI-Zustand: aktive Université, Filter, gewählte Ansicht."""

    active_university_id: Optional[str] = None
    filters: Filters = Field(default_factory=Filters)
    view: ViewName = ViewName.TABLE

    @field_validator("active_university_id", mode="before")
    @classmethod
    def _empty_is_none(cls, v):
        return v or None

    @field_validator("filters", mode="before")
    @classmethod
    def _none_filters(cls, v):
        return v or {}

    @field_validator("view", mode="before")
    @classmethod
    def _default_view(cls, v):
        return v or ViewName.TABLE


class Store(DashboardModel):
    """Vollständiger Datenbestand des Dashboards."""

    version: int = SCHEMA_VERSION
    updated_at: datetime = Field(default_factory=utc_now)
    ui: UIState = Field(default_factory=UIState)
    universities: list[University] = Field(default_factory=list)

    @field_validator("ui", mode="before")
    @classmethod
    def _none_ui(cls, v):
        return v or {}

    # ─── Suche ───

    def find_university(self, university_id: Optional[str]) -> Optional[University]:
        if not university_id:
            return None
        return next((u for u in self.universities if u.id == university_id), None)

    def find_university_by_name(self, name: str) -> Optional[University]:
        key = (name or "").lower()
        return next((u for u in self.universities if u.name.lower() == key), None)

    def ensure_active_university(self) -> None:
        """Repariert eine ungültige activeUniversityId (→ erste Université oder None)."""
        if self.find_university(self.ui.active_university_id) is None:
            self.ui.active_university_id = (
                self.universities[0].id if self.universities else None
            )

    def touch(self) -> None:
        self.updated_at = utc_now()

    def summary(self) -> str:
        """Kurze Übersicht über den Bestand."""
        lines = [f"Universités: {len(self.universities)}"]
        for u in self.universities:
            marker = "*" if u.id == self.ui.active_university_id else " "
            lines.append(
                f" {marker} {u.name}: {len(u.subjects)} Matières, {len(u.items)} Fiches"
            )
        return "\n".join(lines)

    # ─── Persistenz ────────────────────────────────────────────────────────

    def to_json(self) -> str:
        """Serialisiert den Store als eingerücktes JSON (camelCase-Schlüssel)."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, raw: str) -> "Store":
        return cls.model_validate_json(raw)

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Store als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    @classmethod
    def load_json(cls, path: Path) -> "Store":
        """Lädt einen Store aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_json(f.read())


def default_ui_state() -> UIState:
    """UI-Zustand nach 'Tout supprimer': keine Filter, keine aktive Université."""
    return UIState()
