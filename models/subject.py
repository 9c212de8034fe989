"""Datenmodell für eine Matière (Pydantic v2)."""

from pydantic import field_validator

from models.base import DashboardModel


class Subject(DashboardModel):
    """Eine Matière innerhalb einer Université mit einer verantwortlichen Person."""

    id: str
    name: str
    owner: str = ""      # Responsable (Freitext)
    method: str = ""     # Produktionsmethode (NB_AUDIO_AKV, ...), leer = unbekannt
    remark: str = ""

    @field_validator("owner", "method", "remark", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def match_key(self) -> str:
        """Vergleichsschlüssel für Import: getrimmt, case-insensitiv."""
        return match_key(self.name)


def match_key(name: str) -> str:
    return (name or "").strip().lower()
