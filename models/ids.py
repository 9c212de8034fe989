"""Erzeugung von Identifikatoren und Zeitstempeln für neue Entitäten."""

from datetime import datetime, timezone
from uuid import uuid4


def new_id() -> str:
    """Gibt eine neue UUID4 als String zurück (wird nie wiederverwendet)."""
    return str(uuid4())


def utc_now() -> datetime:
    """Aktueller Zeitpunkt (UTC, timezone-aware) für updatedAt-Stempel."""
    return datetime.now(timezone.utc)
