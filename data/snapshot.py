"""JSON-Snapshots: Export mit Datum im Dateinamen, Import per replace/merge."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from config.schema import ImportMode
from data.reconcile import drop_orphan_items, merge_stores
from models.store import Store

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "dashboard-refonte"


class SnapshotError(Exception):
    """JSON-Datei unlesbar oder kein gültiger Store."""


def export_filename(today: Optional[date] = None) -> str:
    """Dateiname des Exports, z.B. 'dashboard-refonte-2024-05-01.json'."""
    return f"{EXPORT_PREFIX}-{(today or date.today()).isoformat()}.json"


def export_snapshot(store: Store, directory: Path, today: Optional[date] = None) -> Path:
    """Schreibt den kompletten Store als eingerücktes JSON ins Verzeichnis."""
    path = Path(directory) / export_filename(today)
    store.save_json(path)
    logger.info(f"JSON-Export geschrieben: {path}")
    return path


def parse_snapshot(raw: str) -> Store:
    """Parst einen JSON-Text als Store.

    Raises:
        SnapshotError: Ungültiges JSON oder Schema-Verletzung.
    """
    try:
        return Store.model_validate_json(raw)
    except ValidationError as e:
        raise SnapshotError(f"JSON-Datei ist kein gültiger Snapshot:\n{e}") from e


def read_snapshot(path: Path) -> Store:
    """Liest und validiert eine JSON-Snapshot-Datei."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Datei nicht lesbar: {path} ({e})") from e
    return parse_snapshot(raw)


def apply_snapshot(
    current: Optional[Store], imported: Store, mode: ImportMode = ImportMode.MERGE
) -> Store:
    """Wendet einen importierten Snapshot an und gibt den neuen Store zurück.

    replace: der Import ersetzt den Bestand (als Kopie).
    merge:   nicht-destruktiver Merge, siehe merge_stores().
    """
    mode = ImportMode(mode)
    if mode is ImportMode.REPLACE:
        result = imported.model_copy(deep=True)
        for university in result.universities:
            drop_orphan_items(university)
        result.ensure_active_university()
        return result
    return merge_stores(current, imported)
