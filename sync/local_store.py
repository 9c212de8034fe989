"""Lokaler Snapshot: der zuletzt bestätigte Store als JSON-Datei."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from data.snapshot import SnapshotError, read_snapshot
from models.store import Store

logger = logging.getLogger(__name__)


class LocalSnapshot:
    """Liest und schreibt den Store unter einem festen Pfad."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[Store]:
        """Lädt den Snapshot; None, wenn keiner existiert.

        Eine unlesbare Datei wird mit Zeitstempel beiseite gelegt
        (<name>.corrupt-YYYYmmdd_HHMMSS.json).
        """
        if not self.path.exists():
            return None
        try:
            return read_snapshot(self.path)
        except SnapshotError as e:
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup = self.path.with_name(f"{self.path.stem}.corrupt-{ts}.json")
            self.path.rename(backup)
            logger.warning(f"Lokaler Snapshot unbrauchbar, verschoben nach {backup}: {e}")
            return None

    def save(self, store: Store) -> None:
        store.save_json(self.path)
        logger.debug(f"Lokaler Snapshot geschrieben: {self.path}")
