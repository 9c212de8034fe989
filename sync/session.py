"""DashboardSession: besitzt den Store und sequenziert alle Änderungen.

Alle Mutationen (Aktionen, Importe, Reload) laufen unter einem asyncio.Lock;
ein Import ist damit ein kritischer Abschnitt über die betroffene Université.
Der lokale Zustand ist maßgeblich, das Backend ein Best-Effort-Spiegel:
Schreibfehler werden gezählt, nicht wiederholt und nie zurückgerollt.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

from actions.mutations import Actions
from config.schema import ImportMode
from data.excel_import import NoValidDataError, SheetGrid, extract_groups, read_workbook
from data.reconcile import ImportReport, reconcile_groups
from data.seed import default_store
from data.snapshot import apply_snapshot
from models.store import Store, ViewName
from models.university import University
from sync.adapter import NullAdapter, PersistenceAdapter, RecordKind
from sync.local_store import LocalSnapshot

logger = logging.getLogger(__name__)


class DashboardSession:
    """Laufzeitzustand des Dashboards (ein Store, ein Adapter, ein Lock)."""

    def __init__(
        self,
        adapter: Optional[PersistenceAdapter] = None,
        local: Optional[LocalSnapshot] = None,
        seed_on_empty: bool = True,
        default_view: ViewName = ViewName.TABLE,
    ) -> None:
        self.adapter = adapter or NullAdapter()
        self.local = local
        self.seed_on_empty = seed_on_empty
        self.default_view = ViewName(default_view)
        self.store = Store()
        self.source = ""
        self.loaded = False
        self.lock = asyncio.Lock()

    @property
    def actions(self) -> Actions:
        return Actions(self)

    # ─── Laden ───

    async def load(self) -> Store:
        """Backend → lokaler Snapshot → Seed (bzw. leerer Store).

        Kommt der Bestand vom Backend, bleibt der UI-Zustand eines vorhandenen
        lokalen Snapshots erhalten (aktive Université, Filter, Ansicht).
        """
        async with self.lock:
            local = self.local.load() if self.local else None
            remote = await self.adapter.fetch_all()
            if remote is not None:
                store, self.source = remote, "remote"
                if local is not None:
                    store.ui = local.ui.model_copy(deep=True)
                else:
                    store.ui.view = self.default_view
            elif local is not None:
                store, self.source = local, "local"
            elif self.seed_on_empty:
                store, self.source = default_store(), "seed"
                store.ui.view = self.default_view
            else:
                store, self.source = Store(), "empty"
                store.ui.view = self.default_view
            store.ensure_active_university()
            self.commit(store)
            self.loaded = True
        logger.info(f"Store geladen (Quelle: {self.source})")
        return self.store

    async def reload(self) -> bool:
        """Holt den Backend-Bestand neu; der UI-Zustand bleibt erhalten.

        Der Abruf läuft unter dem Lock; eine parallele Aktion wartet und wirkt
        danach auf den neuen Stand.

        Returns:
            False, wenn das Backend nichts liefert (Store unverändert).
        """
        async with self.lock:
            remote = await self.adapter.fetch_all()
            if remote is None:
                return False
            remote.ui = self.store.ui.model_copy(deep=True)
            remote.ensure_active_university()
            self.commit(remote)
        logger.info("Store aus dem Backend aktualisiert")
        return True

    def commit(self, store: Optional[Store] = None) -> None:
        """Übernimmt einen neuen Store (oder den aktuellen) und sichert ihn lokal."""
        if store is not None:
            self.store = store
        if self.local is not None:
            self.local.save(self.store)

    # ─── Backend-Spiegel ───

    async def push_university(
        self, university: University, include_university: bool = True
    ) -> int:
        """Schreibt eine Université samt Matières und Fiches; gibt Fehlerzahl zurück.

        Matières zuerst, dann Fiches; jeder Stapel läuft parallel.
        """
        failed = 0
        if include_university:
            if not await self.adapter.upsert_university(university.id, university.name):
                failed += 1
        results = await asyncio.gather(*[
            self.adapter.upsert_subject(s.id, university.id, s.model_copy())
            for s in university.subjects
        ])
        failed += sum(1 for ok in results if not ok)
        results = await asyncio.gather(*[
            self.adapter.upsert_item(i.id, i.subject_id, i.model_copy())
            for i in university.items
        ])
        failed += sum(1 for ok in results if not ok)
        return failed

    # ─── Importe ───

    async def import_workbook(self, sheets: Iterable[SheetGrid]) -> ImportReport:
        """Excel-Import als kritischer Abschnitt.

        Raises:
            NoValidDataError: Kein Blatt mit verwertbaren Zeilen (nichts geändert).
        """
        groups = extract_groups(list(sheets))
        if not groups:
            raise NoValidDataError()

        async with self.lock:
            working = self.store.model_copy(deep=True)
            report = reconcile_groups(working, groups)
            self.commit(working)
            for university_id in report.touched_university_ids:
                university = working.find_university(university_id)
                report.failed_writes += await self.push_university(university)

        if report.failed_writes:
            logger.warning(f"Import: {report.failed_writes} Schreibvorgänge fehlgeschlagen")
        logger.info(report.message)
        return report

    async def import_excel(self, path: Path) -> ImportReport:
        """Liest die Datei außerhalb der Event-Loop und importiert sie."""
        sheets = await asyncio.to_thread(read_workbook, Path(path))
        return await self.import_workbook(sheets)

    async def import_snapshot(
        self, imported: Store, mode: ImportMode = ImportMode.MERGE
    ) -> int:
        """JSON-Import (merge oder replace); gibt die Zahl fehlgeschlagener Writes zurück.

        Bei replace werden Universités, die danach fehlen, auch im Backend gelöscht.
        """
        mode = ImportMode(mode)
        async with self.lock:
            previous_ids = {u.id for u in self.store.universities}
            current = self.store if self.loaded else None
            result = apply_snapshot(current, imported, mode)
            self.commit(result)

            failed = 0
            for university in result.universities:
                failed += await self.push_university(university)
            if mode is ImportMode.REPLACE:
                remaining = {u.id for u in result.universities}
                for university_id in previous_ids - remaining:
                    if not await self.adapter.delete_university(university_id):
                        failed += 1

        if failed:
            logger.warning(f"JSON-Import: {failed} Schreibvorgänge fehlgeschlagen")
        logger.info(f"JSON-Import ({mode.value}) abgeschlossen")
        return failed

    # ─── Änderungsbenachrichtigung ───

    async def watch(
        self,
        stop: Optional[asyncio.Event] = None,
        on_reload: Optional[Callable[[Store], Awaitable[None]]] = None,
    ) -> int:
        """Lädt bei jeder Backend-Änderung neu, bis stop gesetzt wird.

        Mehrere Meldungen zwischen zwei Reloads werden zusammengefasst.

        Returns:
            Anzahl durchgeführter Reloads.
        """
        stop = stop or asyncio.Event()
        changed = asyncio.Event()

        def _on_change(kind: RecordKind) -> None:
            logger.debug(f"Änderung gemeldet: {kind.value}")
            changed.set()

        subscription = self.adapter.subscribe(_on_change)
        if subscription is None:
            logger.info(f"Backend '{self.adapter.name}' liefert keine Änderungen")
            return 0

        reloads = 0
        stop_task = asyncio.ensure_future(stop.wait())
        try:
            while not stop.is_set():
                change_task = asyncio.ensure_future(changed.wait())
                await asyncio.wait(
                    {change_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if not change_task.done():
                    change_task.cancel()
                if not changed.is_set():
                    continue
                changed.clear()
                if await self.reload():
                    reloads += 1
                    if on_reload is not None:
                        await on_reload(self.store)
        finally:
            subscription.cancel()
            stop_task.cancel()
        return reloads

    async def close(self) -> None:
        await self.adapter.close()
