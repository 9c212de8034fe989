"""Dashboard Refonte: Haupt-CLI für die Verfolgung der Fiches.

Verwendung:
  python main.py config init              Standard-Konfiguration anlegen
  python main.py config show              Konfiguration anzeigen
  python main.py config edit              Konfiguration bearbeiten
  python main.py seed --yes               Beispieldaten laden
  python main.py show [--view kanban]     Dashboard anzeigen
  python main.py kpis                     Nur die Kennzahlen
  python main.py use <université>         Aktive Université wählen
  python main.py filter set status EN_COURS
  python main.py filter clear
  python main.py view calendar
  python main.py item update <fiche> --progress 50
  python main.py item status <fiche> VALIDE
  python main.py subject assign <matière> --owner "Dr. X"
  python main.py subject deadline <matière> 2024-06-30
  python main.py import-excel <datei.xlsx>
  python main.py import-json <datei.json> --mode merge
  python main.py export-json | export-excel
  python main.py sync pull | sync watch --seconds 60

Der Zustand liegt zwischen zwei Aufrufen im lokalen Snapshot
(storage.snapshot_path) und, falls konfiguriert, im Backend.
"""

import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

console = Console()
logger = logging.getLogger(__name__)

# Kurzformen für "filter set"
FILTER_ALIASES = {
    "subject": "subjectId", "subject_id": "subjectId", "matiere": "subjectId",
    "owner": "owner", "responsable": "owner",
    "status": "status", "statut": "status",
    "priority": "priority", "priorite": "priority",
    "overdue": "overdueOnly", "overdue_only": "overdueOnly",
    "deadline": "hasDeadline", "has_deadline": "hasDeadline",
}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _abort(message: str) -> None:
    console.print(f"[red bold]{message}[/red bold]")
    sys.exit(1)


def _report(result) -> None:
    """Gibt ein ActionResult aus; Ablehnung → Exit-Code 1."""
    if not result:
        _abort(result.message)
    console.print(f"[green]✓[/green] {result.message}")
    if result.failed_writes:
        console.print(
            f"[yellow]⚠ {result.failed_writes} écriture(s) distante(s) en échec "
            f"(état local conservé)[/yellow]"
        )


def _run(ctx: click.Context, action):
    """Lädt eine Session, führt action(session) aus und schließt sie wieder."""
    from sync import create_session

    config = ctx.obj["config"]

    async def _main():
        session = create_session(config)
        try:
            await session.load()
            return await action(session)
        finally:
            await session.close()

    return asyncio.run(_main())


def _resolve_item_id(store, ref: str) -> str:
    """Fiche per ID oder exaktem Titel in der aktiven Université."""
    from analysis.selectors import active_university
    university = active_university(store)
    if university is None:
        return ref
    if university.find_item(ref) is not None:
        return ref
    match = next((i for i in university.items if i.title == ref.strip()), None)
    return match.id if match else ref


def _resolve_subject_id(store, ref: str) -> str:
    """Matière per ID oder Name (case-insensitiv) in der aktiven Université."""
    from analysis.selectors import active_university
    university = active_university(store)
    if university is None or university.find_subject(ref) is not None:
        return ref
    match = university.find_subject_by_name(ref)
    return match.id if match else ref


def _resolve_owner(store, ref: str) -> Optional[str]:
    """Responsable case-insensitiv unter den bekannten suchen; None, wenn unbekannt."""
    from analysis.selectors import all_owners
    wanted = ref.strip().lower()
    return next((o for o in all_owners(store) if o.lower() == wanted), None)


def _resolve_university_id(store, ref: str) -> str:
    if store.find_university(ref) is not None:
        return ref
    match = store.find_university_by_name(ref.strip())
    return match.id if match else ref


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Pfad der YAML-Konfiguration (Standard: config/dashboard.yaml).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """Dashboard Refonte: Suivi des fiches de cours par université et matière."""
    from config.manager import ConfigManager

    mgr = ConfigManager(config_path)
    try:
        config = mgr.load_or_default()
    except ValueError as e:
        _abort(str(e))
    _setup_logging("DEBUG" if verbose else config.logging.level)
    ctx.obj = {"manager": mgr, "config": config}


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@cli.group("config")
def cmd_config():
    """Konfiguration anzeigen, anlegen oder bearbeiten."""


@cmd_config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Zeigt die aktuelle Konfiguration an."""
    mgr, config = ctx.obj["manager"], ctx.obj["config"]
    source = "Standardwerte" if mgr.first_run_check() else str(mgr.path)
    console.print(Panel(f"[bold]{config.title}[/bold]\nQuelle: {source}",
                        title="Konfiguration", border_style="cyan"))

    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Schlüssel", style="bold")
    table.add_column("Wert")
    bc = config.backend
    table.add_row("backend.enabled", str(bc.enabled))
    table.add_row("backend.url", bc.url or "—")
    table.add_row("backend.api_key", "***" if bc.api_key else "—")
    table.add_row("backend.timeout_seconds", str(bc.timeout_seconds))
    table.add_row("backend.poll_interval_seconds", str(bc.poll_interval_seconds))
    table.add_row("storage.snapshot_path", config.storage.snapshot_path)
    table.add_row("storage.export_dir", config.storage.export_dir)
    table.add_row("dashboard.seed_on_empty", str(config.dashboard.seed_on_empty))
    table.add_row("dashboard.default_view", config.dashboard.default_view.value)
    table.add_row("dashboard.json_import_mode", config.dashboard.json_import_mode.value)
    table.add_row("logging.level", config.logging.level)
    console.print(table)


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
@click.pass_context
def config_init(ctx: click.Context, force: bool):
    """Schreibt die Standard-Konfiguration als kommentierte YAML-Datei."""
    from config.defaults import default_app_config

    mgr = ctx.obj["manager"]
    if not mgr.first_run_check() and not force:
        _abort(f"Konfiguration existiert bereits: {mgr.path} (--force zum Überschreiben)")
    mgr.save(default_app_config())


@cmd_config.command("edit")
@click.pass_context
def config_edit(ctx: click.Context):
    """Bearbeitet die Konfiguration interaktiv."""
    ctx.obj["manager"].edit_interactive(ctx.obj["config"])


# ─── ANZEIGE ──────────────────────────────────────────────────────────────────

@cli.command("show")
@click.option("--view", type=click.Choice(["table", "kanban", "calendar"]), default=None,
              help="Ansicht (Standard: gespeicherte Ansicht).")
@click.option("--search", "-s", default="", help="Suche in Matière und Fiche.")
@click.option("--sort", type=click.Choice(["title", "status", "priority", "deadline",
                                           "progress"]), default=None)
@click.option("--desc", is_flag=True, default=False, help="Absteigend sortieren.")
@click.pass_context
def cmd_show(ctx: click.Context, view, search: str, sort, desc: bool):
    """Zeigt Reiter, KPIs, Filter und die gewählte Ansicht."""
    from analysis.views import SortColumn
    from export.tui_renderer import build_dashboard

    async def action(session):
        return session.store

    store = _run(ctx, action)
    console.print(Panel(ctx.obj["config"].title, border_style="cyan"))
    for part in build_dashboard(
        store, view=view, term=search,
        column=SortColumn(sort) if sort else None, descending=desc,
    ):
        console.print(part)


@cli.command("kpis")
@click.pass_context
def cmd_kpis(ctx: click.Context):
    """Zeigt nur die Kennzahlen der aktiven Université."""
    from analysis.selectors import kpis
    from export.tui_renderer import build_kpis

    async def action(session):
        return kpis(session.store)

    console.print(build_kpis(_run(ctx, action)))


# ─── DATEN ────────────────────────────────────────────────────────────────────

@cli.command("seed")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage ersetzen.")
@click.pass_context
def cmd_seed(ctx: click.Context, yes: bool):
    """Ersetzt den Bestand durch die Beispieldaten."""
    from config.schema import ImportMode
    from data.seed import default_store

    if not yes and not click.confirm("Bestand durch Beispieldaten ersetzen?", default=False):
        return

    async def action(session):
        return await session.import_snapshot(default_store(), ImportMode.REPLACE)

    failed = _run(ctx, action)
    console.print("[green]✓[/green] Données d'exemple chargées")
    if failed:
        console.print(f"[yellow]⚠ {failed} écriture(s) distante(s) en échec[/yellow]")


@cli.command("use")
@click.argument("university")
@click.pass_context
def cmd_use(ctx: click.Context, university: str):
    """Wählt die aktive Université (Name oder ID)."""
    async def action(session):
        ref = _resolve_university_id(session.store, university)
        return await session.actions.set_active_university(ref)

    _report(_run(ctx, action))


@cli.command("view")
@click.argument("name", type=click.Choice(["table", "kanban", "calendar"]))
@click.pass_context
def cmd_view(ctx: click.Context, name: str):
    """Speichert die gewählte Ansicht."""
    async def action(session):
        return await session.actions.set_view(name)

    _report(_run(ctx, action))


@cli.group("filter")
def cmd_filter():
    """Filter setzen oder zurücksetzen."""


@cmd_filter.command("set")
@click.argument("field")
@click.argument("value", required=False, default="")
@click.pass_context
def filter_set(ctx: click.Context, field: str, value: str):
    """Setzt einen Filter (subject, owner, status, priority, overdue, deadline).

    Leerer Wert bzw. 'any' entfernt den Filter. Für owner sind nur die Responsables
    der aktiven Université zulässig.
    """
    key = FILTER_ALIASES.get(field.strip().lower().replace("-", "_"), field)

    async def action(session):
        resolved = value
        if key == "subjectId" and value:
            resolved = _resolve_subject_id(session.store, value)
        elif key == "owner" and value.strip():
            resolved = _resolve_owner(session.store, value)
            if resolved is None:
                from actions import ActionResult
                from analysis.selectors import all_owners
                known = ", ".join(all_owners(session.store)) or "aucun"
                return ActionResult(
                    ok=False, message=f"Responsable inconnu : {value} (connus : {known})"
                )
        elif key in ("status", "priority"):
            resolved = "" if value.lower() in ("", "any") else value.upper()
        return await session.actions.apply_filter(key, resolved)

    _report(_run(ctx, action))


@cmd_filter.command("clear")
@click.pass_context
def filter_clear(ctx: click.Context):
    """Setzt alle Filter zurück."""
    async def action(session):
        return await session.actions.clear_filters()

    _report(_run(ctx, action))


# ─── FICHES ───────────────────────────────────────────────────────────────────

@cli.group("item")
def cmd_item():
    """Fiches bearbeiten."""


@cmd_item.command("update")
@click.argument("item")
@click.option("--status", default=None)
@click.option("--priority", default=None)
@click.option("--deadline", default=None, help="YYYY-MM-DD oder '' zum Entfernen.")
@click.option("--progress", type=int, default=None)
@click.option("--comment", default=None)
@click.option("--professor", default=None)
@click.pass_context
def item_update(ctx: click.Context, item: str, **options):
    """Ändert Felder einer Fiche (ID oder Titel)."""
    fields = {k: v for k, v in options.items() if v is not None}
    for key in ("status", "priority"):
        if key in fields:
            fields[key] = fields[key].upper()
    if not fields:
        _abort("Keine Felder angegeben.")

    async def action(session):
        ref = _resolve_item_id(session.store, item)
        return await session.actions.update_item(ref, fields)

    _report(_run(ctx, action))


@cmd_item.command("status")
@click.argument("item")
@click.argument("status", type=click.Choice(
    ["EN_ATTENTE", "EN_COURS", "EN_RELECTURE", "VALIDE"], case_sensitive=False))
@click.pass_context
def item_status(ctx: click.Context, item: str, status: str):
    """Verschiebt eine Fiche in einen anderen Statut (Kanban)."""
    async def action(session):
        ref = _resolve_item_id(session.store, item)
        return await session.actions.move_item_status(ref, status.upper())

    _report(_run(ctx, action))


@cmd_item.command("delete")
@click.argument("item")
@click.pass_context
def item_delete(ctx: click.Context, item: str):
    """Löscht eine Fiche."""
    async def action(session):
        return await session.actions.delete_item(_resolve_item_id(session.store, item))

    _report(_run(ctx, action))


# ─── MATIÈRES / UNIVERSITÉS ───────────────────────────────────────────────────

@cli.group("subject")
def cmd_subject():
    """Matières bearbeiten."""


@cmd_subject.command("assign")
@click.argument("subject")
@click.option("--owner", default="", help="Responsable.")
@click.option("--method", default="", help="NB_AUDIO_AKV | NB_AUDIO_POLY | NB_AUDIO_POLY_ACC")
@click.option("--remark", default="")
@click.pass_context
def subject_assign(ctx: click.Context, subject: str, owner: str, method: str, remark: str):
    """Setzt Responsable, Methode und Bemerkung einer Matière."""
    async def action(session):
        ref = _resolve_subject_id(session.store, subject)
        return await session.actions.assign_subject_meta(ref, owner, method, remark)

    _report(_run(ctx, action))


@cmd_subject.command("deadline")
@click.argument("subject")
@click.argument("deadline", required=False, default="")
@click.pass_context
def subject_deadline(ctx: click.Context, subject: str, deadline: str):
    """Setzt die Deadline aller Fiches einer Matière (leer = entfernen)."""
    async def action(session):
        ref = _resolve_subject_id(session.store, subject)
        return await session.actions.set_subject_deadline(ref, deadline)

    _report(_run(ctx, action))


@cmd_subject.command("delete")
@click.argument("subject")
@click.pass_context
def subject_delete(ctx: click.Context, subject: str):
    """Löscht eine Matière samt ihren Fiches."""
    async def action(session):
        ref = _resolve_subject_id(session.store, subject)
        return await session.actions.delete_subject(ref)

    _report(_run(ctx, action))


@cli.group("university")
def cmd_university():
    """Universités verwalten."""


@cmd_university.command("delete")
@click.argument("university")
@click.pass_context
def university_delete(ctx: click.Context, university: str):
    """Löscht eine Université (Name oder ID)."""
    async def action(session):
        ref = _resolve_university_id(session.store, university)
        return await session.actions.delete_university(ref)

    _report(_run(ctx, action))


@cli.command("delete-all")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
@click.pass_context
def cmd_delete_all(ctx: click.Context, yes: bool):
    """Löscht alle Universités und setzt den UI-Zustand zurück."""
    if not yes and not click.confirm("Wirklich ALLE Daten löschen?", default=False):
        return

    async def action(session):
        return await session.actions.delete_all()

    _report(_run(ctx, action))


# ─── IMPORT / EXPORT ──────────────────────────────────────────────────────────

@cli.command("import-excel")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def cmd_import_excel(ctx: click.Context, datei: Path):
    """Importiert eine Arbeitsmappe (ein Blatt = eine Université)."""
    from data.excel_import import ExcelImportError

    async def action(session):
        return await session.import_excel(datei)

    console.print(f"[bold]Importiere:[/bold] {datei}")
    try:
        report = _run(ctx, action)
    except ExcelImportError as e:
        _abort(f"Import fehlgeschlagen: {e}")

    console.print(f"[green]✓[/green] {report.message}")
    console.print(
        f"  Matières créées : {report.subjects_created} | "
        f"Universités créées : {len(report.universities_created)}"
    )
    if report.failed_writes:
        console.print(
            f"[yellow]⚠ {report.failed_writes} écriture(s) distante(s) en échec[/yellow]"
        )


@cli.command("import-json")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.option("--mode", type=click.Choice(["merge", "replace"]), default=None,
              help="Standard: dashboard.json_import_mode.")
@click.pass_context
def cmd_import_json(ctx: click.Context, datei: Path, mode: Optional[str]):
    """Importiert einen JSON-Snapshot (merge oder replace)."""
    from config.schema import ImportMode
    from data.snapshot import SnapshotError, read_snapshot

    try:
        imported = read_snapshot(datei)
    except SnapshotError as e:
        _abort(f"Import fehlgeschlagen: {e}")
    import_mode = ImportMode(mode) if mode else ctx.obj["config"].dashboard.json_import_mode

    async def action(session):
        return await session.import_snapshot(imported, import_mode)

    failed = _run(ctx, action)
    console.print(f"[green]✓[/green] Import JSON réussi ({import_mode.value})")
    if failed:
        console.print(f"[yellow]⚠ {failed} écriture(s) distante(s) en échec[/yellow]")


@cli.command("export-json")
@click.option("--dir", "directory", type=click.Path(path_type=Path), default=None,
              help="Zielverzeichnis (Standard: storage.export_dir).")
@click.pass_context
def cmd_export_json(ctx: click.Context, directory: Optional[Path]):
    """Schreibt den kompletten Store als dashboard-refonte-<datum>.json."""
    from data.snapshot import export_snapshot

    async def action(session):
        return session.store

    store = _run(ctx, action)
    path = export_snapshot(store, directory or Path(ctx.obj["config"].storage.export_dir))
    console.print(f"[green]✓[/green] Export JSON : {path}")


@cli.command("export-excel")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Zieldatei (Standard: <export_dir>/dashboard-refonte-<datum>.xlsx).")
@click.pass_context
def cmd_export_excel(ctx: click.Context, output: Optional[Path]):
    """Exportiert alle Universités als Excel-Arbeitsmappe."""
    from data.snapshot import EXPORT_PREFIX
    from export.excel_export import ExcelExporter

    async def action(session):
        return session.store

    store = _run(ctx, action)
    if output is None:
        output = (Path(ctx.obj["config"].storage.export_dir)
                  / f"{EXPORT_PREFIX}-{date.today().isoformat()}.xlsx")
    path = ExcelExporter(store).export(output)
    console.print(f"[green]✓[/green] Export Excel : {path}")


# ─── SYNC ─────────────────────────────────────────────────────────────────────

@cli.group("sync")
def cmd_sync():
    """Abgleich mit dem Backend."""


@cmd_sync.command("pull")
@click.pass_context
def sync_pull(ctx: click.Context):
    """Lädt den Backend-Bestand neu (UI-Zustand bleibt erhalten)."""
    async def action(session):
        return await session.reload(), session.store

    ok, store = _run(ctx, action)
    if not ok:
        _abort("Backend nicht verfügbar, lokaler Stand unverändert.")
    console.print(f"[green]✓[/green] Synchronisiert\n{store.summary()}")


@cmd_sync.command("watch")
@click.option("--seconds", type=float, default=0,
              help="Laufzeit in Sekunden (0 = bis Strg+C).")
@click.pass_context
def sync_watch(ctx: click.Context, seconds: float):
    """Lädt bei jeder Backend-Änderung neu und zeigt die KPIs."""
    from analysis.selectors import kpis
    from export.tui_renderer import build_kpis

    async def on_reload(store):
        console.print(build_kpis(kpis(store)))

    async def action(session):
        stop = asyncio.Event()
        if seconds:
            asyncio.get_running_loop().call_later(seconds, stop.set)
        return await session.watch(stop, on_reload)

    try:
        reloads = _run(ctx, action)
    except KeyboardInterrupt:
        console.print("\nBeendet.")
        return
    console.print(f"{reloads} Aktualisierung(en)")


def main():
    """Einstiegspunkt."""
    cli()


if __name__ == "__main__":
    main()
