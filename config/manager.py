"""Konfigurationsmanager: Laden, Speichern, Validieren und interaktives Bearbeiten.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren. Umgebungsvariablen
FICHES_BACKEND_URL / FICHES_API_KEY überschreiben die Werte aus der Datei.
"""

import json
import os
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, Prompt
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.defaults import default_app_config
from config.schema import AppConfig, BackendConfig, StorageConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120

ENV_BACKEND_URL = "FICHES_BACKEND_URL"
ENV_API_KEY = "FICHES_API_KEY"


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Dashboard Refonte: Konfiguration
# Version: 1
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "backend": (
        "Backend",
        "Optionales REST-Backend. Ohne Backend ist der lokale Snapshot die einzige Quelle.\n"
        "API-Schlüssel besser per FICHES_API_KEY setzen.",
    ),
    "storage": (
        "Lokale Dateien",
        None,
    ),
    "dashboard": (
        "Dashboard",
        "default_view: table / kanban / calendar\njson_import_mode: merge / replace",
    ),
    "logging": (
        "Logging",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "dashboard.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else self.DEFAULT_CONFIG

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.path.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> AppConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = Path(path) if path else self.path
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py config init' aus."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            config = AppConfig.model_validate(dict(raw or {}))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e
        return self.apply_env(config)

    def load_or_default(self) -> AppConfig:
        """Wie load(), aber mit Standard-Config wenn keine Datei existiert."""
        if self.first_run_check():
            return self.apply_env(default_app_config())
        return self.load()

    @staticmethod
    def apply_env(config: AppConfig) -> AppConfig:
        """Überschreibt Backend-URL/API-Schlüssel aus der Umgebung."""
        url = os.getenv(ENV_BACKEND_URL)
        key = os.getenv(ENV_API_KEY)
        if not url and not key:
            return config
        backend = config.backend.model_copy(update={
            "url": url or config.backend.url,
            "api_key": key or config.backend.api_key,
            "enabled": config.backend.enabled or bool(url),
        })
        return config.model_copy(update={"backend": backend})

    # ─── Speichern ───

    def save(self, config: AppConfig, path: Optional[Path] = None) -> None:
        """Speichere Config als YAML mit Kommentaren."""
        target = Path(path) if path else self.path
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")

    def _build_commented_yaml(self, config: AppConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )
        return cm

    # ─── Interaktives Bearbeiten ───

    def edit_interactive(self, config: AppConfig) -> AppConfig:
        """Interaktives Bearbeitungsmenü für Backend und lokale Dateien."""
        while True:
            console.print()
            console.print(Panel(
                "[bold]Konfiguration bearbeiten[/bold]",
                border_style="cyan",
            ))
            console.print("  [bold]1.[/bold] Backend (URL, Schlüssel, Intervall)")
            console.print("  [bold]2.[/bold] Lokale Dateien (Snapshot, Exporte)")
            console.print("  [bold]0.[/bold] Speichern & Zurück")

            choice = Prompt.ask("\nAuswahl", default="0")

            if choice == "1":
                config = config.model_copy(
                    update={"backend": self._edit_backend(config.backend)}
                )
            elif choice == "2":
                config = config.model_copy(
                    update={"storage": self._edit_storage(config.storage)}
                )
            elif choice == "0":
                self.save(config)
                break
            else:
                console.print("[yellow]Ungültige Auswahl.[/yellow]")

        return config

    def _edit_backend(self, bc: BackendConfig) -> BackendConfig:
        enabled = Confirm.ask("Backend verwenden?", default=bc.enabled)
        if not enabled:
            return bc.model_copy(update={"enabled": False})
        url = Prompt.ask("Basis-URL", default=bc.url or None)
        api_key = Prompt.ask("API-Schlüssel (leer = aus Umgebung)",
                             default=bc.api_key, password=True)
        interval = FloatPrompt.ask("Abfrageintervall (Sekunden)",
                                   default=bc.poll_interval_seconds)
        return BackendConfig(
            enabled=True,
            url=url or "",
            api_key=api_key or "",
            timeout_seconds=bc.timeout_seconds,
            poll_interval_seconds=interval,
        )

    def _edit_storage(self, sc: StorageConfig) -> StorageConfig:
        snapshot = Prompt.ask("Snapshot-Datei", default=sc.snapshot_path)
        export_dir = Prompt.ask("Export-Verzeichnis", default=sc.export_dir)
        return StorageConfig(snapshot_path=snapshot, export_dir=export_dir)
