from pydantic import BaseModel, Field, model_validator
from enum import Enum

from models.store import ViewName


class ImportMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


# ─── BACKEND (entfernte Datenbank, optional) ───

class BackendConfig(BaseModel):
    """Verbindung zum entfernten REST-Backend (PostgREST/Supabase-kompatibel)."""
    # Backend aktiv? Ohne Backend arbeitet das Dashboard rein lokal.
    enabled: bool = Field(False,
        description="Entferntes Backend verwenden")
    # Basis-URL, z.B. "https://xyz.supabase.co"
    url: str = Field("",
        description="Basis-URL des REST-Backends")
    # API-Schlüssel (besser per Umgebungsvariable FICHES_API_KEY setzen)
    api_key: str = Field("",
        description="API-Schlüssel (apikey + Bearer)")
    # Timeout einzelner HTTP-Anfragen
    timeout_seconds: float = Field(30.0, gt=0, le=300,
        description="Timeout pro Anfrage (Sekunden)")
    # Abfrageintervall für Änderungsbenachrichtigungen
    poll_interval_seconds: float = Field(5.0, ge=1, le=3600,
        description="Intervall der Änderungsabfrage (Sekunden)")

    @model_validator(mode='after')
    def _check_url(self):
        if self.enabled and not self.url.strip():
            raise ValueError("backend.enabled ist gesetzt, aber backend.url ist leer.")
        return self


# ─── LOKALE DATEIEN ───

class StorageConfig(BaseModel):
    """Lokaler Snapshot und Exportverzeichnis."""
    # JSON-Datei mit dem zuletzt bekannten Stand (Offline-Quelle)
    snapshot_path: str = Field("output/dashboard.json",
        description="Pfad des lokalen JSON-Snapshots")
    # Zielverzeichnis für JSON- und Excel-Exporte
    export_dir: str = Field("output",
        description="Verzeichnis für Exporte")


# ─── DASHBOARD ───

class DashboardConfig(BaseModel):
    """Verhalten des Dashboards beim Start und beim JSON-Import."""
    # Beispieldaten anlegen, wenn weder Backend noch Snapshot Daten liefern
    seed_on_empty: bool = Field(True,
        description="Beispieldaten beim ersten Start")
    # Standard-Ansicht (table/kanban/calendar)
    default_view: ViewName = Field(ViewName.TABLE,
        description="Standard-Ansicht")
    # Standard-Modus für JSON-Import
    json_import_mode: ImportMode = Field(ImportMode.MERGE,
        description="JSON-Import: merge oder replace")


# ─── LOGGING ───

class LoggingConfig(BaseModel):
    level: str = Field("INFO",
        description="Log-Level (DEBUG/INFO/WARNING/ERROR)")

    @model_validator(mode='after')
    def _check_level(self):
        level = self.level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unbekanntes Log-Level '{self.level}'")
        self.level = level
        return self


# ─── GESAMT-CONFIG ───

class AppConfig(BaseModel):
    """Gesamtkonfiguration des Dashboards."""
    # Titel in der Terminal-Ausgabe
    title: str = Field("Dashboard Refonte – Suivi des fiches",
        description="Titel des Dashboards")
    backend: BackendConfig = Field(default_factory=BackendConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
