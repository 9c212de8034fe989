from config.schema import (
    AppConfig,
    BackendConfig,
    DashboardConfig,
    LoggingConfig,
    StorageConfig,
)
from models.item import ItemStatus, Priority


def default_app_config() -> AppConfig:
    """Standard-Konfiguration: rein lokal, Snapshot unter output/."""
    return AppConfig(
        backend=BackendConfig(enabled=False),
        storage=StorageConfig(),
        dashboard=DashboardConfig(),
        logging=LoggingConfig(),
    )


# ─── Anzeige-Labels ───────────────────────────────────────────────────────────

STATUS_LABELS: dict[ItemStatus, str] = {
    ItemStatus.EN_ATTENTE: "En attente",
    ItemStatus.EN_COURS: "En cours",
    ItemStatus.EN_RELECTURE: "En relecture",
    ItemStatus.VALIDE: "Validé",
}

PRIORITY_LABELS: dict[Priority, str] = {
    Priority.BASSE: "Basse",
    Priority.MOYENNE: "Moyenne",
    Priority.HAUTE: "Haute",
}

# Produktionsmethoden einer Matière; unbekannte Werte bleiben ohne Label
METHOD_LABELS: dict[str, str] = {
    "NB_AUDIO_AKV": "NB + audio + AKV",
    "NB_AUDIO_POLY": "NB + audio + poly",
    "NB_AUDIO_POLY_ACC": "NB + audio + poly + ACC",
}

# Rangfolge für Sortierung nach Priorität (BASSE < MOYENNE < HAUTE)
PRIORITY_RANK: dict[Priority, int] = {p: i for i, p in enumerate(Priority)}
STATUS_RANK: dict[ItemStatus, int] = {s: i for i, s in enumerate(ItemStatus)}


def status_label(status: ItemStatus) -> str:
    return STATUS_LABELS[status]


def priority_label(priority: Priority) -> str:
    return PRIORITY_LABELS[priority]


def method_label(method: str) -> str:
    """Label der Produktionsmethode, leer bei unbekannter Methode."""
    return METHOD_LABELS.get(method or "", "")
