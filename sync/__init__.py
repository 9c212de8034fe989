"""Persistenz: Adapter-Schnittstelle, Backends, lokaler Snapshot, Session."""

from config.schema import AppConfig, BackendConfig
from sync.adapter import MemoryAdapter, NullAdapter, PersistenceAdapter, RecordKind, Subscription
from sync.local_store import LocalSnapshot
from sync.rest_adapter import RestAdapter
from sync.session import DashboardSession


def create_adapter(config: BackendConfig) -> PersistenceAdapter:
    """RestAdapter, wenn ein Backend aktiviert ist, sonst NullAdapter."""
    if config.enabled and config.url:
        return RestAdapter.from_config(config)
    return NullAdapter()


def create_session(config: AppConfig, adapter: PersistenceAdapter = None) -> DashboardSession:
    """Session gemäß Konfiguration (Adapter, Snapshot-Pfad, Seed, Standardansicht)."""
    return DashboardSession(
        adapter=adapter or create_adapter(config.backend),
        local=LocalSnapshot(config.storage.snapshot_path),
        seed_on_empty=config.dashboard.seed_on_empty,
        default_view=config.dashboard.default_view,
    )


__all__ = [
    "PersistenceAdapter",
    "NullAdapter",
    "MemoryAdapter",
    "RestAdapter",
    "RecordKind",
    "Subscription",
    "LocalSnapshot",
    "DashboardSession",
    "create_adapter",
    "create_session",
]
