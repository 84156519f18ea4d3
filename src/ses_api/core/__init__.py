"""Core modules for configuration, storage, and telemetry."""

from ses_api.core.config import Settings, get_settings
from ses_api.core.store import JsonStore, MemoryStore, RecordStore
from ses_api.core.telemetry import get_tracer, setup_telemetry

__all__ = [
    "Settings",
    "get_settings",
    "JsonStore",
    "MemoryStore",
    "RecordStore",
    "get_tracer",
    "setup_telemetry",
]
