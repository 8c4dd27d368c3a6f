"""Persistence — append-only audit log, restart-safe snapshot, data directory lock."""

from allowmint.persistence.event_log import EventKind, EventLog, EventRecord
from allowmint.persistence.lock import FileLock
from allowmint.persistence.state_store import MintState, StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "FileLock", "MintState", "StateStore"]
