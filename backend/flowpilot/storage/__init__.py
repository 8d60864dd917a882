"""Storage layer for Flow Pilot - keyed record stores.

This package provides:
- The RecordStore contract shared by the ledger, mode controller and marketplace
- An in-memory store (session scope, tests) and an atomic YAML file store
- JSON helpers and the record key names
"""

from .records import (
    AGENTS_KEY,
    AGENT_SEQUENCE_KEY,
    BALANCE_KEY,
    BALANCE_MANUALLY_RESET_KEY,
    BOUGHT_FLEETS_KEY,
    HAS_AGENTS_KEY,
    MARKETPLACE_LISTINGS_KEY,
    PAUSED_AGENT_IDS_KEY,
    WALLET_CONNECTED_KEY,
    FileRecordStore,
    MemoryRecordStore,
    RecordStore,
    read_flag,
    read_json,
    write_flag,
    write_json,
)

__all__ = [
    # Keys
    "AGENTS_KEY",
    "AGENT_SEQUENCE_KEY",
    "BALANCE_KEY",
    "BALANCE_MANUALLY_RESET_KEY",
    "BOUGHT_FLEETS_KEY",
    "HAS_AGENTS_KEY",
    "MARKETPLACE_LISTINGS_KEY",
    "PAUSED_AGENT_IDS_KEY",
    "WALLET_CONNECTED_KEY",
    # Stores
    "RecordStore",
    "MemoryRecordStore",
    "FileRecordStore",
    # Helpers
    "read_json",
    "write_json",
    "read_flag",
    "write_flag",
]
