"""Key-value record stores backing the agent ledger.

Two scopes mirror the browser storage the product was designed around: a
session scope (minted agents, paused ids) and a persistent scope (balance
cache, wallet flag, marketplace collections). Values are JSON strings.
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Iterator, Protocol

import yaml

logger = logging.getLogger(__name__)


# ============================================================================
# Record keys
# ============================================================================

# Session scope
AGENTS_KEY = "agents"
HAS_AGENTS_KEY = "hasAgents"
PAUSED_AGENT_IDS_KEY = "pausedAgentIds"
AGENT_SEQUENCE_KEY = "agentSequence"

# Persistent scope
BALANCE_KEY = "balance"
BALANCE_MANUALLY_RESET_KEY = "balanceManuallyReset"
WALLET_CONNECTED_KEY = "walletConnected"
BOUGHT_FLEETS_KEY = "boughtFleets"
MARKETPLACE_LISTINGS_KEY = "marketplaceListings"


class RecordStore(Protocol):
    """Minimal keyed storage contract."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


# ============================================================================
# JSON helpers
# ============================================================================


def read_json(store: RecordStore, key: str, default: Any = None) -> Any:
    """Decode a JSON record, falling back to ``default`` when absent or corrupt."""
    raw = store.get(key)
    if raw is None:
        return default

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Corrupted JSON in record '{key}': {e}. Using default.")
        return default


def write_json(store: RecordStore, key: str, value: Any) -> None:
    """Encode ``value`` as JSON and store it under ``key``."""
    store.set(key, json.dumps(value, default=str))


def read_flag(store: RecordStore, key: str) -> bool:
    """Read a boolean sentinel stored as 'true'."""
    return store.get(key) == "true"


def write_flag(store: RecordStore, key: str, value: bool) -> None:
    if value:
        store.set(key, "true")
    else:
        store.remove(key)


# ============================================================================
# Implementations
# ============================================================================


class MemoryRecordStore:
    """Process-local store; the session scope when nothing needs to survive."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._records: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._records.get(key)

    def set(self, key: str, value: str) -> None:
        self._records[key] = value

    def remove(self, key: str) -> None:
        self._records.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._records)


class FileRecordStore:
    """Records kept in a YAML mapping file with atomic writes.

    The file is re-read on every access, so a second process sees writes made
    by the first one on its next read. There is no locking between writers.
    """

    def __init__(self, path: Path):
        self.path = path

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Corrupted YAML in record file {self.path}: {e}")
            raise

        if not raw_data:
            return {}
        if not isinstance(raw_data, dict):
            logger.warning(f"Unexpected record file layout in {self.path}, ignoring")
            return {}

        return {str(k): str(v) for k, v in raw_data.items()}

    def _save(self, records: dict[str, str]) -> None:
        """Atomically write records using a tempfile -> rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                delete=False,
                suffix=".yaml",
                encoding="utf-8",
            ) as temp_file:
                yaml.dump(
                    records,
                    temp_file,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=True,
                )
                temp_path = Path(temp_file.name)

            shutil.move(str(temp_path), str(self.path))
            logger.debug(f"Saved {len(records)} records to {self.path}")

        except Exception as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save records to {self.path}: {e}")
            raise

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        records = self._load()
        records[key] = value
        self._save(records)

    def remove(self, key: str) -> None:
        records = self._load()
        if key in records:
            del records[key]
            self._save(records)

    def keys(self) -> list[str]:
        return list(self._load())

    def clear(self) -> None:
        self._save({})
