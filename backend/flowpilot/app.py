"""Wiring of stores, wallets, mode controller, ledger and marketplace."""

from __future__ import annotations

import logging
from typing import Any

from flowpilot.config import Settings, get_settings
from flowpilot.events import EventBus
from flowpilot.ledger.agents import AgentLedger
from flowpilot.marketplace.listings import Marketplace
from flowpilot.mode import Mode, ModeController
from flowpilot.services.wallet import DemoWallet, WalletClient, create_wallet_client
from flowpilot.storage.records import FileRecordStore, MemoryRecordStore, RecordStore

logger = logging.getLogger(__name__)

SESSION_FILE = "session.yaml"
RECORDS_FILE = "records.yaml"


class FlowPilot:
    """One ledger session: shared stores and bus plus the components using them.

    Use as an async context manager so wallet clients holding HTTP
    connections are opened and closed around the session.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_store: RecordStore | None = None,
        persistent_store: RecordStore | None = None,
        wallet: WalletClient | None = None,
        demo_wallet: DemoWallet | None = None,
        bus: EventBus | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_store = session_store if session_store is not None else MemoryRecordStore()
        self.persistent_store = (
            persistent_store if persistent_store is not None else MemoryRecordStore()
        )
        self.bus = bus or EventBus()

        self.demo_wallet = demo_wallet or DemoWallet(
            self.settings.wallet, self.settings.ledger.chain_initial_balance
        )
        self.wallet = wallet or create_wallet_client(
            self.settings.wallet, self.settings.ledger.chain_initial_balance
        )

        self.mode = ModeController(
            self.session_store,
            self.persistent_store,
            self.bus,
            self.wallet,
            self.demo_wallet,
            self.settings,
        )
        self.ledger = AgentLedger(
            self.session_store, self.persistent_store, self.bus, self.mode, self.settings
        )
        self.marketplace = Marketplace(
            self.persistent_store, self.bus, self.ledger, self.settings
        )

    @classmethod
    def from_data_dir(cls, settings: Settings | None = None, **kwargs: Any) -> FlowPilot:
        """Session backed by the record files under ``settings.data_dir``."""
        settings = settings or get_settings()
        return cls(
            settings=settings,
            session_store=FileRecordStore(settings.data_dir / SESSION_FILE),
            persistent_store=FileRecordStore(settings.data_dir / RECORDS_FILE),
            **kwargs,
        )

    async def __aenter__(self) -> FlowPilot:
        for client in self._clients():
            if hasattr(client, "__aenter__"):
                await client.__aenter__()
        await self.mode.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        for client in self._clients():
            if hasattr(client, "__aexit__"):
                await client.__aexit__(exc_type, exc_val, exc_tb)

    def _clients(self) -> list[Any]:
        if self.wallet is self.demo_wallet:
            return [self.wallet]
        return [self.wallet, self.demo_wallet]

    @property
    def state(self) -> Mode:
        return self.mode.state
