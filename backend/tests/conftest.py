"""Shared fixtures: in-memory stores, a scripted wallet and zero-latency settings."""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from flowpilot.app import FlowPilot
from flowpilot.config import Settings
from flowpilot.events import EventBus
from flowpilot.services.wallet import ChainPayload, DemoWallet, WalletConfig, WalletSession
from flowpilot.storage import MemoryRecordStore

WALLET_ADDRESS = "0x01cf0e2f2f715450"


class ScriptedWallet:
    """Wallet double whose answers and failures are set by the test."""

    def __init__(self) -> None:
        self.session: WalletSession | None = None
        self.chain_balance: Any = Decimal("42.0")
        self.delay = 0.0

        self.connect_error: Exception | None = None
        self.session_error: Exception | None = None
        self.submit_error: Exception | None = None
        self.query_error: Exception | None = None

        self.submitted: list[ChainPayload] = []
        self.queries: list[ChainPayload] = []
        self.disconnects = 0

    async def connect(self) -> WalletSession:
        if self.connect_error:
            raise self.connect_error
        self.session = WalletSession(address=WALLET_ADDRESS, provider="flow")
        return self.session

    async def disconnect(self) -> None:
        self.disconnects += 1
        self.session = None

    async def current_session(self) -> WalletSession | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.session_error:
            raise self.session_error
        return self.session

    async def submit_strategy_payload(self, payload: ChainPayload) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(payload)
        return f"tx_{len(self.submitted)}"

    async def query_chain_state(self, payload: ChainPayload) -> Any:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.query_error:
            raise self.query_error
        self.queries.append(payload)
        return self.chain_balance


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        wallet=WalletConfig(
            demo_mint_latency_seconds=0,
            demo_update_latency_seconds=0,
            query_timeout_seconds=0.2,
            submit_timeout_seconds=0.2,
        ),
    )


@pytest.fixture
def wallet() -> ScriptedWallet:
    return ScriptedWallet()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def app(settings: Settings, wallet: ScriptedWallet, bus: EventBus) -> FlowPilot:
    """Initialized app in demo mode backed by memory stores."""
    pilot = FlowPilot(
        settings=settings,
        session_store=MemoryRecordStore(),
        persistent_store=MemoryRecordStore(),
        wallet=wallet,
        demo_wallet=DemoWallet(settings.wallet, settings.ledger.chain_initial_balance),
        bus=bus,
    )
    asyncio.run(pilot.mode.initialize())
    return pilot


@pytest.fixture
def connected_app(app: FlowPilot) -> FlowPilot:
    """App switched to wallet-connected mode through the scripted wallet."""
    asyncio.run(app.mode.connect())
    return app
