"""Tests for demo / wallet-connected mode transitions."""

import asyncio
from decimal import Decimal

from flowpilot.app import FlowPilot
from flowpilot.events import WALLET_CONNECTED, WALLET_DISCONNECTED
from flowpilot.mode import Mode
from flowpilot.services.wallet import WalletAuthError, WalletError, WalletSession
from flowpilot.storage import (
    BALANCE_KEY,
    BALANCE_MANUALLY_RESET_KEY,
    BOUGHT_FLEETS_KEY,
    WALLET_CONNECTED_KEY,
    read_flag,
    write_json,
)

WALLET_ADDRESS = "0x01cf0e2f2f715450"


def _mint(app: FlowPilot, *strategy_types: str) -> None:
    async def run() -> None:
        for strategy_type in strategy_types:
            await app.ledger.mint(strategy_type)

    asyncio.run(run())


def test_starts_in_demo_mode(app: FlowPilot, settings) -> None:
    assert app.mode.state == Mode.DEMO
    assert app.mode.is_demo
    assert app.mode.address == settings.wallet.demo_address
    assert app.mode.active_wallet is app.demo_wallet


def test_connect_switches_to_wallet(app: FlowPilot, wallet, bus) -> None:
    events = []
    bus.subscribe(WALLET_CONNECTED, events.append)

    state = asyncio.run(app.mode.connect())

    assert state == Mode.WALLET_CONNECTED
    assert app.mode.address == WALLET_ADDRESS
    assert app.mode.active_wallet is wallet
    assert read_flag(app.persistent_store, WALLET_CONNECTED_KEY)
    assert app.ledger.balance() == Decimal("1000")
    assert events == [{"balance": Decimal("1000"), "address": WALLET_ADDRESS}]


def test_connect_starts_an_empty_wallet_ledger(app: FlowPilot) -> None:
    _mint(app, "AutoCompoundOnly5P", "HighestAPY")
    app.ledger.pause(1)

    asyncio.run(app.mode.connect())

    assert app.ledger.list_agents() == []
    assert app.ledger.paused_ids() == set()
    assert app.ledger.is_fresh_session()
    assert app.ledger.balance() == Decimal("1000")

    _mint(app, "AutoCompoundOnly15P")
    assert [a.id for a in app.ledger.list_agents()] == [1]
    assert app.ledger.balance() == Decimal("992")


def test_reconnecting_same_wallet_keeps_agents(connected_app: FlowPilot) -> None:
    _mint(connected_app, "HighestAPY")

    asyncio.run(connected_app.mode.connect())

    assert [a.id for a in connected_app.ledger.list_agents()] == [1]


def test_failed_connect_stays_in_demo(app: FlowPilot, wallet) -> None:
    wallet.connect_error = WalletAuthError("User cancelled")

    assert asyncio.run(app.mode.connect()) == Mode.DEMO
    assert not read_flag(app.persistent_store, WALLET_CONNECTED_KEY)


def test_demo_logout_keeps_agents(app: FlowPilot, bus) -> None:
    _mint(app, "AutoCompoundOnly5P", "HighestAPY")
    write_json(app.persistent_store, BOUGHT_FLEETS_KEY, [{"id": "fleet-nft-1"}])
    events = []
    bus.subscribe(WALLET_DISCONNECTED, events.append)

    app.mode.handle_wallet_disconnected()

    assert [a.id for a in app.ledger.list_agents()] == [1, 2]
    assert app.marketplace.bought_fleets() == []
    assert app.persistent_store.get(BOUGHT_FLEETS_KEY) is None
    assert app.mode.state == Mode.DEMO
    assert events == [{"balance": Decimal("0")}]


def test_wallet_disconnect_clears_agents(connected_app: FlowPilot, wallet) -> None:
    app = connected_app
    _mint(app, "AutoCompoundOnly5P", "HighestAPY")
    app.ledger.pause(1)
    app.ledger.reset_balance(Decimal("300"))
    write_json(app.persistent_store, BOUGHT_FLEETS_KEY, [{"id": "fleet-nft-1"}])

    assert asyncio.run(app.mode.disconnect()) == Mode.DEMO

    assert wallet.disconnects == 1
    assert app.ledger.list_agents() == []
    assert app.ledger.paused_ids() == set()
    assert app.ledger.is_fresh_session()
    for key in (BOUGHT_FLEETS_KEY, WALLET_CONNECTED_KEY, BALANCE_KEY, BALANCE_MANUALLY_RESET_KEY):
        assert app.persistent_store.get(key) is None
    assert app.mode.active_wallet is app.demo_wallet


def test_disconnect_tolerates_wallet_errors(connected_app: FlowPilot, wallet) -> None:
    async def failing_disconnect() -> None:
        raise WalletError("already logged out")

    wallet.disconnect = failing_disconnect

    assert asyncio.run(connected_app.mode.disconnect()) == Mode.DEMO
    assert not read_flag(connected_app.persistent_store, WALLET_CONNECTED_KEY)


def test_disconnect_tolerates_unexpected_errors(connected_app: FlowPilot, wallet) -> None:
    async def broken_disconnect() -> None:
        raise RuntimeError("sdk blew up")

    wallet.disconnect = broken_disconnect

    assert asyncio.run(connected_app.mode.disconnect()) == Mode.DEMO
    assert not read_flag(connected_app.persistent_store, WALLET_CONNECTED_KEY)


def test_disconnect_does_not_wait_for_hanging_wallet(connected_app: FlowPilot, wallet) -> None:
    async def hanging_disconnect() -> None:
        await asyncio.sleep(10)

    wallet.disconnect = hanging_disconnect

    async def run() -> Mode:
        return await asyncio.wait_for(connected_app.mode.disconnect(), timeout=2)

    assert asyncio.run(run()) == Mode.DEMO
    assert connected_app.ledger.list_agents() == []


def test_connect_tolerates_unexpected_errors(app: FlowPilot, wallet) -> None:
    wallet.connect_error = RuntimeError("client not opened")

    assert asyncio.run(app.mode.connect()) == Mode.DEMO
    assert not read_flag(app.persistent_store, WALLET_CONNECTED_KEY)


def test_malformed_session_response_falls_back_to_demo(app: FlowPilot, wallet) -> None:
    app.persistent_store.set(WALLET_CONNECTED_KEY, "true")
    wallet.session_error = KeyError("address")

    assert asyncio.run(app.mode.initialize()) == Mode.DEMO
    assert not read_flag(app.persistent_store, WALLET_CONNECTED_KEY)


def test_initialize_restores_active_session(app: FlowPilot, wallet) -> None:
    asyncio.run(app.mode.connect())
    app.persistent_store.set(BALANCE_KEY, "640.0")

    assert asyncio.run(app.mode.initialize()) == Mode.WALLET_CONNECTED
    assert app.mode.address == WALLET_ADDRESS
    # Restoring a session does not reset the balance
    assert app.ledger.balance() == Decimal("640.0")


def test_stale_flag_falls_back_to_demo(app: FlowPilot, wallet) -> None:
    app.persistent_store.set(WALLET_CONNECTED_KEY, "true")
    _mint(app, "HighestAPY")
    wallet.session = None

    assert asyncio.run(app.mode.initialize()) == Mode.DEMO
    assert not read_flag(app.persistent_store, WALLET_CONNECTED_KEY)
    assert len(app.ledger.list_agents()) == 1


def test_session_check_timeout_falls_back_to_demo(app: FlowPilot, wallet) -> None:
    app.persistent_store.set(WALLET_CONNECTED_KEY, "true")
    wallet.session = WalletSession(address=WALLET_ADDRESS)
    wallet.delay = 1.0

    assert asyncio.run(app.mode.initialize()) == Mode.DEMO
    assert not read_flag(app.persistent_store, WALLET_CONNECTED_KEY)


def test_session_check_failure_falls_back_to_demo(app: FlowPilot, wallet) -> None:
    app.persistent_store.set(WALLET_CONNECTED_KEY, "true")
    wallet.session_error = WalletError("provider unavailable")

    assert asyncio.run(app.mode.initialize()) == Mode.DEMO


def test_logged_out_session_falls_back_to_demo(app: FlowPilot, wallet) -> None:
    app.persistent_store.set(WALLET_CONNECTED_KEY, "true")
    wallet.session = WalletSession(address=WALLET_ADDRESS, logged_in=False)

    assert asyncio.run(app.mode.initialize()) == Mode.DEMO
