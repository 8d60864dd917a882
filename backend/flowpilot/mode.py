"""Demo / wallet-connected mode controller.

Decides which wallet and address the ledger acts for and performs the
storage transitions that go with connecting and disconnecting a wallet.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum

from flowpilot.config import Settings
from flowpilot.events import WALLET_CONNECTED, WALLET_DISCONNECTED, EventBus
from flowpilot.services.wallet import (
    DemoWallet,
    WalletClient,
    WalletError,
    call_with_timeout,
)
from flowpilot.storage.records import (
    AGENT_SEQUENCE_KEY,
    AGENTS_KEY,
    BALANCE_KEY,
    BALANCE_MANUALLY_RESET_KEY,
    BOUGHT_FLEETS_KEY,
    HAS_AGENTS_KEY,
    PAUSED_AGENT_IDS_KEY,
    WALLET_CONNECTED_KEY,
    RecordStore,
    read_flag,
    write_flag,
)

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    UNINITIALIZED = "uninitialized"
    DEMO = "demo"
    WALLET_CONNECTED = "wallet_connected"


class ModeController:
    """State machine ``Uninitialized -> Demo <-> WalletConnected``.

    Wallet failures are logged and resolved by falling back to demo mode;
    no method raises.
    """

    def __init__(
        self,
        session_store: RecordStore,
        persistent_store: RecordStore,
        bus: EventBus,
        wallet: WalletClient,
        demo_wallet: DemoWallet,
        settings: Settings,
    ):
        self.session_store = session_store
        self.persistent_store = persistent_store
        self.bus = bus
        self.wallet = wallet
        self.demo_wallet = demo_wallet
        self.settings = settings

        self._state = Mode.UNINITIALIZED
        self._address = settings.wallet.demo_address

    @property
    def state(self) -> Mode:
        return self._state

    @property
    def is_demo(self) -> bool:
        return self._state != Mode.WALLET_CONNECTED

    @property
    def address(self) -> str:
        return self._address

    @property
    def active_wallet(self) -> WalletClient:
        if self._state == Mode.WALLET_CONNECTED:
            return self.wallet
        return self.demo_wallet

    async def initialize(self) -> Mode:
        """Enter demo mode, or restore a wallet session flagged as connected."""
        self._enter_demo()

        if not read_flag(self.persistent_store, WALLET_CONNECTED_KEY):
            logger.info(f"Starting in demo mode ({self._address})")
            return self._state

        try:
            session = await call_with_timeout(
                self.wallet.current_session(),
                self.settings.wallet.query_timeout_seconds,
                "session check",
            )
        except WalletError as e:
            logger.warning(f"Could not restore wallet session: {e}")
            session = None
        except Exception as e:
            logger.error(f"Unexpected error during session check: {e}")
            session = None

        if session is not None and session.logged_in:
            self._state = Mode.WALLET_CONNECTED
            self._address = session.address
            logger.info(f"Restored wallet session {session.address}")
        else:
            self.fallback_to_demo("stale wallet flag without an active session")

        return self._state

    async def connect(self) -> Mode:
        try:
            session = await call_with_timeout(
                self.wallet.connect(),
                self.settings.wallet.detail_timeout_seconds,
                "connect",
            )
        except WalletError as e:
            logger.warning(f"Wallet connection failed: {e}")
            if self._state == Mode.UNINITIALIZED:
                self._enter_demo()
            return self._state
        except Exception as e:
            logger.error(f"Unexpected error during wallet connection: {e}")
            if self._state == Mode.UNINITIALIZED:
                self._enter_demo()
            return self._state

        self.handle_wallet_connected(session.address)
        return self._state

    def handle_wallet_connected(self, address: str) -> None:
        """Switch to the wallet ledger.

        Coming from demo mode (or another address) the session agent records
        are dropped, so the wallet ledger starts empty.
        """
        balance: Decimal = self.settings.ledger.connected_balance

        if self._state != Mode.WALLET_CONNECTED or self._address != address:
            logger.info("Entering wallet mode, clearing demo agents")
            self._clear_session_agents()

        self._state = Mode.WALLET_CONNECTED
        self._address = address
        self.persistent_store.set(BALANCE_KEY, str(balance))
        self.persistent_store.remove(BALANCE_MANUALLY_RESET_KEY)
        write_flag(self.persistent_store, WALLET_CONNECTED_KEY, True)

        logger.info(f"Wallet connected: {address} (balance={balance})")
        self.bus.publish(WALLET_CONNECTED, {"balance": balance, "address": address})

    async def disconnect(self) -> Mode:
        try:
            await call_with_timeout(
                self.wallet.disconnect(),
                self.settings.wallet.query_timeout_seconds,
                "disconnect",
            )
        except WalletError as e:
            logger.warning(f"Wallet disconnect reported an error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during wallet disconnect: {e}")

        self.handle_wallet_disconnected()
        return self._state

    def handle_wallet_disconnected(self) -> None:
        """Clear wallet state; agents are dropped only if a real wallet was connected."""
        was_connected = read_flag(self.persistent_store, WALLET_CONNECTED_KEY)

        if was_connected:
            logger.info("Real wallet disconnected, clearing agents and bought fleets")
            self._clear_session_agents()
        else:
            logger.info("Demo logout, keeping agents")

        self.persistent_store.remove(BOUGHT_FLEETS_KEY)
        for key in (WALLET_CONNECTED_KEY, BALANCE_KEY, BALANCE_MANUALLY_RESET_KEY):
            self.persistent_store.remove(key)

        self._enter_demo()
        self.bus.publish(WALLET_DISCONNECTED, {"balance": Decimal("0")})

    def fallback_to_demo(self, reason: str) -> None:
        logger.warning(f"Falling back to demo mode: {reason}")
        write_flag(self.persistent_store, WALLET_CONNECTED_KEY, False)
        self._enter_demo()

    def _enter_demo(self) -> None:
        self._state = Mode.DEMO
        self._address = self.settings.wallet.demo_address

    def _clear_session_agents(self) -> None:
        for key in (AGENTS_KEY, HAS_AGENTS_KEY, PAUSED_AGENT_IDS_KEY, AGENT_SEQUENCE_KEY):
            self.session_store.remove(key)
