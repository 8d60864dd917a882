"""Agent ledger: minted agents, paused set and the derived balance.

Every read goes through the record stores, so a ledger, a marketplace and a
mode controller sharing the same stores always see the same state.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from pydantic import ValidationError

from flowpilot.events import AGENTS_UPDATED, BALANCE_UPDATED, EventBus
from flowpilot.services.wallet.client import call_with_timeout
from flowpilot.services.wallet.exceptions import WalletError
from flowpilot.services.wallet.scripts import (
    build_balance_query,
    build_mint_payload,
    build_update_strategy_payload,
)
from flowpilot.storage.records import (
    AGENT_SEQUENCE_KEY,
    AGENTS_KEY,
    BALANCE_KEY,
    BALANCE_MANUALLY_RESET_KEY,
    HAS_AGENTS_KEY,
    PAUSED_AGENT_IDS_KEY,
    RecordStore,
    read_flag,
    read_json,
    write_flag,
    write_json,
)

from . import costs
from .exceptions import AgentNotFoundError, LedgerBusyError
from .models import Agent, AgentDisplay, AgentStatus, AgentStrategy, AgentView, StrategyType

if TYPE_CHECKING:
    from flowpilot.config import Settings
    from flowpilot.mode import ModeController

logger = logging.getLogger(__name__)


class AgentLedger:
    """Owns the agent collection of the active session."""

    def __init__(
        self,
        session_store: RecordStore,
        persistent_store: RecordStore,
        bus: EventBus,
        mode: ModeController,
        settings: Settings,
    ):
        self.session_store = session_store
        self.persistent_store = persistent_store
        self.bus = bus
        self.mode = mode
        self.settings = settings
        self._minting = False

    # ========================================================================
    # Agents
    # ========================================================================

    def list_agents(self) -> list[Agent]:
        """Agents in mint order (ascending id)."""
        records = read_json(self.session_store, AGENTS_KEY, default=[])
        if not isinstance(records, list):
            logger.warning(f"Ignoring non-list '{AGENTS_KEY}' record")
            return []

        agents: list[Agent] = []
        for record in records:
            try:
                agents.append(Agent.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping invalid agent record {record!r}: {e}")

        return sorted(agents, key=lambda a: a.id)

    def get_agent(self, agent_id: int | str) -> Agent:
        key = str(agent_id)
        for agent in self.list_agents():
            if str(agent.id) == key:
                return agent
        raise AgentNotFoundError(agent_id)

    def _save_agents(self, agents: list[Agent]) -> None:
        ordered = sorted(agents, key=lambda a: a.id)
        write_json(self.session_store, AGENTS_KEY, [a.to_record() for a in ordered])

    def _next_id(self, agents: list[Agent]) -> int:
        raw = self.session_store.get(AGENT_SEQUENCE_KEY)
        try:
            sequence = int(raw) if raw is not None else 0
        except ValueError:
            logger.warning(f"Invalid agent sequence {raw!r}, rebuilding from agents")
            sequence = 0
        highest = max((a.id for a in agents), default=0)
        return max(sequence, highest) + 1

    async def mint(
        self,
        strategy_type: str | StrategyType,
        strategy: AgentStrategy | None = None,
    ) -> Agent:
        """Mint a new agent through the active wallet and record it locally.

        Nothing is written unless the wallet confirms the transaction.

        Raises:
            LedgerBusyError: Another mint is still pending.
            WalletError: The wallet rejected or timed out on the transaction.
        """
        if self._minting:
            raise LedgerBusyError("A mint is already in progress")

        tag = strategy_type.value if isinstance(strategy_type, StrategyType) else strategy_type
        strategy = strategy or AgentStrategy.default_for(tag)
        cost = costs.agent_cost(tag)

        self._minting = True
        try:
            payload = build_mint_payload(
                strategy, cost, self.settings.wallet.contract_address
            )
            tx_id = await call_with_timeout(
                self.mode.active_wallet.submit_strategy_payload(payload),
                self.settings.wallet.submit_timeout_seconds,
                "mint",
            )
        finally:
            self._minting = False

        balance_before = self.balance()
        agents = self.list_agents()
        agent = Agent(
            id=self._next_id(agents),
            strategy_type=tag,
            cost=cost,
            strategy=strategy,
        )
        agents.append(agent)

        self._save_agents(agents)
        self.session_store.set(AGENT_SEQUENCE_KEY, str(agent.id))
        write_flag(self.session_store, HAS_AGENTS_KEY, True)

        balance = costs.apply_balance_floor(
            balance_before - cost, self.settings.ledger.allow_negative_balance
        )
        self._write_balance(balance)

        logger.info(
            f"Minted agent #{agent.id} ({tag}) for {cost} USDC, tx={tx_id}, "
            f"balance={balance}"
        )
        self.bus.publish(AGENTS_UPDATED, {"agent": agent.to_record(), "count": len(agents)})
        self.bus.publish(BALANCE_UPDATED, {"balance": balance})
        return agent

    async def update_strategy(self, agent_id: int | str, strategy: AgentStrategy) -> Agent:
        """Replace an agent's editable strategy. Id, cost and pricing tag are kept."""
        agent = self.get_agent(agent_id)

        payload = build_update_strategy_payload(
            agent.id, strategy, self.settings.wallet.contract_address
        )
        await call_with_timeout(
            self.mode.active_wallet.submit_strategy_payload(payload),
            self.settings.wallet.submit_timeout_seconds,
            "strategy update",
        )

        # The ledger may have been cleared while the wallet call was pending
        agents = self.list_agents()
        current = next((a for a in agents if a.id == agent.id), None)
        if current is None:
            logger.warning(f"Agent #{agent.id} disappeared during strategy update")
            raise AgentNotFoundError(agent.id)

        updated = current.model_copy(update={"strategy": strategy})
        agents = [updated if a.id == agent.id else a for a in agents]
        self._save_agents(agents)

        logger.info(f"Updated strategy for agent #{agent.id}: {strategy.strategy_type}")
        self.bus.publish(AGENTS_UPDATED, {"agent": updated.to_record(), "count": len(agents)})
        return updated

    def clear(self) -> None:
        for key in (AGENTS_KEY, HAS_AGENTS_KEY, PAUSED_AGENT_IDS_KEY, AGENT_SEQUENCE_KEY):
            self.session_store.remove(key)
        logger.info("Cleared agent ledger")
        self.bus.publish(AGENTS_UPDATED, {"count": 0})

    def is_fresh_session(self) -> bool:
        return not read_flag(self.session_store, HAS_AGENTS_KEY)

    # ========================================================================
    # Pause / resume
    # ========================================================================

    def paused_ids(self) -> set[str]:
        ids = read_json(self.session_store, PAUSED_AGENT_IDS_KEY, default=[])
        if not isinstance(ids, list):
            return set()
        return {str(i) for i in ids}

    def _save_paused(self, ids: set[str]) -> None:
        write_json(self.session_store, PAUSED_AGENT_IDS_KEY, sorted(ids, key=_id_sort_key))

    def status(self, agent_id: int | str) -> AgentStatus:
        return "Paused" if str(agent_id) in self.paused_ids() else "Active"

    def pause(self, agent_id: int | str) -> AgentStatus:
        agent = self.get_agent(agent_id)
        ids = self.paused_ids()
        if str(agent.id) not in ids:
            ids.add(str(agent.id))
            self._save_paused(ids)
            logger.info(f"Paused agent #{agent.id}")
            self.bus.publish(AGENTS_UPDATED, {"agent_id": agent.id, "status": "Paused"})
        return "Paused"

    def resume(self, agent_id: int | str) -> AgentStatus:
        agent = self.get_agent(agent_id)
        ids = self.paused_ids()
        if str(agent.id) in ids:
            ids.discard(str(agent.id))
            self._save_paused(ids)
            logger.info(f"Resumed agent #{agent.id}")
            self.bus.publish(AGENTS_UPDATED, {"agent_id": agent.id, "status": "Active"})
        return "Active"

    def toggle_pause(self, agent_id: int | str) -> AgentStatus:
        if self.status(agent_id) == "Paused":
            return self.resume(agent_id)
        return self.pause(agent_id)

    # ========================================================================
    # Views
    # ========================================================================

    def derive_display(self, agent: Agent) -> AgentDisplay:
        return costs.derive_display(agent.strategy_type)

    def views(self) -> list[AgentView]:
        paused = self.paused_ids()
        return [
            AgentView(
                agent=agent,
                display=self.derive_display(agent),
                status="Paused" if str(agent.id) in paused else "Active",
            )
            for agent in self.list_agents()
        ]

    # ========================================================================
    # Balance
    # ========================================================================

    def _initial_balance(self) -> Decimal:
        if self.mode.is_demo:
            return self.settings.ledger.demo_initial_balance
        return self.settings.ledger.connected_balance

    def _read_balance(self) -> Decimal | None:
        raw = self.persistent_store.get(BALANCE_KEY)
        if raw is None:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            logger.warning(f"Corrupted balance record {raw!r}, ignoring")
            return None

    def _write_balance(self, balance: Decimal) -> None:
        self.persistent_store.set(BALANCE_KEY, str(balance))

    def is_balance_overridden(self) -> bool:
        return read_flag(self.persistent_store, BALANCE_MANUALLY_RESET_KEY)

    def compute_balance(self, initial: Decimal | None = None) -> Decimal:
        """``initial`` minus the cost of every agent, under the floor policy."""
        start = self._initial_balance() if initial is None else Decimal(initial)
        return costs.derive_balance(
            start, self.list_agents(), self.settings.ledger.allow_negative_balance
        )

    def balance(self) -> Decimal:
        """Current spendable balance.

        A manual override is returned as-is. In wallet mode the cached value
        (last authoritative refresh, minus later mints) is used when present.
        Otherwise the balance is recomputed from the agents and cached.
        """
        cached = self._read_balance()
        if cached is not None:
            if self.is_balance_overridden() or not self.mode.is_demo:
                return cached

        balance = self.compute_balance()
        if balance != cached:
            self._write_balance(balance)
        return balance

    def reset_balance(self, amount: Decimal | None = None) -> Decimal:
        balance = self.settings.ledger.demo_initial_balance if amount is None else Decimal(amount)
        self._write_balance(balance)
        write_flag(self.persistent_store, BALANCE_MANUALLY_RESET_KEY, True)

        logger.info(f"Balance manually reset to {balance}")
        self.bus.publish(BALANCE_UPDATED, {"balance": balance, "manual": True})
        return balance

    async def refresh_balance(self) -> Decimal:
        """Authoritative refresh from the chain. Never raises."""
        if self.mode.is_demo:
            return self.balance()

        payload = build_balance_query(
            self.mode.address, self.settings.wallet.contract_address
        )
        try:
            result = await call_with_timeout(
                self.mode.active_wallet.query_chain_state(payload),
                self.settings.wallet.query_timeout_seconds,
                "balance query",
            )
            balance = Decimal(str(result))
        except (WalletError, InvalidOperation) as e:
            cached = self._read_balance()
            fallback = cached if cached is not None else self.settings.ledger.demo_initial_balance
            logger.warning(f"Balance refresh failed ({e}), using {fallback}")
            return fallback

        self._write_balance(balance)
        write_flag(self.persistent_store, BALANCE_MANUALLY_RESET_KEY, False)

        logger.info(f"Refreshed balance from chain: {balance}")
        self.bus.publish(BALANCE_UPDATED, {"balance": balance})
        return balance

    # ========================================================================
    # Valuation
    # ========================================================================

    def value_portfolio(self, markup: Decimal | None = None) -> Decimal:
        markup = self.settings.ledger.portfolio_markup if markup is None else markup
        return costs.portfolio_value(self.list_agents(), markup)

    def recommended_sale_price(self) -> Decimal:
        return costs.recommended_sale_price(
            self.list_agents(),
            self.settings.ledger.portfolio_markup,
            self.settings.ledger.listing_premium,
        )


def _id_sort_key(value: str) -> tuple[int, str]:
    return (int(value), value) if value.isdigit() else (0, value)
