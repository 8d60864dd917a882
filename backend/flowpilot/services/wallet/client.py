from __future__ import annotations

import asyncio
import base64
import json
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Protocol, TypeVar
from uuid import uuid4

import httpx

from .config import WalletConfig
from .exceptions import (
    WalletAuthError,
    WalletError,
    WalletNotFoundError,
    WalletRateLimitError,
    WalletTimeoutError,
)
from .models import ChainPayload, TransactionResult, WalletSession, decode_cadence

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Produces envelope signatures for an unsigned transaction body.
Signer = Callable[[dict[str, Any]], Awaitable[list[dict[str, Any]]]]


class WalletClient(Protocol):
    """Operations the ledger needs from a wallet."""

    async def connect(self) -> WalletSession: ...

    async def disconnect(self) -> None: ...

    async def current_session(self) -> WalletSession | None: ...

    async def submit_strategy_payload(self, payload: ChainPayload) -> str: ...

    async def query_chain_state(self, payload: ChainPayload) -> Any: ...


async def call_with_timeout(
    awaitable: Awaitable[T],
    seconds: float,
    operation: str,
) -> T:
    """Await ``awaitable`` with a deadline, raising WalletTimeoutError on expiry."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Wallet {operation} timed out after {seconds}s")
        raise WalletTimeoutError(f"{operation} timed out after {seconds}s")


# ============================================================================
# Demo wallet
# ============================================================================


class DemoWallet:
    """Paper wallet used in demo mode.

    Transactions are accepted after a simulated latency and mirrored in memory
    so that queries answer the way the AgentNFT scripts would.
    """

    def __init__(
        self,
        config: WalletConfig | None = None,
        chain_initial_balance: Decimal = Decimal("100.0"),
    ):
        self.config = config or WalletConfig()
        self.chain_initial_balance = chain_initial_balance
        self._session: WalletSession | None = None
        self._agents: dict[int, dict[str, str]] = {}
        self._payments: list[Decimal] = []
        self._transactions: list[str] = []

        logger.info(f"Initialized DemoWallet (address={self.config.demo_address})")

    async def __aenter__(self) -> DemoWallet:
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        return None

    @property
    def transactions(self) -> list[str]:
        return list(self._transactions)

    async def connect(self) -> WalletSession:
        self._session = WalletSession(address=self.config.demo_address, provider="demo")
        logger.info(f"Demo wallet connected: {self._session.address}")
        return self._session

    async def disconnect(self) -> None:
        self._session = None
        logger.info("Demo wallet disconnected")

    async def current_session(self) -> WalletSession | None:
        return self._session

    async def submit_strategy_payload(self, payload: ChainPayload) -> str:
        values = payload.argument_values()

        if payload.kind == "mint":
            await self._simulate_latency(self.config.demo_mint_latency_seconds)
            strategy_type, risk, allocation, time_lock, payment = values
            agent_id = len(self._agents) + 1
            self._agents[agent_id] = {
                "strategyType": strategy_type,
                "riskTolerance": risk,
                "allocationPercent": str(allocation),
                "timeLockDays": str(time_lock),
            }
            self._payments.append(Decimal(payment))
        elif payload.kind == "update_strategy":
            await self._simulate_latency(self.config.demo_update_latency_seconds)
            agent_id, strategy_type, risk, allocation, time_lock = values
            if agent_id in self._agents:
                self._agents[agent_id] = {
                    "strategyType": strategy_type,
                    "riskTolerance": risk,
                    "allocationPercent": str(allocation),
                    "timeLockDays": str(time_lock),
                }
        else:
            raise WalletError(f"Payload kind '{payload.kind}' is not a transaction")

        tx_id = f"demo_{uuid4().hex[:12]}"
        self._transactions.append(tx_id)
        logger.info(f"Demo transaction sealed: {tx_id} ({payload.kind})")
        return tx_id

    async def query_chain_state(self, payload: ChainPayload) -> Any:
        if payload.kind == "balance":
            total = sum(self._payments, Decimal("0"))
            if total >= self.chain_initial_balance:
                return Decimal("0")
            return self.chain_initial_balance - total
        if payload.kind == "agent_ids":
            return sorted(self._agents)
        if payload.kind == "agent_details":
            _, agent_id = payload.argument_values()
            details = self._agents.get(agent_id)
            return dict(details) if details else None

        raise WalletError(f"Payload kind '{payload.kind}' is not a script")

    async def _simulate_latency(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


# ============================================================================
# Flow Access API client
# ============================================================================


def _strip_address(address: str) -> str:
    return address[2:] if address.startswith("0x") else address


def _b64(data: str | bytes) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return base64.b64encode(raw).decode("ascii")


class FlowAccessClient:
    """Wallet backed by a Flow account through the Flow Access REST API.

    Scripts are executed against the latest sealed block. Transactions are
    assembled here and signed by the injected ``signer``.
    """

    def __init__(
        self,
        config: WalletConfig | None = None,
        signer: Signer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or WalletConfig()
        self.signer = signer
        self.transport = transport
        self._client: httpx.AsyncClient | None = None
        self._session: WalletSession | None = None

        logger.info(
            f"Initialized FlowAccessClient (access_node={self.config.access_node_url}, "
            f"signer={'enabled' if signer else 'disabled'})"
        )

    async def __aenter__(self) -> FlowAccessClient:
        limits = httpx.Limits(max_connections=self.config.max_connections)
        self._client = httpx.AsyncClient(
            base_url=self.config.access_node_url,
            timeout=self.config.detail_timeout_seconds,
            limits=limits,
            transport=self.transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed FlowAccessClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "FlowAccessClient must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.request(
                    method=method,
                    url=endpoint,
                    params=params,
                    json=json_data,
                )

                if response.status_code in (401, 403):
                    raise WalletAuthError(
                        f"Access denied: {endpoint}", status_code=response.status_code
                    )
                elif response.status_code == 404:
                    raise WalletNotFoundError(
                        f"Resource not found: {endpoint}", status_code=404
                    )
                elif response.status_code == 429:
                    wait_time = 2 ** retry_count
                    logger.warning(f"Rate limited, waiting {wait_time}s...")
                    last_error = WalletRateLimitError("Rate limit exceeded", status_code=429)
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Access node error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = WalletError(
                        f"Access node error {response.status_code}",
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 400:
                    raise WalletError(
                        f"Request rejected ({response.status_code}): {response.text}",
                        status_code=response.status_code,
                    )

                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(1)

            except httpx.RequestError as e:
                logger.error(f"Network error: {e}")
                raise WalletError(f"Network error: {e}")

        if isinstance(last_error, httpx.TimeoutException):
            raise WalletTimeoutError(
                f"Request timed out after {retry_count} attempts: {endpoint}"
            )
        if isinstance(last_error, WalletError):
            raise last_error
        raise WalletError(f"Request failed after {retry_count} retries: {last_error}")

    async def connect(self) -> WalletSession:
        if not self.config.has_account:
            raise WalletAuthError(
                "No Flow account configured. Set WALLET__ACCOUNT_ADDRESS."
            )

        address = _strip_address(self.config.account_address)
        account = await self._request("GET", f"/v1/accounts/{address}")
        self._session = WalletSession(
            address=f"0x{account.get('address', address)}".replace("0x0x", "0x"),
            provider="flow",
        )
        logger.info(f"Connected Flow account {self._session.address}")
        return self._session

    async def disconnect(self) -> None:
        self._session = None
        logger.info("Flow account session cleared")

    async def current_session(self) -> WalletSession | None:
        if self._session is not None:
            return self._session
        if not self.config.has_account:
            return None
        try:
            return await self.connect()
        except WalletNotFoundError:
            return None

    async def query_chain_state(self, payload: ChainPayload) -> Any:
        body = {
            "script": _b64(payload.cadence),
            "arguments": [_b64(json.dumps(arg)) for arg in payload.arguments],
        }
        result = await self._request(
            "POST", "/v1/scripts", params={"block_height": "sealed"}, json_data=body
        )

        try:
            decoded = json.loads(base64.b64decode(result))
        except (ValueError, TypeError) as e:
            raise WalletError(f"Malformed script result: {e}")

        return decode_cadence(decoded)

    async def submit_strategy_payload(self, payload: ChainPayload) -> str:
        if self.signer is None:
            raise WalletAuthError("Transaction signing requires a signer")
        if self._session is None:
            raise WalletAuthError("Wallet is not connected")

        address = _strip_address(self._session.address)

        blocks = await self._request("GET", "/v1/blocks", params={"height": "sealed"})
        reference_block_id = blocks[0]["header"]["id"]

        account = await self._request(
            "GET", f"/v1/accounts/{address}", params={"expand": "keys"}
        )
        key_index = self.config.account_key_index
        keys = {int(k["index"]): k for k in account.get("keys", [])}
        if key_index not in keys:
            raise WalletAuthError(f"Account key {key_index} not found on {address}")

        body: dict[str, Any] = {
            "script": _b64(payload.cadence),
            "arguments": [_b64(json.dumps(arg)) for arg in payload.arguments],
            "reference_block_id": reference_block_id,
            "gas_limit": str(self.config.gas_limit),
            "payer": address,
            "proposal_key": {
                "address": address,
                "key_index": str(key_index),
                "sequence_number": str(keys[key_index]["sequence_number"]),
            },
            "authorizers": [address],
            "payload_signatures": [],
        }
        body["envelope_signatures"] = await self.signer(body)

        response = await self._request("POST", "/v1/transactions", json_data=body)
        tx_id = response["id"]
        logger.info(f"Submitted {payload.kind} transaction {tx_id}")

        result = await self._wait_for_seal(tx_id)
        if result.error_message:
            raise WalletError(f"Transaction {tx_id} failed: {result.error_message}")
        return tx_id

    async def _wait_for_seal(self, tx_id: str) -> TransactionResult:
        while True:
            data = await self._request("GET", f"/v1/transaction_results/{tx_id}")
            result = TransactionResult.from_api(tx_id, data)
            if result.is_sealed or result.error_message:
                return result
            await asyncio.sleep(self.config.seal_poll_interval_seconds)


def create_wallet_client(
    config: WalletConfig | None = None,
    chain_initial_balance: Decimal = Decimal("100.0"),
    signer: Signer | None = None,
) -> DemoWallet | FlowAccessClient:
    """Create the Flow client when an account is configured, else a demo wallet."""
    config = config or WalletConfig()
    if config.has_account:
        return FlowAccessClient(config=config, signer=signer)
    return DemoWallet(config=config, chain_initial_balance=chain_initial_balance)
