"""Tests for the wallet collaborator: JSON-Cadence, demo wallet and Flow client."""

import asyncio
import base64
import json
from decimal import Decimal

import httpx
import pytest

from flowpilot.ledger import AgentStrategy
from flowpilot.services.wallet import (
    DemoWallet,
    FlowAccessClient,
    WalletAuthError,
    WalletConfig,
    WalletError,
    WalletNotFoundError,
    WalletTimeoutError,
    build_agent_details_query,
    build_agent_ids_query,
    build_balance_query,
    build_mint_payload,
    build_update_strategy_payload,
    call_with_timeout,
    create_wallet_client,
    decode_cadence,
)
from flowpilot.services.wallet.models import cadence_address, cadence_ufix64

CONTRACT = "0x8b32c5ecee9fe36f"
ACCOUNT = "01cf0e2f2f715450"


# ============================================================================
# JSON-Cadence
# ============================================================================


def test_decode_cadence_values() -> None:
    assert decode_cadence({"type": "UFix64", "value": "92.50000000"}) == Decimal("92.5")
    assert decode_cadence({"type": "UInt64", "value": "7"}) == 7
    assert decode_cadence({"type": "String", "value": "HighestAPY"}) == "HighestAPY"
    assert decode_cadence({"type": "Optional", "value": None}) is None
    assert decode_cadence(
        {
            "type": "Array",
            "value": [{"type": "UInt64", "value": "1"}, {"type": "UInt64", "value": "2"}],
        }
    ) == [1, 2]
    assert decode_cadence(
        {
            "type": "Optional",
            "value": {
                "type": "Dictionary",
                "value": [
                    {
                        "key": {"type": "String", "value": "riskTolerance"},
                        "value": {"type": "String", "value": "Low"},
                    }
                ],
            },
        }
    ) == {"riskTolerance": "Low"}


def test_encode_cadence_values() -> None:
    assert cadence_ufix64(Decimal("50")) == {"type": "UFix64", "value": "50.00000000"}
    assert cadence_address(ACCOUNT) == {"type": "Address", "value": f"0x{ACCOUNT}"}


def test_payload_builders_resolve_contract_address() -> None:
    strategy = AgentStrategy.default_for("HighestAPY")
    payloads = [
        build_mint_payload(strategy, Decimal("200"), CONTRACT),
        build_update_strategy_payload(3, strategy, CONTRACT),
        build_balance_query(ACCOUNT, CONTRACT),
        build_agent_ids_query(ACCOUNT, CONTRACT),
        build_agent_details_query(ACCOUNT, 3, CONTRACT),
    ]

    for payload in payloads:
        assert f"import AgentNFT from {CONTRACT}" in payload.cadence
        assert "0xAgentNFT" not in payload.cadence

    assert payloads[1].argument_values()[0] == 3
    assert payloads[4].argument_values() == [f"0x{ACCOUNT}", 3]


# ============================================================================
# Demo wallet
# ============================================================================


def _demo_wallet() -> DemoWallet:
    config = WalletConfig(demo_mint_latency_seconds=0, demo_update_latency_seconds=0)
    return DemoWallet(config, chain_initial_balance=Decimal("100"))


def test_demo_wallet_emulates_balance_script() -> None:
    wallet = _demo_wallet()
    strategy = AgentStrategy.default_for("AutoCompoundOnly15P")

    async def run() -> None:
        tx_id = await wallet.submit_strategy_payload(
            build_mint_payload(strategy, Decimal("8"), CONTRACT)
        )
        assert tx_id.startswith("demo_")

        balance = await wallet.query_chain_state(build_balance_query(ACCOUNT, CONTRACT))
        assert balance == Decimal("92")

        for _ in range(3):
            await wallet.submit_strategy_payload(
                build_mint_payload(strategy, Decimal("50"), CONTRACT)
            )
        balance = await wallet.query_chain_state(build_balance_query(ACCOUNT, CONTRACT))
        assert balance == Decimal("0")

    asyncio.run(run())


def test_demo_wallet_tracks_agents_and_strategies() -> None:
    wallet = _demo_wallet()

    async def run() -> None:
        await wallet.submit_strategy_payload(
            build_mint_payload(AgentStrategy.default_for("HighestAPY"), Decimal("200"), CONTRACT)
        )
        updated = AgentStrategy(strategy_type="RiskAdjustedYield", risk_tolerance="Low")
        await wallet.submit_strategy_payload(build_update_strategy_payload(1, updated, CONTRACT))

        assert await wallet.query_chain_state(build_agent_ids_query(ACCOUNT, CONTRACT)) == [1]
        details = await wallet.query_chain_state(build_agent_details_query(ACCOUNT, 1, CONTRACT))
        assert details["strategyType"] == "RiskAdjustedYield"
        assert details["riskTolerance"] == "Low"
        assert await wallet.query_chain_state(build_agent_details_query(ACCOUNT, 9, CONTRACT)) is None

    asyncio.run(run())


def test_demo_wallet_session() -> None:
    wallet = _demo_wallet()

    async def run() -> None:
        async with wallet:
            assert await wallet.current_session() is None
            session = await wallet.connect()
            assert session.address == wallet.config.demo_address
            await wallet.disconnect()
            assert await wallet.current_session() is None

    asyncio.run(run())


def test_call_with_timeout() -> None:
    async def slow() -> str:
        await asyncio.sleep(1)
        return "late"

    async def fast() -> str:
        return "ok"

    with pytest.raises(WalletTimeoutError):
        asyncio.run(call_with_timeout(slow(), 0.05, "query"))
    assert asyncio.run(call_with_timeout(fast(), 1, "query")) == "ok"


def test_factory_picks_client_by_account() -> None:
    assert isinstance(create_wallet_client(WalletConfig()), DemoWallet)
    assert isinstance(
        create_wallet_client(WalletConfig(account_address=f"0x{ACCOUNT}")), FlowAccessClient
    )


# ============================================================================
# Flow Access API client
# ============================================================================


def _encoded(value: dict) -> str:
    return base64.b64encode(json.dumps(value).encode()).decode()


class FakeAccessNode:
    """Minimal Flow Access REST API for MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.transaction_status = "Sealed"
        self.transaction_error = ""

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == f"/v1/accounts/{ACCOUNT}":
            return httpx.Response(
                200,
                json={
                    "address": ACCOUNT,
                    "keys": [{"index": "0", "sequence_number": "7"}],
                },
            )
        if path.startswith("/v1/accounts/"):
            return httpx.Response(404, json={"message": "account not found"})
        if path == "/v1/scripts":
            return httpx.Response(200, json=_encoded({"type": "UFix64", "value": "92.00000000"}))
        if path == "/v1/blocks":
            return httpx.Response(200, json=[{"header": {"id": "block-abc"}}])
        if path == "/v1/transactions":
            return httpx.Response(201, json={"id": "tx-123"})
        if path == "/v1/transaction_results/tx-123":
            return httpx.Response(
                200,
                json={
                    "status": self.transaction_status,
                    "status_code": 1 if self.transaction_error else 0,
                    "error_message": self.transaction_error,
                },
            )
        return httpx.Response(500)


def _flow_client(node: FakeAccessNode, signer=None, account: str = ACCOUNT) -> FlowAccessClient:
    config = WalletConfig(account_address=f"0x{account}", seal_poll_interval_seconds=0)
    return FlowAccessClient(config, signer=signer, transport=httpx.MockTransport(node.handle))


def test_flow_client_connect_and_query() -> None:
    node = FakeAccessNode()
    client = _flow_client(node)

    async def run() -> None:
        async with client:
            session = await client.connect()
            assert session.address == f"0x{ACCOUNT}"

            balance = await client.query_chain_state(build_balance_query(ACCOUNT, CONTRACT))
            assert balance == Decimal("92")

    asyncio.run(run())

    script_request = node.requests[-1]
    assert script_request.url.params["block_height"] == "sealed"
    body = json.loads(script_request.content)
    assert CONTRACT in base64.b64decode(body["script"]).decode()
    assert json.loads(base64.b64decode(body["arguments"][0])) == {
        "type": "Address",
        "value": f"0x{ACCOUNT}",
    }


def test_flow_client_unknown_account() -> None:
    client = _flow_client(FakeAccessNode(), account="ffffffffffffffff")

    async def run() -> None:
        async with client:
            with pytest.raises(WalletNotFoundError):
                await client.connect()
            assert await client.current_session() is None

    asyncio.run(run())


def test_flow_client_requires_signer() -> None:
    client = _flow_client(FakeAccessNode())
    payload = build_mint_payload(AgentStrategy.default_for("HighestAPY"), Decimal("200"), CONTRACT)

    async def run() -> None:
        async with client:
            await client.connect()
            with pytest.raises(WalletAuthError):
                await client.submit_strategy_payload(payload)

    asyncio.run(run())


def test_flow_client_submits_signed_transaction() -> None:
    node = FakeAccessNode()
    signed = []

    async def signer(body: dict) -> list[dict]:
        signed.append(body)
        return [{"address": ACCOUNT, "key_index": "0", "signature": "c2ln"}]

    client = _flow_client(node, signer=signer)
    payload = build_mint_payload(AgentStrategy.default_for("HighestAPY"), Decimal("200"), CONTRACT)

    async def run() -> str:
        async with client:
            await client.connect()
            return await client.submit_strategy_payload(payload)

    assert asyncio.run(run()) == "tx-123"

    (body,) = signed
    assert body["reference_block_id"] == "block-abc"
    assert body["proposal_key"]["sequence_number"] == "7"
    assert body["payer"] == ACCOUNT
    assert body["authorizers"] == [ACCOUNT]

    posted = next(r for r in node.requests if r.url.path == "/v1/transactions")
    assert json.loads(posted.content)["envelope_signatures"][0]["signature"] == "c2ln"


def test_flow_client_reports_failed_transaction() -> None:
    node = FakeAccessNode()
    node.transaction_error = "panic: Could not borrow Collection"

    async def signer(body: dict) -> list[dict]:
        return []

    client = _flow_client(node, signer=signer)
    payload = build_update_strategy_payload(
        1, AgentStrategy.default_for("HighestAPY"), CONTRACT
    )

    async def run() -> None:
        async with client:
            await client.connect()
            with pytest.raises(WalletError, match="Could not borrow"):
                await client.submit_strategy_payload(payload)

    asyncio.run(run())


def test_flow_client_outside_context_manager() -> None:
    client = _flow_client(FakeAccessNode())
    with pytest.raises(RuntimeError):
        asyncio.run(client.connect())
