from .client import (
    DemoWallet,
    FlowAccessClient,
    WalletClient,
    call_with_timeout,
    create_wallet_client,
)
from .config import WalletConfig
from .exceptions import (
    WalletAuthError,
    WalletError,
    WalletNotFoundError,
    WalletRateLimitError,
    WalletTimeoutError,
)
from .models import ChainPayload, TransactionResult, WalletSession, decode_cadence
from .scripts import (
    build_agent_details_query,
    build_agent_ids_query,
    build_balance_query,
    build_mint_payload,
    build_update_strategy_payload,
)

__all__ = [
    "DemoWallet",
    "FlowAccessClient",
    "WalletClient",
    "call_with_timeout",
    "create_wallet_client",
    "WalletConfig",
    "WalletAuthError",
    "WalletError",
    "WalletNotFoundError",
    "WalletRateLimitError",
    "WalletTimeoutError",
    "ChainPayload",
    "TransactionResult",
    "WalletSession",
    "decode_cadence",
    "build_agent_details_query",
    "build_agent_ids_query",
    "build_balance_query",
    "build_mint_payload",
    "build_update_strategy_payload",
]
