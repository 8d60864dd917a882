from pydantic import BaseModel


class WalletConfig(BaseModel):
    """Configuration for the wallet collaborator (demo wallet and Flow Access API)."""

    demo_address: str = "0xf8d6e0586b0a20c7"
    contract_address: str = "0x8b32c5ecee9fe36f"
    access_node_url: str = "https://rest-testnet.onflow.org"
    account_address: str = ""
    account_key_index: int = 0

    query_timeout_seconds: float = 5.0
    detail_timeout_seconds: float = 10.0
    submit_timeout_seconds: float = 60.0
    seal_poll_interval_seconds: float = 1.0
    max_retries: int = 3
    gas_limit: int = 1000
    max_connections: int = 20

    demo_mint_latency_seconds: float = 2.0
    demo_update_latency_seconds: float = 1.5

    @property
    def has_account(self) -> bool:
        """Return True when a real Flow account is configured."""
        return bool(self.account_address)
