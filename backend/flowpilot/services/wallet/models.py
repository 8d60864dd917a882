from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field

PayloadKind = Literal[
    "mint", "update_strategy", "balance", "agent_ids", "agent_details"
]


class WalletSession(BaseModel):
    address: str
    logged_in: bool = True
    provider: str = "demo"


class ChainPayload(BaseModel):
    """Opaque Cadence script or transaction plus JSON-Cadence arguments."""

    kind: PayloadKind
    cadence: str
    arguments: list[dict[str, Any]] = Field(default_factory=list)

    def argument_values(self) -> list[Any]:
        return [decode_cadence(arg) for arg in self.arguments]


class TransactionResult(BaseModel):
    transaction_id: str
    status: str = "Unknown"
    status_code: int = 0
    error_message: str = ""

    @property
    def is_sealed(self) -> bool:
        return self.status == "Sealed"

    @classmethod
    def from_api(cls, transaction_id: str, data: dict[str, Any]) -> TransactionResult:
        return cls(
            transaction_id=transaction_id,
            status=data.get("status", "Unknown"),
            status_code=int(data.get("status_code", 0) or 0),
            error_message=data.get("error_message", "") or "",
        )


# ============================================================================
# JSON-Cadence encoding
# ============================================================================


def cadence_string(value: str) -> dict[str, Any]:
    return {"type": "String", "value": value}


def cadence_address(value: str) -> dict[str, Any]:
    address = value if value.startswith("0x") else f"0x{value}"
    return {"type": "Address", "value": address}


def cadence_ufix64(value: Decimal | float | int) -> dict[str, Any]:
    return {"type": "UFix64", "value": f"{Decimal(str(value)):.8f}"}


def cadence_uint64(value: int) -> dict[str, Any]:
    return {"type": "UInt64", "value": str(int(value))}


_INT_TYPES = {
    "Int", "Int8", "Int16", "Int32", "Int64", "Int128", "Int256",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64", "UInt128", "UInt256",
    "Word8", "Word16", "Word32", "Word64",
}


def decode_cadence(value: Any) -> Any:
    """Convert a JSON-Cadence value into plain Python data."""
    if not isinstance(value, dict) or "type" not in value:
        return value

    kind = value["type"]
    inner = value.get("value")

    if kind in ("UFix64", "Fix64"):
        return Decimal(inner)
    if kind in _INT_TYPES:
        return int(inner)
    if kind == "Bool":
        return bool(inner)
    if kind in ("String", "Address", "Character"):
        return inner
    if kind == "Void":
        return None
    if kind == "Optional":
        return decode_cadence(inner) if inner is not None else None
    if kind == "Array":
        return [decode_cadence(item) for item in inner or []]
    if kind == "Dictionary":
        return {
            decode_cadence(entry["key"]): decode_cadence(entry["value"])
            for entry in inner or []
        }
    return inner
