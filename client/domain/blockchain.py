from dataclasses import dataclass
from enum import Enum
from typing import Any


class BlockchainType(str, Enum):
    ETHEREUM = "ethereum"
    HYPERLEDGER_FABRIC = "hyperledger-fabric"
    POLYGON = "polygon"
    SOLANA = "solana"


@dataclass
class TransactionResult:
    transaction_id: str
    success: bool
    block_number: int | None = None
    timestamp: int | None = None
    error: str | None = None
    gas_used: int | None = None
    result: Any = None
