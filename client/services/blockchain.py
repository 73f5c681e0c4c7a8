from abc import ABC, abstractmethod
import logging
from typing import Any

from client.domain.blockchain import BlockchainType, TransactionResult
from client.exceptions import AdapterNotConfigured


class BlockchainAdapterInterface(ABC):
    """Interface for network-specific blockchain adapters, treated as opaque endpoints"""

    @abstractmethod
    async def initialize(self, config: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def submit_transaction(
        self,
        contract_name: str,
        function_name: str,
        args: list[str],
        options: dict[str, Any] | None = None,
    ) -> TransactionResult:
        pass

    @abstractmethod
    async def query_blockchain(
        self, contract_name: str, function_name: str, args: list[str]
    ) -> Any:
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Any:
        pass

    @abstractmethod
    async def get_blockchain_info(self) -> Any:
        pass


class BlockchainService:
    """Routes blockchain calls to the adapter selected with configure()"""

    def __init__(
        self,
        adapters: dict[BlockchainType, BlockchainAdapterInterface] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._adapters: dict[BlockchainType, BlockchainAdapterInterface] = {}
        self._active_adapter: BlockchainAdapterInterface | None = None
        for blockchain_type, adapter in (adapters or {}).items():
            self.register_adapter(blockchain_type, adapter)

    async def initialize(self) -> None:
        self._logger.info("Initializing blockchain service")

    def register_adapter(
        self, blockchain_type: BlockchainType, adapter: BlockchainAdapterInterface
    ) -> None:
        self._adapters[BlockchainType(blockchain_type)] = adapter
        self._logger.debug(f"Registered blockchain adapter for {blockchain_type}")

    async def configure(
        self, blockchain_type: BlockchainType, config: dict[str, Any]
    ) -> None:
        adapter = self._adapters.get(BlockchainType(blockchain_type))
        if adapter is None:
            raise AdapterNotConfigured(
                f"No adapter available for blockchain type: {blockchain_type}"
            )
        await adapter.initialize(config)
        self._active_adapter = adapter
        self._logger.info(f"Blockchain service configured for {blockchain_type}")

    async def submit_transaction(
        self,
        contract_name: str,
        function_name: str,
        args: list[str],
        options: dict[str, Any] | None = None,
    ) -> TransactionResult:
        adapter = self._ensure_active_adapter()
        self._logger.debug(f"Submitting transaction to {contract_name}.{function_name}")
        try:
            return await adapter.submit_transaction(
                contract_name, function_name, args, options
            )
        except Exception as e:
            self._logger.error(
                f"Failed to submit transaction to {contract_name}.{function_name}: {e}"
            )
            raise

    async def query_blockchain(
        self, contract_name: str, function_name: str, args: list[str]
    ) -> Any:
        adapter = self._ensure_active_adapter()
        return await adapter.query_blockchain(contract_name, function_name, args)

    async def get_transaction(self, transaction_id: str) -> Any:
        adapter = self._ensure_active_adapter()
        return await adapter.get_transaction(transaction_id)

    async def get_blockchain_info(self) -> Any:
        adapter = self._ensure_active_adapter()
        return await adapter.get_blockchain_info()

    def _ensure_active_adapter(self) -> BlockchainAdapterInterface:
        if self._active_adapter is None:
            raise AdapterNotConfigured(
                "No active blockchain adapter configured. Call configure() first."
            )
        return self._active_adapter
