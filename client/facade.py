import logging

from client.config import ClientConfig
from client.domain.blockchain import BlockchainType
from client.exceptions import ClientNotInitialized
from client.services.blockchain import BlockchainAdapterInterface, BlockchainService
from client.services.compliance import ComplianceService
from client.services.ecosystem import EcosystemService
from client.services.enterprise import EnterpriseService
from offline.services.offline_service import OfflineService
from offline.transport.interface import RemoteSyncGatewayInterface
from shared.logging_config import configure_logging
from shared.storage.factory import create_storage


class FoodXClient:
    """
    Single entry point composing the offline service with the collaborator services.

    Services are built during initialize(); accessing them earlier raises
    ClientNotInitialized.
    """

    def __init__(
        self,
        gateway: RemoteSyncGatewayInterface | None = None,
        blockchain_adapters: dict[BlockchainType, BlockchainAdapterInterface]
        | None = None,
        logger: logging.Logger | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._gateway = gateway
        self._config: ClientConfig | None = None

        self._blockchain_service = BlockchainService(adapters=blockchain_adapters)
        self._offline_service: OfflineService | None = None
        self._enterprise_service = EnterpriseService()
        self._compliance_service = ComplianceService()
        self._ecosystem_service = EcosystemService()

    @property
    def config(self) -> ClientConfig | None:
        return self._config

    async def initialize(self, config: ClientConfig) -> None:
        if config.logging is not None:
            configure_logging(config.logging)
        self._logger.info(f"Initializing FoodX client for tenant {config.tenant}")

        storage = create_storage(
            backend=config.storage_backend,
            path=config.storage_path,
            prefix=config.storage_prefix,
        )
        offline_service = OfflineService(storage=storage, gateway=self._gateway)

        try:
            await self._blockchain_service.initialize()
            await offline_service.initialize(config.offline)
            await self._enterprise_service.initialize()
            await self._compliance_service.initialize()
            await self._ecosystem_service.initialize()
        except Exception as e:
            self._logger.error(f"Failed to initialize client: {e}")
            await offline_service.dispose()
            await storage.close()
            raise

        if self._offline_service is not None:
            await self._dispose_offline_service()
        self._offline_service = offline_service
        self._config = config
        self._logger.info("FoodX client initialization complete")

    @property
    def blockchain(self) -> BlockchainService:
        self._ensure_initialized()
        return self._blockchain_service

    @property
    def offline(self) -> OfflineService:
        self._ensure_initialized()
        return self._offline_service

    @property
    def enterprise(self) -> EnterpriseService:
        self._ensure_initialized()
        return self._enterprise_service

    @property
    def compliance(self) -> ComplianceService:
        self._ensure_initialized()
        return self._compliance_service

    @property
    def ecosystem(self) -> EcosystemService:
        self._ensure_initialized()
        return self._ecosystem_service

    async def dispose(self) -> None:
        if self._offline_service is not None:
            await self._dispose_offline_service()
            self._offline_service = None
        self._config = None
        self._logger.info("FoodX client disposed")

    async def _dispose_offline_service(self):
        await self._offline_service.dispose()
        await self._offline_service.storage.close()

    def _ensure_initialized(self):
        if self._config is None:
            raise ClientNotInitialized(
                "FoodX client has not been initialized. Call initialize() first."
            )


def create_client(
    gateway: RemoteSyncGatewayInterface | None = None,
    blockchain_adapters: dict[BlockchainType, BlockchainAdapterInterface] | None = None,
) -> FoodXClient:
    """Create a client; call `await client.initialize(config)` before use"""
    return FoodXClient(gateway=gateway, blockchain_adapters=blockchain_adapters)
