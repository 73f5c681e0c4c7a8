from dataclasses import dataclass, field, replace
import logging
from uuid import uuid4


@dataclass
class Plugin:
    name: str
    version: str
    enabled: bool = True
    id: str | None = None


@dataclass
class Webhook:
    url: str
    events: list[str] = field(default_factory=list)
    active: bool = True
    id: str | None = None


class EcosystemService:
    """In-memory registries for plugins and webhooks"""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._plugins: dict[str, Plugin] = {}
        self._webhooks: dict[str, Webhook] = {}

    async def initialize(self) -> None:
        self._logger.info("Initializing ecosystem service")

    async def register_plugin(self, plugin: Plugin) -> Plugin:
        registered = replace(plugin, id=str(uuid4()))
        self._plugins[registered.id] = registered
        self._logger.debug(f"Registered plugin {registered.name} ({registered.id})")
        return registered

    async def unregister_plugin(self, plugin_id: str) -> None:
        self._plugins.pop(plugin_id, None)

    async def get_plugins(self) -> list[Plugin]:
        return list(self._plugins.values())

    async def create_webhook(self, webhook: Webhook) -> Webhook:
        created = replace(webhook, id=str(uuid4()))
        self._webhooks[created.id] = created
        return created

    async def update_webhook(self, webhook_id: str, **changes) -> Webhook:
        webhook = self._webhooks.get(webhook_id)
        if webhook is None:
            raise KeyError(f"Webhook not found: {webhook_id}")
        changes.pop("id", None)
        updated = replace(webhook, **changes)
        self._webhooks[webhook_id] = updated
        return updated

    async def delete_webhook(self, webhook_id: str) -> None:
        self._webhooks.pop(webhook_id, None)

    async def list_webhooks(self) -> list[Webhook]:
        return list(self._webhooks.values())
