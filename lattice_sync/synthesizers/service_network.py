"""Service network synthesis and collection of unused service networks."""

from typing import Optional

from ..cache import ReconciliationCache
from ..logging import get_logger
from ..model import ResourceKind, ServiceNetwork, Stack
from ..sources import ServiceNetworkUsageResolver
from .base import BaseSynthesizer

logger = get_logger(__name__)


class ServiceNetworkSynthesizer(BaseSynthesizer):
    kind = ResourceKind.SERVICE_NETWORK

    def __init__(
        self,
        manager,
        stack: Stack,
        cache: ReconciliationCache,
        resolver: Optional[ServiceNetworkUsageResolver] = None,
    ) -> None:
        super().__init__(manager, stack, cache)
        self.resolver = resolver

    def synthesize(self) -> None:
        networks = self.stack.list_resources(ServiceNetwork)
        logger.debug("Synthesizing service networks", count=len(networks))
        self._raise_collected(self._for_each(networks, self._synthesize_one))

    def synthesize_unused_delete(self) -> None:
        """Delete remote service networks that no gateway declares any more."""
        if self.resolver is None:
            logger.debug("No service network usage resolver, skipping unused service network collection")
            return

        wanted = {sn.name for sn in self.stack.list_resources(ServiceNetwork) if not sn.is_deleted}
        if self.manager.settings.default_service_network:
            wanted.add(self.manager.settings.default_service_network)
        stale = [
            name for name in self.manager.list()
            if name not in wanted and not self.resolver.is_in_use(name)
        ]
        logger.debug("Collecting unused service networks", count=len(stale))
        self._raise_collected(self._for_each(stale, self.manager.delete, label="delete unused"))

    def _synthesize_one(self, network: ServiceNetwork):
        if network.is_deleted:
            if self.resolver is not None and self.resolver.is_in_use(network.name):
                logger.info("Service network still used by another gateway, skipping deletion",
                            name=network.name)
                return
            self.manager.delete(network.name)
            return
        network.status = self.manager.create_or_update(network)
