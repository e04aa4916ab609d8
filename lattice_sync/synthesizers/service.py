"""Service synthesis and DNS publication."""

from typing import Optional

from ..cache import ReconciliationCache
from ..dns import DnsEndpointPublisher, NullDnsPublisher
from ..logging import get_logger
from ..model import ResourceKind, Service, Stack
from .base import BaseSynthesizer

logger = get_logger(__name__)


class ServiceSynthesizer(BaseSynthesizer):
    kind = ResourceKind.SERVICE

    def __init__(
        self,
        manager,
        stack: Stack,
        cache: ReconciliationCache,
        dns_publisher: Optional[DnsEndpointPublisher] = None,
    ) -> None:
        super().__init__(manager, stack, cache)
        self.dns_publisher = dns_publisher or NullDnsPublisher()

    def synthesize(self) -> None:
        services = self.stack.list_resources(Service)
        logger.debug("Synthesizing services", count=len(services))
        self._raise_collected(self._for_each(services, self._synthesize_one))

    def _synthesize_one(self, service: Service):
        if service.is_deleted:
            self.manager.delete(service)
            return

        service.status = self.manager.upsert(service)
        if service.custom_domain_name and service.status.dns_name:
            self.dns_publisher.publish(service.custom_domain_name, service.status.dns_name)
