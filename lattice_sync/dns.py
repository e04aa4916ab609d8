"""DNS endpoint publication for services with a custom domain."""

from abc import ABC, abstractmethod

from .logging import get_logger

logger = get_logger(__name__)


class DnsEndpointPublisher(ABC):
    """Publishes a CNAME from a custom domain to the service's assigned domain."""

    @abstractmethod
    def publish(self, custom_domain: str, lattice_domain: str) -> None:
        ...


class NullDnsPublisher(DnsEndpointPublisher):
    """Publisher used when no DNS integration is configured."""

    def publish(self, custom_domain: str, lattice_domain: str) -> None:
        logger.debug("DNS publication disabled", custom_domain=custom_domain, lattice_domain=lattice_domain)
