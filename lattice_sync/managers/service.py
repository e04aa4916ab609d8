"""Service convergence, including service network association diffing."""

from typing import Dict, Iterable, List, Set, Tuple

from ..cloud.models import IN_PROGRESS_STATUSES, AssociationStatus, ServiceAssociation, ServiceSummary
from ..errors import ConflictError, NotFoundError, RetryError
from ..logging import get_logger
from ..model import Service, ServiceStatus
from .base import BaseManager

logger = get_logger(__name__)


def diff_service_networks(desired: Iterable[str], current: Iterable[str]) -> Tuple[Set[str], Set[str]]:
    """Return ``(to_create, to_delete)`` for two sets of service network names."""
    desired_set = set(desired)
    current_set = set(current)
    return desired_set - current_set, current_set - desired_set


class ServiceManager(BaseManager):
    """Find-or-create a service and keep its network associations in step."""

    resource_type = "Service"

    def upsert(self, service: Service) -> ServiceStatus:
        """Converge ``service`` and return its remote identity.

        Raises ``ConflictError`` if a service with the same name is owned by
        another controller and ``RetryError`` while associations transition.
        """
        name = service.lattice_name
        try:
            summary = self.api.find_service(name)
        except NotFoundError:
            summary = None

        if summary is None:
            summary = self._create(service)
            current: Dict[str, ServiceAssociation] = {}
        else:
            if not self.ownership.check_and_acquire_ownership(summary.arn):
                raise ConflictError("Service", name, f"found existing service not owned by controller: {summary.arn}")
            self._update_certificate(service, summary)
            current = self._current_associations(summary.id)

        dns_name = self._converge_associations(service, summary, current)
        status = ServiceStatus(id=summary.id, arn=summary.arn, dns_name=summary.dns_name or dns_name)
        self.cache.put_service(service.id, status)
        return status

    def delete(self, service: Service):
        """Remove the service and the associations this controller owns.

        Services not tagged as ours are left untouched.
        """
        name = service.lattice_name
        try:
            summary = self.api.find_service(name)
        except NotFoundError:
            logger.debug("Service not found, assuming already deleted", name=name)
            return

        if not self.ownership.is_arn_managed(summary.arn):
            logger.info("Service not owned by controller, skipping deletion", name=name, arn=summary.arn)
            return

        for association in self.api.list_service_associations(service_id=summary.id):
            if association.status == AssociationStatus.DELETE_IN_PROGRESS:
                continue
            if self.ownership.is_arn_managed(association.arn):
                logger.info("Deleting service association", service=name, association=association.arn)
                self.api.delete_service_association(association.id)

        logger.info("Deleting service", name=name, id=summary.id)
        self.api.delete_service(summary.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create(self, service: Service) -> ServiceSummary:
        name = service.lattice_name
        tags = self.ownership.default_tags(service.additional_tags)
        logger.info("Creating service", name=name, route=f"{service.namespace}/{service.name}")
        return self.api.create_service(
            name,
            tags,
            custom_domain_name=service.custom_domain_name,
            certificate_arn=service.certificate_arn,
        )

    def _update_certificate(self, service: Service, summary: ServiceSummary):
        if not service.certificate_arn:
            return
        remote = self.api.get_service(summary.id)
        if remote.certificate_arn == service.certificate_arn:
            return
        logger.info("Updating service certificate", name=summary.name, certificate=service.certificate_arn)
        self.api.update_service(summary.id, certificate_arn=service.certificate_arn)

    def _current_associations(self, service_id: str) -> Dict[str, ServiceAssociation]:
        """Associations keyed by service network name, failed creates excluded."""
        current = {}
        for association in self.api.list_service_associations(service_id=service_id):
            if association.status == AssociationStatus.CREATE_FAILED:
                continue
            current[association.service_network_name] = association
        return current

    def _converge_associations(
        self, service: Service, summary: ServiceSummary, current: Dict[str, ServiceAssociation]
    ) -> str:
        """Create missing associations and delete stale owned ones.

        Returns a DNS name reported by an active association, if any.
        """
        to_create, to_delete = diff_service_networks(service.service_network_names, current)
        pending: List[str] = []
        dns_name = ""

        for sn_name, association in current.items():
            if sn_name in to_delete:
                continue
            if association.status == AssociationStatus.DELETE_IN_PROGRESS:
                raise RetryError(
                    "service association is being deleted, cannot recreate yet",
                    service=summary.name,
                    service_network=sn_name,
                )
            if association.status in IN_PROGRESS_STATUSES:
                pending.append(sn_name)
            elif association.dns_name and not dns_name:
                dns_name = association.dns_name

        for sn_name in sorted(to_create):
            sn = self._resolve_service_network(sn_name).network
            logger.info("Associating service with service network", service=summary.name, service_network=sn_name)
            created = self.api.create_service_association(summary.id, sn.id, self.ownership.default_tags())
            if created.status != AssociationStatus.ACTIVE:
                pending.append(sn_name)
            elif created.dns_name and not dns_name:
                dns_name = created.dns_name

        for sn_name in sorted(to_delete):
            association = current[sn_name]
            if association.status == AssociationStatus.DELETE_IN_PROGRESS:
                continue
            if not self.ownership.is_arn_managed(association.arn):
                logger.info("Association not owned by controller, leaving it",
                            service=summary.name, service_network=sn_name)
                continue
            logger.info("Disassociating service from service network", service=summary.name, service_network=sn_name)
            self.api.delete_service_association(association.id)

        if pending:
            raise RetryError("service associations are not active yet", service=summary.name, pending=pending)
        return dns_name
