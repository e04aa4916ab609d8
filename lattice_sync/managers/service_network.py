"""Service network and VPC association convergence."""

from typing import List, Optional

from ..cloud.models import (
    IN_PROGRESS_STATUSES,
    AssociationStatus,
    ServiceNetworkInfo,
    ServiceNetworkSummary,
    VpcAssociation,
)
from ..errors import ConflictError, NotFoundError, RetryError
from ..logging import get_logger
from ..model import ServiceNetwork, ServiceNetworkStatus
from ..ownership import OWNED_BY_VPC_TAG, Ownership
from .base import BaseManager

logger = get_logger(__name__)


def security_group_ids_equal(a: Optional[List[str]], b: Optional[List[str]]) -> bool:
    """Order-insensitive comparison of two security group id lists."""
    return sorted(a or []) == sorted(b or [])


class ServiceNetworkManager(BaseManager):
    """Creates service networks and keeps this VPC's association converged.

    Networks shared in from another account are read-only: an existing
    association to one is reported back without ownership checks or
    security group updates.
    """

    resource_type = "ServiceNetwork"

    # ------------------------------------------------------------------
    # Service network
    # ------------------------------------------------------------------

    def create_or_update(self, network: ServiceNetwork) -> ServiceNetworkStatus:
        """Find or create ``network`` and converge its VPC association.

        Raises ``RetryError`` while any association is transitioning.
        """
        try:
            info = self.api.find_service_network(network.name, network.account_id)
        except NotFoundError:
            info = None

        if info is None:
            info = self._create_service_network(network.name)
            association = None
        else:
            association = self._find_vpc_association(info.network.id)
        self.cache.put_service_network(network.name, info)
        sn = info.network

        if network.associate_to_vpc:
            if association is None:
                association = self._create_vpc_association(sn, network.security_group_ids)
            elif self.ownership.classify(sn.arn) is Ownership.SHARED:
                logger.debug("Service network is shared in, leaving association as is",
                             name=network.name, association=association.arn)
            else:
                self._require_owned_association(network.name, association)
                association = self._update_security_groups(association, network.security_group_ids)
            return ServiceNetworkStatus(
                id=sn.id,
                arn=sn.arn,
                association_arn=association.arn,
                security_group_ids=association.security_group_ids,
            )

        if association is not None:
            self._delete_owned_association(network.name, association)
        logger.debug("Service network converged without VPC association", name=network.name)
        return ServiceNetworkStatus(id=sn.id, arn=sn.arn)

    def delete(self, name: str):
        """Delete the service network if this controller's VPC created it.

        Our own VPC association is torn down first; the network itself is
        only deleted once no association of any VPC remains.
        """
        try:
            info = self.api.find_service_network(name)
        except NotFoundError:
            logger.debug("Service network not found, assuming already deleted", name=name)
            return

        sn = info.network
        associations = self.api.list_vpc_associations(service_network_id=sn.id)
        ours = self._own_association(associations)
        if ours is not None:
            if ours.status in IN_PROGRESS_STATUSES:
                raise RetryError(
                    "service network VPC association is transitioning",
                    association=ours.arn,
                    status=ours.status,
                )
            self._delete_owned_association(name, ours)

        owner_vpc = info.tags.get(OWNED_BY_VPC_TAG)
        if owner_vpc != self.settings.cluster_vpc_id:
            logger.debug("Skip deleting service network created elsewhere",
                         name=name, owner_vpc=owner_vpc)
            return
        if associations:
            raise RetryError(
                "service network still has VPC associations", name=name, count=len(associations)
            )

        logger.info("Deleting service network", name=name, id=sn.id)
        self.api.delete_service_network(sn.id)

    def list(self) -> List[str]:
        """Names of all service networks visible to this account."""
        return [sn.name for sn in self.api.list_service_networks()]

    # ------------------------------------------------------------------
    # VPC association
    # ------------------------------------------------------------------

    def upsert_vpc_association(self, network_name: str, security_group_ids: List[str]) -> str:
        """Associate this VPC with ``network_name`` and return the association ARN."""
        info = self._resolve_service_network(network_name)
        sn = info.network
        association = self._find_vpc_association(sn.id)

        if association is None:
            return self._create_vpc_association(sn, security_group_ids).arn

        if self.ownership.classify(sn.arn) is Ownership.SHARED:
            logger.debug("Service network is shared in, returning existing association",
                         name=network_name, association=association.arn)
            return association.arn

        self._require_owned_association(network_name, association)
        self._update_security_groups(association, security_group_ids)
        return association.arn

    def delete_vpc_association(self, network_name: str):
        """Remove this VPC's association if the controller owns it.

        A successful delete request still raises ``RetryError`` so the next
        pass can confirm the association is gone.
        """
        try:
            info = self._resolve_service_network(network_name)
        except NotFoundError:
            logger.debug("Service network not found, nothing to disassociate", name=network_name)
            return

        association = self._find_vpc_association(info.network.id)
        if association is not None:
            self._delete_owned_association(network_name, association)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_service_network(self, name: str) -> ServiceNetworkInfo:
        tags = self.ownership.default_tags({OWNED_BY_VPC_TAG: self.settings.cluster_vpc_id})
        logger.info("Creating service network", name=name, vpc=self.settings.cluster_vpc_id)
        created = self.api.create_service_network(name, tags)
        return ServiceNetworkInfo(network=created, tags=tags)

    def _pick_vpc_association(self, associations: List[VpcAssociation]) -> Optional[VpcAssociation]:
        """Classify the association of this VPC among ``associations``.

        ``CREATE_FAILED`` counts as absent so it gets recreated; any
        in-progress state raises ``RetryError``.
        """
        for association in associations:
            if association.vpc_id != self.settings.cluster_vpc_id:
                continue
            if association.status == AssociationStatus.CREATE_FAILED:
                logger.debug("Ignoring failed VPC association", association=association.arn)
                continue
            if association.status in IN_PROGRESS_STATUSES:
                raise RetryError(
                    "service network VPC association is transitioning",
                    association=association.arn,
                    status=association.status,
                )
            return association
        return None

    def _own_association(self, associations: List[VpcAssociation]) -> Optional[VpcAssociation]:
        """This VPC's association in any status, failed ones included."""
        for association in associations:
            if association.vpc_id == self.settings.cluster_vpc_id:
                return association
        return None

    def _find_vpc_association(self, service_network_id: str) -> Optional[VpcAssociation]:
        return self._pick_vpc_association(
            self.api.list_vpc_associations(service_network_id=service_network_id)
        )

    def _create_vpc_association(
        self, sn: ServiceNetworkSummary, security_group_ids: List[str]
    ) -> VpcAssociation:
        logger.info("Associating service network with VPC",
                    service_network=sn.id, vpc=self.settings.cluster_vpc_id)
        created = self.api.create_vpc_association(
            sn.id,
            self.settings.cluster_vpc_id,
            list(security_group_ids),
            self.ownership.default_tags(),
        )
        if created.status != AssociationStatus.ACTIVE:
            raise RetryError(
                "service network VPC association is not active yet",
                association=created.arn,
                status=created.status,
            )
        return created

    def _require_owned_association(self, network_name: str, association: VpcAssociation):
        if not self.ownership.check_and_acquire_ownership(association.arn):
            raise ConflictError(
                "snva",
                network_name,
                f"Found existing vpc association not owned by controller: {association.arn}",
            )

    def _update_security_groups(
        self, association: VpcAssociation, security_group_ids: List[str]
    ) -> VpcAssociation:
        current = self.api.get_vpc_association(association.id)
        if security_group_ids_equal(current.security_group_ids, security_group_ids):
            return current

        logger.info("Updating VPC association security groups",
                    association=association.arn, security_groups=security_group_ids)
        updated = self.api.update_vpc_association(association.id, list(security_group_ids))
        if updated.status != AssociationStatus.ACTIVE:
            raise RetryError(
                "service network VPC association update in progress",
                association=association.arn,
                status=updated.status,
            )
        return updated

    def _delete_owned_association(self, network_name: str, association: VpcAssociation):
        if not self.ownership.is_arn_managed(association.arn):
            logger.info("Association not owned by controller, skipping deletion",
                        name=network_name, association=association.arn)
            return
        logger.info("Disassociating service network from VPC",
                    name=network_name, association=association.arn)
        self.api.delete_vpc_association(association.id)
        raise RetryError("waiting for service network VPC association deletion",
                         name=network_name, association=association.arn)
