"""Abstract capability interface for the service-networking control plane."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..errors import NotFoundError
from ..ownership import account_from_arn
from .models import (
    AccessLogSubscriptionSummary,
    AuthPolicy,
    HealthCheckConfig,
    HttpMatch,
    ListenerSummary,
    RuleAction,
    RuleDetail,
    RuleSummary,
    RuleUpdate,
    ServiceAssociation,
    ServiceNetworkInfo,
    ServiceNetworkSummary,
    ServiceSummary,
    Target,
    TargetGroupSummary,
    TargetsResult,
    TargetSummary,
    VpcAssociation,
)


class NetworkingAPI(ABC):
    """Operations the managers need from the remote control plane.

    Every list operation returns the complete, already paginated result.
    Implementations raise ``NotFoundError`` when an identified resource does
    not exist and ``ConflictError``/``InvalidError`` when the remote side
    rejects a request for those reasons. Other failures propagate unchanged.

    The concrete helpers at the bottom of the class (``find_service_network``,
    ``find_service`` and ``get_rules``) are written purely in terms of the
    abstract operations, so a test fake only has to implement the primitives.
    """

    # ------------------------------------------------------------------
    # Service networks
    # ------------------------------------------------------------------

    @abstractmethod
    def list_service_networks(self) -> List[ServiceNetworkSummary]:
        ...

    @abstractmethod
    def create_service_network(self, name: str, tags: Dict[str, str]) -> ServiceNetworkSummary:
        ...

    @abstractmethod
    def delete_service_network(self, service_network_id: str) -> None:
        ...

    @abstractmethod
    def update_service_network_auth_type(self, service_network_id: str, auth_type: str) -> None:
        ...

    @abstractmethod
    def list_vpc_associations(
        self, service_network_id: Optional[str] = None, vpc_id: Optional[str] = None
    ) -> List[VpcAssociation]:
        ...

    @abstractmethod
    def create_vpc_association(
        self,
        service_network_id: str,
        vpc_id: str,
        security_group_ids: List[str],
        tags: Dict[str, str],
    ) -> VpcAssociation:
        ...

    @abstractmethod
    def get_vpc_association(self, association_id: str) -> VpcAssociation:
        ...

    @abstractmethod
    def update_vpc_association(
        self, association_id: str, security_group_ids: List[str]
    ) -> VpcAssociation:
        ...

    @abstractmethod
    def delete_vpc_association(self, association_id: str) -> VpcAssociation:
        ...

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    @abstractmethod
    def list_services(self) -> List[ServiceSummary]:
        ...

    @abstractmethod
    def get_service(self, service_id: str) -> ServiceSummary:
        ...

    @abstractmethod
    def create_service(
        self,
        name: str,
        tags: Dict[str, str],
        custom_domain_name: Optional[str] = None,
        certificate_arn: Optional[str] = None,
    ) -> ServiceSummary:
        ...

    @abstractmethod
    def update_service(
        self,
        service_id: str,
        certificate_arn: Optional[str] = None,
        auth_type: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def delete_service(self, service_id: str) -> None:
        ...

    @abstractmethod
    def list_service_associations(
        self, service_id: Optional[str] = None, service_network_id: Optional[str] = None
    ) -> List[ServiceAssociation]:
        ...

    @abstractmethod
    def create_service_association(
        self, service_id: str, service_network_id: str, tags: Dict[str, str]
    ) -> ServiceAssociation:
        ...

    @abstractmethod
    def delete_service_association(self, association_id: str) -> None:
        ...

    # ------------------------------------------------------------------
    # Listeners and rules
    # ------------------------------------------------------------------

    @abstractmethod
    def list_listeners(self, service_id: str) -> List[ListenerSummary]:
        ...

    @abstractmethod
    def create_listener(
        self,
        service_id: str,
        name: str,
        port: int,
        protocol: str,
        default_action: RuleAction,
        tags: Dict[str, str],
    ) -> ListenerSummary:
        ...

    @abstractmethod
    def delete_listener(self, service_id: str, listener_id: str) -> None:
        ...

    @abstractmethod
    def list_rules(self, service_id: str, listener_id: str) -> List[RuleSummary]:
        ...

    @abstractmethod
    def get_rule(self, service_id: str, listener_id: str, rule_id: str) -> RuleDetail:
        ...

    @abstractmethod
    def create_rule(
        self,
        service_id: str,
        listener_id: str,
        name: str,
        priority: int,
        match: HttpMatch,
        action: RuleAction,
        tags: Dict[str, str],
    ) -> RuleDetail:
        ...

    @abstractmethod
    def update_rule(
        self,
        service_id: str,
        listener_id: str,
        rule_id: str,
        priority: int,
        match: HttpMatch,
        action: RuleAction,
    ) -> RuleDetail:
        ...

    @abstractmethod
    def batch_update_rules(
        self, service_id: str, listener_id: str, updates: List[RuleUpdate]
    ) -> None:
        ...

    @abstractmethod
    def delete_rule(self, service_id: str, listener_id: str, rule_id: str) -> None:
        ...

    # ------------------------------------------------------------------
    # Target groups and targets
    # ------------------------------------------------------------------

    @abstractmethod
    def list_target_groups(self, vpc_id: Optional[str] = None) -> List[TargetGroupSummary]:
        ...

    @abstractmethod
    def get_target_group(self, target_group_id: str) -> TargetGroupSummary:
        ...

    @abstractmethod
    def create_target_group(
        self,
        name: str,
        type: str,
        port: int,
        protocol: str,
        protocol_version: Optional[str],
        ip_address_type: Optional[str],
        vpc_id: str,
        health_check: Optional[HealthCheckConfig],
        tags: Dict[str, str],
    ) -> TargetGroupSummary:
        ...

    @abstractmethod
    def update_target_group(
        self, target_group_id: str, health_check: HealthCheckConfig
    ) -> TargetGroupSummary:
        ...

    @abstractmethod
    def delete_target_group(self, target_group_id: str) -> None:
        ...

    @abstractmethod
    def list_targets(self, target_group_id: str) -> List[TargetSummary]:
        ...

    @abstractmethod
    def register_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        ...

    @abstractmethod
    def deregister_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        ...

    # ------------------------------------------------------------------
    # Tags and policies
    # ------------------------------------------------------------------

    @abstractmethod
    def list_tags(self, arn: str) -> Dict[str, str]:
        ...

    @abstractmethod
    def tag_resource(self, arn: str, tags: Dict[str, str]) -> None:
        ...

    @abstractmethod
    def list_access_log_subscriptions(
        self, resource_id: str
    ) -> List[AccessLogSubscriptionSummary]:
        ...

    @abstractmethod
    def create_access_log_subscription(
        self, resource_id: str, destination_arn: str, tags: Dict[str, str]
    ) -> AccessLogSubscriptionSummary:
        ...

    @abstractmethod
    def update_access_log_subscription(
        self, subscription_id: str, destination_arn: str
    ) -> AccessLogSubscriptionSummary:
        ...

    @abstractmethod
    def delete_access_log_subscription(self, subscription_id: str) -> None:
        ...

    @abstractmethod
    def get_auth_policy(self, resource_id: str) -> AuthPolicy:
        ...

    @abstractmethod
    def put_auth_policy(self, resource_id: str, policy: str) -> AuthPolicy:
        ...

    @abstractmethod
    def delete_auth_policy(self, resource_id: str) -> None:
        ...

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def find_service_network(
        self, name: str, account_id: Optional[str] = None
    ) -> ServiceNetworkInfo:
        """Return the named service network with its tags.

        When ``account_id`` is given, networks owned by other accounts are
        skipped. Raises ``NotFoundError`` if nothing matches.
        """
        for network in self.list_service_networks():
            if network.name != name:
                continue
            if account_id and account_from_arn(network.arn) != account_id:
                continue
            return ServiceNetworkInfo(network=network, tags=self.list_tags(network.arn))
        raise NotFoundError("Service network", name)

    def find_service(self, name: str) -> ServiceSummary:
        """Return the service called ``name`` or raise ``NotFoundError``."""
        for service in self.list_services():
            if service.name == name:
                return service
        raise NotFoundError("Service", name)

    def get_rules(self, service_id: str, listener_id: str) -> List[RuleDetail]:
        """Return full details for every rule of a listener."""
        return [
            self.get_rule(service_id, listener_id, summary.id)
            for summary in self.list_rules(service_id, listener_id)
        ]
