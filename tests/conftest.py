"""Shared test fixtures for lattice_sync."""

import itertools
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from lattice_sync.cache import ReconciliationCache
from lattice_sync.cloud.base import NetworkingAPI
from lattice_sync.cloud.models import (
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
    ServiceNetworkSummary,
    ServiceSummary,
    Target,
    TargetFailure,
    TargetGroupSummary,
    TargetsResult,
    TargetSummary,
    VpcAssociation,
)
from lattice_sync.config import ControllerSettings, reset_config, set_config
from lattice_sync.errors import ConflictError, NotFoundError
from lattice_sync.model import SourceType, TargetGroupSpec, TargetGroupTagFields
from lattice_sync.ownership import MANAGED_BY_TAG

ACCOUNT = "123456789012"
OTHER_ACCOUNT = "210987654321"
REGION = "us-west-2"
VPC = "vpc-0a1b2c3d"
CLUSTER = "test-cluster"
MANAGED_BY = f"{ACCOUNT}/{CLUSTER}/{VPC}"

MUTATING_PREFIXES = ("create_", "update_", "delete_", "tag_", "register_", "deregister_", "put_", "batch_")


def lattice_arn(resource: str, resource_id: str, account: str = ACCOUNT) -> str:
    return f"arn:aws:vpc-lattice:{REGION}:{account}:{resource}/{resource_id}"


class FakeNetworkingAPI(NetworkingAPI):
    """In-memory control plane recording every call made against it.

    Failures can be injected per operation through ``fail``; statuses of
    newly created associations and target groups through the ``*_status``
    attributes.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.calls: List[Tuple[str, tuple]] = []
        self.fail: Dict[str, Exception] = {}

        self.association_status = "ACTIVE"
        self.service_association_status = "ACTIVE"
        self.target_group_status = "ACTIVE"
        self.register_failures: List[Tuple[str, int]] = []
        self.deregister_failures: List[Tuple[str, int]] = []

        self.service_networks: Dict[str, ServiceNetworkSummary] = {}
        self.vpc_associations: Dict[str, VpcAssociation] = {}
        self.services: Dict[str, ServiceSummary] = {}
        self.service_associations: Dict[str, ServiceAssociation] = {}
        self.listeners: Dict[str, ListenerSummary] = {}
        self.listener_services: Dict[str, str] = {}
        self.listener_actions: Dict[str, RuleAction] = {}
        self.rules: Dict[str, RuleDetail] = {}
        self.rule_listeners: Dict[str, str] = {}
        self.target_groups: Dict[str, TargetGroupSummary] = {}
        self.targets: Dict[str, Dict[Tuple[str, int], TargetSummary]] = {}
        self.access_logs: Dict[str, AccessLogSubscriptionSummary] = {}
        self.auth_policies: Dict[str, AuthPolicy] = {}
        self.auth_types: Dict[str, str] = {}
        self.tags: Dict[str, Dict[str, str]] = {}

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, operation: str, *args):
        self.calls.append((operation, args))
        if operation in self.fail:
            raise self.fail[operation]

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):04d}"

    def calls_to(self, operation: str) -> List[tuple]:
        return [args for name, args in self.calls if name == operation]

    @property
    def mutations(self) -> List[str]:
        return [name for name, _ in self.calls if name.startswith(MUTATING_PREFIXES)]

    def reset_calls(self):
        self.calls.clear()

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_service_network(self, name: str, account: str = ACCOUNT, tags=None) -> ServiceNetworkSummary:
        sn_id = self._next_id("sn")
        sn = ServiceNetworkSummary(id=sn_id, arn=lattice_arn("servicenetwork", sn_id, account), name=name)
        self.service_networks[sn_id] = sn
        self.tags[sn.arn] = dict(tags or {})
        return sn

    def add_vpc_association(
        self, sn: ServiceNetworkSummary, vpc_id: str = VPC, status: str = "ACTIVE",
        security_group_ids=None, tags=None, account: str = ACCOUNT,
    ) -> VpcAssociation:
        assoc_id = self._next_id("snva")
        assoc = VpcAssociation(
            id=assoc_id,
            arn=lattice_arn("servicenetworkvpcassociation", assoc_id, account),
            status=status,
            service_network_id=sn.id,
            service_network_arn=sn.arn,
            vpc_id=vpc_id,
            security_group_ids=list(security_group_ids or []),
        )
        self.vpc_associations[assoc_id] = assoc
        self.tags[assoc.arn] = dict(tags or {})
        return assoc

    def add_service(self, name: str, tags=None, certificate_arn: Optional[str] = None) -> ServiceSummary:
        svc_id = self._next_id("svc")
        svc = ServiceSummary(
            id=svc_id,
            arn=lattice_arn("service", svc_id),
            name=name,
            status="ACTIVE",
            dns_name=f"{name}-{svc_id}.{ACCOUNT}.vpc-lattice-svcs.{REGION}.on.aws",
            certificate_arn=certificate_arn,
        )
        self.services[svc_id] = svc
        self.tags[svc.arn] = dict(tags or {})
        return svc

    def add_service_association(
        self, svc: ServiceSummary, sn: ServiceNetworkSummary, status: str = "ACTIVE", tags=None
    ) -> ServiceAssociation:
        assoc_id = self._next_id("snsa")
        assoc = ServiceAssociation(
            id=assoc_id,
            arn=lattice_arn("servicenetworkserviceassociation", assoc_id),
            status=status,
            service_id=svc.id,
            service_network_id=sn.id,
            service_network_name=sn.name,
            dns_name=svc.dns_name,
        )
        self.service_associations[assoc_id] = assoc
        self.tags[assoc.arn] = dict(tags or {})
        return assoc

    def add_listener(self, svc_id: str, port: int, protocol: str, name: str = "", tags=None) -> ListenerSummary:
        listener_id = self._next_id("listener")
        listener = ListenerSummary(
            id=listener_id,
            arn=lattice_arn(f"service/{svc_id}/listener", listener_id),
            name=name or f"listener-{port}",
            port=port,
            protocol=protocol,
        )
        self.listeners[listener_id] = listener
        self.listener_services[listener_id] = svc_id
        self.tags[listener.arn] = dict(tags or {})
        self._add_default_rule(listener_id)
        return listener

    def add_rule(
        self, listener_id: str, priority: int, match: HttpMatch, action: RuleAction, name: str = "", tags=None
    ) -> RuleDetail:
        rule_id = self._next_id("rule")
        rule = RuleDetail(
            id=rule_id,
            arn=lattice_arn("rule", rule_id),
            name=name or f"rule-{priority}",
            priority=priority,
            match=match,
            action=action,
        )
        self.rules[rule_id] = rule
        self.rule_listeners[rule_id] = listener_id
        self.tags[rule.arn] = dict(tags or {})
        return rule

    def add_target_group(
        self,
        port: int = 80,
        protocol: str = "HTTP",
        protocol_version: str = "HTTP1",
        ip_address_type: str = "IPV4",
        vpc_id: str = VPC,
        status: str = "ACTIVE",
        tags=None,
        service_arns=None,
        health_check: Optional[HealthCheckConfig] = None,
        created_at: Optional[datetime] = None,
        name: str = "",
    ) -> TargetGroupSummary:
        tg_id = self._next_id("tg")
        tg = TargetGroupSummary(
            id=tg_id,
            arn=lattice_arn("targetgroup", tg_id),
            name=name or f"k8s-{tg_id}",
            status=status,
            type="IP",
            port=port,
            protocol=protocol,
            protocol_version=protocol_version,
            ip_address_type=ip_address_type,
            vpc_id=vpc_id,
            service_arns=list(service_arns or []),
            health_check=health_check,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.target_groups[tg_id] = tg
        self.targets[tg_id] = {}
        self.tags[tg.arn] = dict(tags or {})
        return tg

    def add_target(self, tg_id: str, ip: str, port: int, status: str = "UNUSED"):
        self.targets[tg_id][(ip, port)] = TargetSummary(id=ip, port=port, status=status)

    def _add_default_rule(self, listener_id: str):
        rule_id = self._next_id("rule")
        self.rules[rule_id] = RuleDetail(
            id=rule_id,
            arn=lattice_arn("rule", rule_id),
            name="default",
            priority=0,
            is_default=True,
            action=self.listener_actions.get(listener_id, RuleAction.not_found()),
        )
        self.rule_listeners[rule_id] = listener_id

    # ------------------------------------------------------------------
    # Service networks
    # ------------------------------------------------------------------

    def list_service_networks(self) -> List[ServiceNetworkSummary]:
        self._record("list_service_networks")
        return [sn.model_copy() for sn in self.service_networks.values()]

    def create_service_network(self, name: str, tags: Dict[str, str]) -> ServiceNetworkSummary:
        self._record("create_service_network", name, dict(tags))
        return self.add_service_network(name, tags=tags)

    def delete_service_network(self, service_network_id: str) -> None:
        self._record("delete_service_network", service_network_id)
        if service_network_id not in self.service_networks:
            raise NotFoundError("SERVICE_NETWORK", service_network_id)
        del self.service_networks[service_network_id]

    def update_service_network_auth_type(self, service_network_id: str, auth_type: str) -> None:
        self._record("update_service_network_auth_type", service_network_id, auth_type)
        if service_network_id not in self.service_networks:
            raise NotFoundError("SERVICE_NETWORK", service_network_id)
        self.auth_types[service_network_id] = auth_type

    def list_vpc_associations(self, service_network_id=None, vpc_id=None) -> List[VpcAssociation]:
        self._record("list_vpc_associations", service_network_id, vpc_id)
        return [
            a.model_copy(deep=True)
            for a in self.vpc_associations.values()
            if (service_network_id is None or a.service_network_id == service_network_id)
            and (vpc_id is None or a.vpc_id == vpc_id)
        ]

    def create_vpc_association(self, service_network_id, vpc_id, security_group_ids, tags) -> VpcAssociation:
        self._record("create_vpc_association", service_network_id, vpc_id, list(security_group_ids), dict(tags))
        sn = self.service_networks.get(service_network_id)
        if sn is None:
            raise NotFoundError("SERVICE_NETWORK", service_network_id)
        assoc = self.add_vpc_association(
            sn, vpc_id, status=self.association_status, security_group_ids=security_group_ids, tags=tags
        )
        return assoc.model_copy(deep=True)

    def get_vpc_association(self, association_id: str) -> VpcAssociation:
        self._record("get_vpc_association", association_id)
        if association_id not in self.vpc_associations:
            raise NotFoundError("SERVICE_NETWORK_VPC_ASSOCIATION", association_id)
        return self.vpc_associations[association_id].model_copy(deep=True)

    def update_vpc_association(self, association_id: str, security_group_ids: List[str]) -> VpcAssociation:
        self._record("update_vpc_association", association_id, list(security_group_ids))
        assoc = self.vpc_associations[association_id]
        assoc.security_group_ids = list(security_group_ids)
        return assoc.model_copy(deep=True)

    def delete_vpc_association(self, association_id: str) -> VpcAssociation:
        self._record("delete_vpc_association", association_id)
        if association_id not in self.vpc_associations:
            raise NotFoundError("SERVICE_NETWORK_VPC_ASSOCIATION", association_id)
        assoc = self.vpc_associations.pop(association_id)
        return assoc.model_copy(update={"status": "DELETE_IN_PROGRESS"})

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def list_services(self) -> List[ServiceSummary]:
        self._record("list_services")
        return [s.model_copy() for s in self.services.values()]

    def get_service(self, service_id: str) -> ServiceSummary:
        self._record("get_service", service_id)
        if service_id not in self.services:
            raise NotFoundError("SERVICE", service_id)
        return self.services[service_id].model_copy()

    def create_service(self, name, tags, custom_domain_name=None, certificate_arn=None) -> ServiceSummary:
        self._record("create_service", name, dict(tags), custom_domain_name, certificate_arn)
        svc = self.add_service(name, tags=tags, certificate_arn=certificate_arn)
        svc.custom_domain_name = custom_domain_name
        return svc.model_copy()

    def update_service(self, service_id, certificate_arn=None, auth_type=None) -> None:
        self._record("update_service", service_id, certificate_arn, auth_type)
        if service_id not in self.services:
            raise NotFoundError("SERVICE", service_id)
        if certificate_arn is not None:
            self.services[service_id].certificate_arn = certificate_arn
        if auth_type is not None:
            self.auth_types[service_id] = auth_type

    def delete_service(self, service_id: str) -> None:
        self._record("delete_service", service_id)
        if service_id not in self.services:
            raise NotFoundError("SERVICE", service_id)
        del self.services[service_id]

    def list_service_associations(self, service_id=None, service_network_id=None) -> List[ServiceAssociation]:
        self._record("list_service_associations", service_id, service_network_id)
        return [
            a.model_copy()
            for a in self.service_associations.values()
            if (service_id is None or a.service_id == service_id)
            and (service_network_id is None or a.service_network_id == service_network_id)
        ]

    def create_service_association(self, service_id, service_network_id, tags) -> ServiceAssociation:
        self._record("create_service_association", service_id, service_network_id, dict(tags))
        svc = self.services.get(service_id)
        sn = self.service_networks.get(service_network_id)
        if svc is None or sn is None:
            raise NotFoundError("SERVICE", service_id)
        assoc = self.add_service_association(svc, sn, status=self.service_association_status, tags=tags)
        return assoc.model_copy()

    def delete_service_association(self, association_id: str) -> None:
        self._record("delete_service_association", association_id)
        if association_id not in self.service_associations:
            raise NotFoundError("SERVICE_NETWORK_SERVICE_ASSOCIATION", association_id)
        del self.service_associations[association_id]

    # ------------------------------------------------------------------
    # Listeners and rules
    # ------------------------------------------------------------------

    def list_listeners(self, service_id: str) -> List[ListenerSummary]:
        self._record("list_listeners", service_id)
        return [
            l.model_copy() for l_id, l in self.listeners.items() if self.listener_services[l_id] == service_id
        ]

    def create_listener(self, service_id, name, port, protocol, default_action, tags) -> ListenerSummary:
        self._record("create_listener", service_id, name, port, protocol, default_action, dict(tags))
        if service_id not in self.services:
            raise NotFoundError("SERVICE", service_id)
        listener = self.add_listener(service_id, port, protocol, name=name)
        self.listener_actions[listener.id] = default_action
        self.tags[listener.arn] = dict(tags)
        return listener.model_copy()

    def delete_listener(self, service_id: str, listener_id: str) -> None:
        self._record("delete_listener", service_id, listener_id)
        if listener_id not in self.listeners:
            raise NotFoundError("LISTENER", listener_id)
        del self.listeners[listener_id]
        for rule_id in [r for r, l in self.rule_listeners.items() if l == listener_id]:
            del self.rules[rule_id]
            del self.rule_listeners[rule_id]

    def _listener_rules(self, listener_id: str) -> List[RuleDetail]:
        if listener_id not in self.listeners:
            raise NotFoundError("LISTENER", listener_id)
        return [r for r_id, r in self.rules.items() if self.rule_listeners[r_id] == listener_id]

    def list_rules(self, service_id: str, listener_id: str) -> List[RuleSummary]:
        self._record("list_rules", service_id, listener_id)
        return [
            RuleSummary(id=r.id, arn=r.arn, name=r.name, priority=r.priority, is_default=r.is_default)
            for r in self._listener_rules(listener_id)
        ]

    def get_rule(self, service_id: str, listener_id: str, rule_id: str) -> RuleDetail:
        self._record("get_rule", service_id, listener_id, rule_id)
        if rule_id not in self.rules:
            raise NotFoundError("RULE", rule_id)
        return self.rules[rule_id].model_copy(deep=True)

    def _check_priority_free(self, listener_id: str, priority: int, rule_id: Optional[str] = None):
        for rule in self._listener_rules(listener_id):
            if not rule.is_default and rule.priority == priority and rule.id != rule_id:
                raise ConflictError("RULE", rule.id, f"priority {priority} already in use")

    def create_rule(self, service_id, listener_id, name, priority, match, action, tags) -> RuleDetail:
        self._record("create_rule", service_id, listener_id, name, priority, match, action, dict(tags))
        self._check_priority_free(listener_id, priority)
        rule = self.add_rule(listener_id, priority, match, action, name=name)
        self.tags[rule.arn] = dict(tags)
        return rule.model_copy(deep=True)

    def update_rule(self, service_id, listener_id, rule_id, priority, match, action) -> RuleDetail:
        self._record("update_rule", service_id, listener_id, rule_id, priority, match, action)
        if rule_id not in self.rules:
            raise NotFoundError("RULE", rule_id)
        self._check_priority_free(listener_id, priority, rule_id)
        rule = self.rules[rule_id]
        rule.priority = priority
        rule.match = match
        rule.action = action
        return rule.model_copy(deep=True)

    def batch_update_rules(self, service_id: str, listener_id: str, updates: List[RuleUpdate]) -> None:
        self._record("batch_update_rules", service_id, listener_id, list(updates))
        for update in updates:
            if update.rule_id not in self.rules:
                raise NotFoundError("RULE", update.rule_id)
        for update in updates:
            self.rules[update.rule_id].priority = update.priority
        priorities = [r.priority for r in self._listener_rules(listener_id) if not r.is_default]
        if len(priorities) != len(set(priorities)):
            raise ConflictError("RULE", listener_id, "duplicate priorities after batch update")

    def delete_rule(self, service_id: str, listener_id: str, rule_id: str) -> None:
        self._record("delete_rule", service_id, listener_id, rule_id)
        if rule_id not in self.rules:
            raise NotFoundError("RULE", rule_id)
        del self.rules[rule_id]
        del self.rule_listeners[rule_id]

    # ------------------------------------------------------------------
    # Target groups and targets
    # ------------------------------------------------------------------

    def list_target_groups(self, vpc_id: Optional[str] = None) -> List[TargetGroupSummary]:
        self._record("list_target_groups", vpc_id)
        # The list view carries neither the protocol version nor the health check.
        return [
            tg.model_copy(update={"protocol_version": None, "health_check": None})
            for tg in self.target_groups.values()
            if vpc_id is None or tg.vpc_id == vpc_id
        ]

    def get_target_group(self, target_group_id: str) -> TargetGroupSummary:
        self._record("get_target_group", target_group_id)
        if target_group_id not in self.target_groups:
            raise NotFoundError("TARGET_GROUP", target_group_id)
        return self.target_groups[target_group_id].model_copy(deep=True)

    def create_target_group(
        self, name, type, port, protocol, protocol_version, ip_address_type, vpc_id, health_check, tags
    ) -> TargetGroupSummary:
        self._record(
            "create_target_group", name, type, port, protocol, protocol_version, ip_address_type, vpc_id,
            health_check, dict(tags),
        )
        tg = self.add_target_group(
            port=port,
            protocol=protocol,
            protocol_version=protocol_version,
            ip_address_type=ip_address_type or "IPV4",
            vpc_id=vpc_id,
            status=self.target_group_status,
            tags=tags,
            health_check=health_check,
            name=name,
        )
        return tg.model_copy(deep=True)

    def update_target_group(self, target_group_id: str, health_check: HealthCheckConfig) -> TargetGroupSummary:
        self._record("update_target_group", target_group_id, health_check)
        if target_group_id not in self.target_groups:
            raise NotFoundError("TARGET_GROUP", target_group_id)
        tg = self.target_groups[target_group_id]
        tg.health_check = health_check
        return tg.model_copy(deep=True)

    def delete_target_group(self, target_group_id: str) -> None:
        self._record("delete_target_group", target_group_id)
        if target_group_id not in self.target_groups:
            raise NotFoundError("TARGET_GROUP", target_group_id)
        if self.target_groups[target_group_id].service_arns:
            raise ConflictError("TARGET_GROUP", target_group_id, "Target group is still referenced by a service")
        del self.target_groups[target_group_id]
        del self.targets[target_group_id]

    def list_targets(self, target_group_id: str) -> List[TargetSummary]:
        self._record("list_targets", target_group_id)
        if target_group_id not in self.targets:
            raise NotFoundError("TARGET_GROUP", target_group_id)
        return [t.model_copy() for t in self.targets[target_group_id].values()]

    def register_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        self._record("register_targets", target_group_id, list(targets))
        result = TargetsResult()
        for target in targets:
            if target.key() in self.register_failures:
                result.unsuccessful.append(
                    TargetFailure(id=target.id, port=target.port, failure_code="InvalidTarget")
                )
                continue
            self.add_target(target_group_id, target.id, target.port)
            result.successful.append(target)
        return result

    def deregister_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        self._record("deregister_targets", target_group_id, list(targets))
        result = TargetsResult()
        for target in targets:
            if target.key() in self.deregister_failures:
                result.unsuccessful.append(
                    TargetFailure(id=target.id, port=target.port, failure_message="deregistration failed")
                )
                continue
            self.targets[target_group_id].pop(target.key(), None)
            result.successful.append(target)
        return result

    # ------------------------------------------------------------------
    # Tags and policies
    # ------------------------------------------------------------------

    def list_tags(self, arn: str) -> Dict[str, str]:
        self._record("list_tags", arn)
        if arn not in self.tags:
            raise NotFoundError("RESOURCE", arn)
        return dict(self.tags[arn])

    def tag_resource(self, arn: str, tags: Dict[str, str]) -> None:
        self._record("tag_resource", arn, dict(tags))
        self.tags.setdefault(arn, {}).update(tags)

    def _resource_arn(self, resource_id: str) -> str:
        if resource_id in self.service_networks:
            return self.service_networks[resource_id].arn
        if resource_id in self.services:
            return self.services[resource_id].arn
        raise NotFoundError("SERVICE", resource_id)

    def list_access_log_subscriptions(self, resource_id: str) -> List[AccessLogSubscriptionSummary]:
        self._record("list_access_log_subscriptions", resource_id)
        return [a.model_copy() for a in self.access_logs.values() if a.resource_id == resource_id]

    def create_access_log_subscription(self, resource_id, destination_arn, tags) -> AccessLogSubscriptionSummary:
        self._record("create_access_log_subscription", resource_id, destination_arn, dict(tags))
        resource_arn = self._resource_arn(resource_id)
        for existing in self.access_logs.values():
            if existing.resource_id == resource_id and existing.destination_arn.split(":")[2] == destination_arn.split(":")[2]:
                raise ConflictError("ACCESS_LOG_SUBSCRIPTION", existing.id, "destination type already subscribed")
        sub_id = self._next_id("als")
        sub = AccessLogSubscriptionSummary(
            id=sub_id,
            arn=lattice_arn("accesslogsubscription", sub_id),
            resource_id=resource_id,
            resource_arn=resource_arn,
            destination_arn=destination_arn,
        )
        self.access_logs[sub_id] = sub
        self.tags[sub.arn] = dict(tags)
        return sub.model_copy()

    def update_access_log_subscription(self, subscription_id, destination_arn) -> AccessLogSubscriptionSummary:
        self._record("update_access_log_subscription", subscription_id, destination_arn)
        if subscription_id not in self.access_logs:
            raise NotFoundError("ACCESS_LOG_SUBSCRIPTION", subscription_id)
        self.access_logs[subscription_id].destination_arn = destination_arn
        return self.access_logs[subscription_id].model_copy()

    def delete_access_log_subscription(self, subscription_id: str) -> None:
        self._record("delete_access_log_subscription", subscription_id)
        if subscription_id not in self.access_logs:
            raise NotFoundError("ACCESS_LOG_SUBSCRIPTION", subscription_id)
        del self.access_logs[subscription_id]

    def get_auth_policy(self, resource_id: str) -> AuthPolicy:
        self._record("get_auth_policy", resource_id)
        if resource_id not in self.auth_policies:
            raise NotFoundError("AUTH_POLICY", resource_id)
        return self.auth_policies[resource_id].model_copy()

    def put_auth_policy(self, resource_id: str, policy: str) -> AuthPolicy:
        self._record("put_auth_policy", resource_id, policy)
        self._resource_arn(resource_id)
        state = "Active" if self.auth_types.get(resource_id) == "AWS_IAM" else "Inactive"
        self.auth_policies[resource_id] = AuthPolicy(policy=policy, state=state)
        return self.auth_policies[resource_id].model_copy()

    def delete_auth_policy(self, resource_id: str) -> None:
        self._record("delete_auth_policy", resource_id)
        if resource_id not in self.auth_policies:
            raise NotFoundError("AUTH_POLICY", resource_id)
        del self.auth_policies[resource_id]


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Reset the global configuration around every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def settings():
    """Controller settings for the test VPC, installed as the global config."""
    config = ControllerSettings(
        cluster_vpc_id=VPC,
        aws_account_id=ACCOUNT,
        cluster_name=CLUSTER,
        region=REGION,
    )
    set_config(config)
    return config


@pytest.fixture
def api():
    return FakeNetworkingAPI()


@pytest.fixture
def cache():
    return ReconciliationCache()


@pytest.fixture
def managed_tags():
    """Tags marking a remote resource as owned by the test controller."""
    return {MANAGED_BY_TAG: MANAGED_BY}


def make_tg_spec(
    port: int = 80,
    protocol: str = "HTTP",
    protocol_version: str = "HTTP1",
    source_type: SourceType = SourceType.HTTP_ROUTE,
    service_name: str = "backend",
    namespace: str = "default",
    route_name: str = "my-route",
    health_check: Optional[HealthCheckConfig] = None,
) -> TargetGroupSpec:
    """A target group spec for the test cluster and VPC."""
    is_route = source_type in (SourceType.HTTP_ROUTE, SourceType.GRPC_ROUTE)
    return TargetGroupSpec(
        vpc_id=VPC,
        port=port,
        protocol=protocol,
        protocol_version=protocol_version,
        health_check=health_check,
        tags=TargetGroupTagFields(
            cluster_name=CLUSTER,
            source_type=source_type,
            k8s_service_name=service_name,
            k8s_service_namespace=namespace,
            k8s_route_name=route_name if is_route else "",
            k8s_route_namespace=namespace if is_route else "",
        ),
    )
