"""
VPC Lattice adapter

Implements ``NetworkingAPI`` over a boto3 ``vpc-lattice`` client. List calls
go through botocore paginators and always return the complete result.
Client errors are translated into the engine's taxonomy:

- ``ResourceNotFoundException`` -> ``NotFoundError``
- ``ConflictException`` -> ``ConflictError``
- ``ValidationException`` -> ``InvalidError``

Anything else is raised unchanged.
"""

import uuid
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.exceptions import ClientError

from ..config import ControllerSettings, get_config
from ..errors import ConflictError, InvalidError, NotFoundError
from ..logging import get_logger
from .base import NetworkingAPI
from .models import (
    AccessLogSubscriptionSummary,
    AuthPolicy,
    HeaderMatch,
    HealthCheckConfig,
    HttpMatch,
    ListenerSummary,
    PathMatch,
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
    WeightedTargetGroup,
)

logger = get_logger(__name__)

SERVICE_NAME = "vpc-lattice"


def _compact(**kwargs) -> Dict[str, Any]:
    """Drop ``None`` values so optional request members are omitted."""
    return {k: v for k, v in kwargs.items() if v is not None}


# ----------------------------------------------------------------------
# Response -> model conversion
# ----------------------------------------------------------------------


def _dns_name(item: Dict[str, Any]) -> Optional[str]:
    return (item.get("dnsEntry") or {}).get("domainName")


def _service_network(item: Dict[str, Any]) -> ServiceNetworkSummary:
    return ServiceNetworkSummary(
        id=item["id"], arn=item["arn"], name=item["name"], created_at=item.get("createdAt")
    )


def _vpc_association(item: Dict[str, Any]) -> VpcAssociation:
    return VpcAssociation(
        id=item["id"],
        arn=item["arn"],
        status=item.get("status", ""),
        service_network_id=item.get("serviceNetworkId"),
        service_network_arn=item.get("serviceNetworkArn"),
        vpc_id=item.get("vpcId"),
        security_group_ids=item.get("securityGroupIds") or [],
    )


def _service(item: Dict[str, Any]) -> ServiceSummary:
    return ServiceSummary(
        id=item["id"],
        arn=item["arn"],
        name=item["name"],
        status=item.get("status"),
        dns_name=_dns_name(item),
        custom_domain_name=item.get("customDomainName"),
        certificate_arn=item.get("certificateArn"),
    )


def _service_association(item: Dict[str, Any]) -> ServiceAssociation:
    return ServiceAssociation(
        id=item["id"],
        arn=item["arn"],
        status=item.get("status", ""),
        service_id=item.get("serviceId"),
        service_network_id=item.get("serviceNetworkId"),
        service_network_name=item.get("serviceNetworkName"),
        dns_name=_dns_name(item),
    )


def _listener(item: Dict[str, Any]) -> ListenerSummary:
    return ListenerSummary(
        id=item["id"], arn=item["arn"], name=item["name"], port=item["port"], protocol=item["protocol"]
    )


def _http_match(match: Optional[Dict[str, Any]]) -> Optional[HttpMatch]:
    if not match or "httpMatch" not in match:
        return None
    http = match["httpMatch"]
    path = None
    if http.get("pathMatch"):
        path_match = http["pathMatch"]
        path = PathMatch(
            exact=path_match.get("match", {}).get("exact"),
            prefix=path_match.get("match", {}).get("prefix"),
            case_sensitive=path_match.get("caseSensitive", True),
        )
    headers = [
        HeaderMatch(
            name=h["name"],
            exact=h.get("match", {}).get("exact"),
            case_sensitive=h.get("caseSensitive", False),
        )
        for h in http.get("headerMatches") or []
    ]
    return HttpMatch(method=http.get("method"), path=path, headers=headers)


def _match_request(match: HttpMatch) -> Dict[str, Any]:
    http: Dict[str, Any] = {}
    if match.method:
        http["method"] = match.method
    if match.path is not None:
        http["pathMatch"] = {
            "match": _compact(exact=match.path.exact, prefix=match.path.prefix),
            "caseSensitive": match.path.case_sensitive,
        }
    if match.headers:
        http["headerMatches"] = [
            {"name": h.name, "match": {"exact": h.exact}, "caseSensitive": h.case_sensitive}
            for h in match.headers
        ]
    return {"httpMatch": http}


def _rule_action(action: Optional[Dict[str, Any]]) -> Optional[RuleAction]:
    if not action:
        return None
    if "forward" in action:
        return RuleAction(
            forward=[
                WeightedTargetGroup(target_group_id=tg["targetGroupIdentifier"], weight=tg.get("weight", 1))
                for tg in action["forward"].get("targetGroups", [])
            ]
        )
    return RuleAction(fixed_response_status=action.get("fixedResponse", {}).get("statusCode"))


def _action_request(action: RuleAction) -> Dict[str, Any]:
    if action.forward:
        return {
            "forward": {
                "targetGroups": [
                    {"targetGroupIdentifier": tg.target_group_id, "weight": tg.weight} for tg in action.forward
                ]
            }
        }
    return {"fixedResponse": {"statusCode": action.fixed_response_status or 404}}


def _rule_detail(item: Dict[str, Any]) -> RuleDetail:
    return RuleDetail(
        id=item["id"],
        arn=item["arn"],
        name=item.get("name", ""),
        priority=item.get("priority", 0),
        is_default=item.get("isDefault", False),
        match=_http_match(item.get("match")),
        action=_rule_action(item.get("action")),
    )


def _health_check(config: Optional[Dict[str, Any]]) -> Optional[HealthCheckConfig]:
    if not config:
        return None
    return HealthCheckConfig(
        enabled=config.get("enabled"),
        protocol=config.get("protocol"),
        protocol_version=config.get("protocolVersion"),
        path=config.get("path"),
        port=config.get("port"),
        interval_seconds=config.get("healthCheckIntervalSeconds"),
        timeout_seconds=config.get("healthCheckTimeoutSeconds"),
        healthy_threshold=config.get("healthyThresholdCount"),
        unhealthy_threshold=config.get("unhealthyThresholdCount"),
        matcher=(config.get("matcher") or {}).get("httpCode"),
    )


def _health_check_request(health_check: HealthCheckConfig) -> Dict[str, Any]:
    request = _compact(
        enabled=health_check.enabled,
        protocol=health_check.protocol,
        protocolVersion=health_check.protocol_version,
        path=health_check.path,
        port=health_check.port,
        healthCheckIntervalSeconds=health_check.interval_seconds,
        healthCheckTimeoutSeconds=health_check.timeout_seconds,
        healthyThresholdCount=health_check.healthy_threshold,
        unhealthyThresholdCount=health_check.unhealthy_threshold,
    )
    if health_check.matcher is not None:
        request["matcher"] = {"httpCode": health_check.matcher}
    return request


def _target_group(item: Dict[str, Any]) -> TargetGroupSummary:
    """Convert a list summary or a get response; the latter nests its config."""
    config = item.get("config") or {}
    return TargetGroupSummary(
        id=item["id"],
        arn=item["arn"],
        name=item.get("name", ""),
        status=item.get("status", ""),
        type=item.get("type"),
        port=item.get("port", config.get("port")),
        protocol=item.get("protocol", config.get("protocol")),
        protocol_version=config.get("protocolVersion"),
        ip_address_type=item.get("ipAddressType", config.get("ipAddressType")),
        vpc_id=item.get("vpcIdentifier", config.get("vpcIdentifier")),
        service_arns=item.get("serviceArns") or [],
        health_check=_health_check(config.get("healthCheck")),
        created_at=item.get("createdAt"),
    )


def _targets_result(response: Dict[str, Any]) -> TargetsResult:
    return TargetsResult(
        successful=[Target(id=t["id"], port=t["port"]) for t in response.get("successful", [])],
        unsuccessful=[
            TargetFailure(
                id=t["id"],
                port=t["port"],
                failure_code=t.get("failureCode"),
                failure_message=t.get("failureMessage"),
            )
            for t in response.get("unsuccessful", [])
        ],
    )


def _access_log_subscription(item: Dict[str, Any]) -> AccessLogSubscriptionSummary:
    return AccessLogSubscriptionSummary(
        id=item["id"],
        arn=item["arn"],
        resource_id=item.get("resourceId"),
        resource_arn=item.get("resourceArn"),
        destination_arn=item["destinationArn"],
    )


# ----------------------------------------------------------------------
# Adapter
# ----------------------------------------------------------------------


class VpcLatticeAPI(NetworkingAPI):
    """``NetworkingAPI`` backed by boto3.

    Parameters
    ----------
    client:
        A ready ``vpc-lattice`` client. Built from ``session`` when omitted.
    session:
        boto3 session used to build the client; a default session otherwise.
    settings:
        Supplies the region when a client has to be built.
    """

    def __init__(
        self,
        client=None,
        session: Optional[boto3.Session] = None,
        settings: Optional[ControllerSettings] = None,
    ) -> None:
        if client is None:
            settings = settings or get_config()
            session = session or boto3.Session()
            client = session.client(SERVICE_NAME, region_name=settings.region)
        self.client = client

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _translate(err: ClientError, operation: str):
        error = err.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message", str(err))
        logger.debug("VPC Lattice call failed", operation=operation, code=code)
        if code == "ResourceNotFoundException":
            return NotFoundError(
                err.response.get("resourceType") or operation,
                err.response.get("resourceId") or "",
                message=message,
            )
        if code == "ConflictException":
            return ConflictError(
                err.response.get("resourceType") or operation,
                err.response.get("resourceId") or "",
                message,
            )
        if code == "ValidationException":
            return InvalidError(message, operation=operation)
        return None

    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        try:
            return getattr(self.client, operation)(**kwargs)
        except ClientError as e:
            translated = self._translate(e, operation)
            if translated is None:
                raise
            raise translated from e

    def _paginate(self, operation: str, **kwargs) -> Iterator[Dict[str, Any]]:
        paginator = self.client.get_paginator(operation)
        try:
            for page in paginator.paginate(**kwargs):
                yield from page.get("items", [])
        except ClientError as e:
            translated = self._translate(e, operation)
            if translated is None:
                raise
            raise translated from e

    # ------------------------------------------------------------------
    # Service networks
    # ------------------------------------------------------------------

    def list_service_networks(self) -> List[ServiceNetworkSummary]:
        return [_service_network(i) for i in self._paginate("list_service_networks")]

    def create_service_network(self, name: str, tags: Dict[str, str]) -> ServiceNetworkSummary:
        resp = self._call("create_service_network", name=name, tags=tags, clientToken=str(uuid.uuid4()))
        return _service_network(resp)

    def delete_service_network(self, service_network_id: str) -> None:
        self._call("delete_service_network", serviceNetworkIdentifier=service_network_id)

    def update_service_network_auth_type(self, service_network_id: str, auth_type: str) -> None:
        self._call("update_service_network", serviceNetworkIdentifier=service_network_id, authType=auth_type)

    def list_vpc_associations(
        self, service_network_id: Optional[str] = None, vpc_id: Optional[str] = None
    ) -> List[VpcAssociation]:
        items = self._paginate(
            "list_service_network_vpc_associations",
            **_compact(serviceNetworkIdentifier=service_network_id, vpcIdentifier=vpc_id),
        )
        return [_vpc_association(i) for i in items]

    def create_vpc_association(
        self,
        service_network_id: str,
        vpc_id: str,
        security_group_ids: List[str],
        tags: Dict[str, str],
    ) -> VpcAssociation:
        resp = self._call(
            "create_service_network_vpc_association",
            serviceNetworkIdentifier=service_network_id,
            vpcIdentifier=vpc_id,
            securityGroupIds=security_group_ids,
            tags=tags,
        )
        return _vpc_association({"vpcId": vpc_id, "serviceNetworkId": service_network_id, **resp})

    def get_vpc_association(self, association_id: str) -> VpcAssociation:
        resp = self._call(
            "get_service_network_vpc_association", serviceNetworkVpcAssociationIdentifier=association_id
        )
        return _vpc_association(resp)

    def update_vpc_association(self, association_id: str, security_group_ids: List[str]) -> VpcAssociation:
        resp = self._call(
            "update_service_network_vpc_association",
            serviceNetworkVpcAssociationIdentifier=association_id,
            securityGroupIds=security_group_ids,
        )
        return _vpc_association(resp)

    def delete_vpc_association(self, association_id: str) -> VpcAssociation:
        resp = self._call(
            "delete_service_network_vpc_association", serviceNetworkVpcAssociationIdentifier=association_id
        )
        return _vpc_association(resp)

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def list_services(self) -> List[ServiceSummary]:
        return [_service(i) for i in self._paginate("list_services")]

    def get_service(self, service_id: str) -> ServiceSummary:
        return _service(self._call("get_service", serviceIdentifier=service_id))

    def create_service(
        self,
        name: str,
        tags: Dict[str, str],
        custom_domain_name: Optional[str] = None,
        certificate_arn: Optional[str] = None,
    ) -> ServiceSummary:
        resp = self._call(
            "create_service",
            name=name,
            tags=tags,
            clientToken=str(uuid.uuid4()),
            **_compact(customDomainName=custom_domain_name, certificateArn=certificate_arn),
        )
        return _service(resp)

    def update_service(
        self, service_id: str, certificate_arn: Optional[str] = None, auth_type: Optional[str] = None
    ) -> None:
        self._call(
            "update_service",
            serviceIdentifier=service_id,
            **_compact(certificateArn=certificate_arn, authType=auth_type),
        )

    def delete_service(self, service_id: str) -> None:
        self._call("delete_service", serviceIdentifier=service_id)

    def list_service_associations(
        self, service_id: Optional[str] = None, service_network_id: Optional[str] = None
    ) -> List[ServiceAssociation]:
        items = self._paginate(
            "list_service_network_service_associations",
            **_compact(serviceIdentifier=service_id, serviceNetworkIdentifier=service_network_id),
        )
        return [_service_association(i) for i in items]

    def create_service_association(
        self, service_id: str, service_network_id: str, tags: Dict[str, str]
    ) -> ServiceAssociation:
        resp = self._call(
            "create_service_network_service_association",
            serviceIdentifier=service_id,
            serviceNetworkIdentifier=service_network_id,
            tags=tags,
        )
        return _service_association({"serviceId": service_id, "serviceNetworkId": service_network_id, **resp})

    def delete_service_association(self, association_id: str) -> None:
        self._call(
            "delete_service_network_service_association",
            serviceNetworkServiceAssociationIdentifier=association_id,
        )

    # ------------------------------------------------------------------
    # Listeners and rules
    # ------------------------------------------------------------------

    def list_listeners(self, service_id: str) -> List[ListenerSummary]:
        return [_listener(i) for i in self._paginate("list_listeners", serviceIdentifier=service_id)]

    def create_listener(
        self,
        service_id: str,
        name: str,
        port: int,
        protocol: str,
        default_action: RuleAction,
        tags: Dict[str, str],
    ) -> ListenerSummary:
        resp = self._call(
            "create_listener",
            serviceIdentifier=service_id,
            name=name,
            port=port,
            protocol=protocol,
            defaultAction=_action_request(default_action),
            tags=tags,
            clientToken=str(uuid.uuid4()),
        )
        return _listener(resp)

    def delete_listener(self, service_id: str, listener_id: str) -> None:
        self._call("delete_listener", serviceIdentifier=service_id, listenerIdentifier=listener_id)

    def list_rules(self, service_id: str, listener_id: str) -> List[RuleSummary]:
        items = self._paginate("list_rules", serviceIdentifier=service_id, listenerIdentifier=listener_id)
        return [
            RuleSummary(
                id=i["id"],
                arn=i["arn"],
                name=i.get("name", ""),
                priority=i.get("priority", 0),
                is_default=i.get("isDefault", False),
            )
            for i in items
        ]

    def get_rule(self, service_id: str, listener_id: str, rule_id: str) -> RuleDetail:
        resp = self._call(
            "get_rule", serviceIdentifier=service_id, listenerIdentifier=listener_id, ruleIdentifier=rule_id
        )
        return _rule_detail(resp)

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
        resp = self._call(
            "create_rule",
            serviceIdentifier=service_id,
            listenerIdentifier=listener_id,
            name=name,
            priority=priority,
            match=_match_request(match),
            action=_action_request(action),
            tags=tags,
            clientToken=str(uuid.uuid4()),
        )
        return _rule_detail(resp)

    def update_rule(
        self,
        service_id: str,
        listener_id: str,
        rule_id: str,
        priority: int,
        match: HttpMatch,
        action: RuleAction,
    ) -> RuleDetail:
        resp = self._call(
            "update_rule",
            serviceIdentifier=service_id,
            listenerIdentifier=listener_id,
            ruleIdentifier=rule_id,
            priority=priority,
            match=_match_request(match),
            action=_action_request(action),
        )
        return _rule_detail(resp)

    def batch_update_rules(self, service_id: str, listener_id: str, updates: List[RuleUpdate]) -> None:
        resp = self._call(
            "batch_update_rule",
            serviceIdentifier=service_id,
            listenerIdentifier=listener_id,
            rules=[{"ruleIdentifier": u.rule_id, "priority": u.priority} for u in updates],
        )
        failed = resp.get("unsuccessful") or []
        if failed:
            raise InvalidError(
                f"{len(failed)} rule priority update(s) rejected",
                first=failed[0].get("failureMessage"),
            )

    def delete_rule(self, service_id: str, listener_id: str, rule_id: str) -> None:
        self._call(
            "delete_rule", serviceIdentifier=service_id, listenerIdentifier=listener_id, ruleIdentifier=rule_id
        )

    # ------------------------------------------------------------------
    # Target groups and targets
    # ------------------------------------------------------------------

    def list_target_groups(self, vpc_id: Optional[str] = None) -> List[TargetGroupSummary]:
        items = self._paginate("list_target_groups", **_compact(vpcIdentifier=vpc_id))
        return [_target_group(i) for i in items]

    def get_target_group(self, target_group_id: str) -> TargetGroupSummary:
        return _target_group(self._call("get_target_group", targetGroupIdentifier=target_group_id))

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
        config = _compact(
            port=port,
            protocol=protocol,
            protocolVersion=protocol_version,
            ipAddressType=ip_address_type,
            vpcIdentifier=vpc_id,
        )
        if health_check is not None:
            config["healthCheck"] = _health_check_request(health_check)
        resp = self._call(
            "create_target_group",
            name=name,
            type=type,
            config=config,
            tags=tags,
            clientToken=str(uuid.uuid4()),
        )
        return _target_group(resp)

    def update_target_group(self, target_group_id: str, health_check: HealthCheckConfig) -> TargetGroupSummary:
        resp = self._call(
            "update_target_group",
            targetGroupIdentifier=target_group_id,
            healthCheck=_health_check_request(health_check),
        )
        return _target_group(resp)

    def delete_target_group(self, target_group_id: str) -> None:
        self._call("delete_target_group", targetGroupIdentifier=target_group_id)

    def list_targets(self, target_group_id: str) -> List[TargetSummary]:
        items = self._paginate("list_targets", targetGroupIdentifier=target_group_id)
        return [
            TargetSummary(id=i["id"], port=i["port"], status=i.get("status"), reason_code=i.get("reasonCode"))
            for i in items
        ]

    def register_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        resp = self._call(
            "register_targets",
            targetGroupIdentifier=target_group_id,
            targets=[{"id": t.id, "port": t.port} for t in targets],
        )
        return _targets_result(resp)

    def deregister_targets(self, target_group_id: str, targets: List[Target]) -> TargetsResult:
        resp = self._call(
            "deregister_targets",
            targetGroupIdentifier=target_group_id,
            targets=[{"id": t.id, "port": t.port} for t in targets],
        )
        return _targets_result(resp)

    # ------------------------------------------------------------------
    # Tags and policies
    # ------------------------------------------------------------------

    def list_tags(self, arn: str) -> Dict[str, str]:
        return self._call("list_tags_for_resource", resourceArn=arn).get("tags") or {}

    def tag_resource(self, arn: str, tags: Dict[str, str]) -> None:
        self._call("tag_resource", resourceArn=arn, tags=tags)

    def list_access_log_subscriptions(self, resource_id: str) -> List[AccessLogSubscriptionSummary]:
        items = self._paginate("list_access_log_subscriptions", resourceIdentifier=resource_id)
        return [_access_log_subscription(i) for i in items]

    def create_access_log_subscription(
        self, resource_id: str, destination_arn: str, tags: Dict[str, str]
    ) -> AccessLogSubscriptionSummary:
        resp = self._call(
            "create_access_log_subscription",
            resourceIdentifier=resource_id,
            destinationArn=destination_arn,
            tags=tags,
            clientToken=str(uuid.uuid4()),
        )
        return _access_log_subscription(resp)

    def update_access_log_subscription(
        self, subscription_id: str, destination_arn: str
    ) -> AccessLogSubscriptionSummary:
        resp = self._call(
            "update_access_log_subscription",
            accessLogSubscriptionIdentifier=subscription_id,
            destinationArn=destination_arn,
        )
        return _access_log_subscription(resp)

    def delete_access_log_subscription(self, subscription_id: str) -> None:
        self._call("delete_access_log_subscription", accessLogSubscriptionIdentifier=subscription_id)

    def get_auth_policy(self, resource_id: str) -> AuthPolicy:
        resp = self._call("get_auth_policy", resourceIdentifier=resource_id)
        return AuthPolicy(policy=resp.get("policy"), state=resp.get("state"))

    def put_auth_policy(self, resource_id: str, policy: str) -> AuthPolicy:
        resp = self._call("put_auth_policy", resourceIdentifier=resource_id, policy=policy)
        return AuthPolicy(policy=resp.get("policy"), state=resp.get("state"))

    def delete_auth_policy(self, resource_id: str) -> None:
        self._call("delete_auth_policy", resourceIdentifier=resource_id)
