"""Desired-state resource graph consumed by the synthesis engine.

A ``Stack`` holds the typed resources built for one reconciliation pass. The
engine only reads specs and writes back ``status`` fields.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, Iterator, List, Optional, Type, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .cloud.models import HealthCheckConfig
from .errors import ConfigurationError, NotFoundError, UnsupportedKindError
from . import naming

MIN_RULE_PRIORITY = 1
MAX_RULE_PRIORITY = 99

_RULE_ID_RE = re.compile(r"^rule-(\d+)$")


class ResourceKind(str, Enum):
    SERVICE_NETWORK = "ServiceNetwork"
    SERVICE = "Service"
    LISTENER = "Listener"
    RULE = "Rule"
    TARGET_GROUP = "TargetGroup"
    TARGETS = "Targets"
    ACCESS_LOG_SUBSCRIPTION = "AccessLogSubscription"
    IAM_AUTH_POLICY = "IAMAuthPolicy"


class Resource(BaseModel):
    """Common metadata: a stack-scoped id and the resource kind."""

    kind: ClassVar[ResourceKind]

    id: str


# ----------------------------------------------------------------------
# Service network
# ----------------------------------------------------------------------


class ServiceNetworkStatus(BaseModel):
    id: str
    arn: str
    association_arn: Optional[str] = None
    security_group_ids: List[str] = Field(default_factory=list)


class ServiceNetwork(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.SERVICE_NETWORK

    name: str
    account_id: Optional[str] = None
    associate_to_vpc: bool = True
    security_group_ids: List[str] = Field(default_factory=list)
    is_deleted: bool = False
    status: Optional[ServiceNetworkStatus] = None


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------


class ServiceStatus(BaseModel):
    id: str
    arn: str
    dns_name: Optional[str] = None


class Service(Resource):
    """A remote service created once per route."""

    kind: ClassVar[ResourceKind] = ResourceKind.SERVICE

    name: str
    namespace: str
    route_kind: str = "HTTPRoute"
    custom_domain_name: Optional[str] = None
    certificate_arn: Optional[str] = None
    service_network_names: List[str] = Field(default_factory=list)
    additional_tags: Dict[str, str] = Field(default_factory=dict)
    is_deleted: bool = False
    status: Optional[ServiceStatus] = None

    @property
    def lattice_name(self) -> str:
        return naming.service_name(self.name, self.namespace)


# ----------------------------------------------------------------------
# Listener and rule
# ----------------------------------------------------------------------


class TargetGroupRef(BaseModel):
    """A weighted reference to a target group.

    ``target_group_id`` points at a ``TargetGroup`` in the same stack;
    ``lattice_id`` names a remote target group directly (service imports).
    """

    target_group_id: Optional[str] = None
    lattice_id: Optional[str] = None
    weight: int = 1

    @model_validator(mode="after")
    def check_reference(self):
        if not self.target_group_id and not self.lattice_id:
            raise ValueError("target group reference needs target_group_id or lattice_id")
        return self


class ActionSpec(BaseModel):
    """Forward to ``target_groups``; an empty list means a fixed 404 response."""

    target_groups: List[TargetGroupRef] = Field(default_factory=list)


class ListenerStatus(BaseModel):
    id: str
    arn: str
    name: str
    service_id: str


class Listener(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.LISTENER

    service_id: str
    port: int
    protocol: str
    default_action: ActionSpec = Field(default_factory=ActionSpec)
    status: Optional[ListenerStatus] = None

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v):
        if v not in ("HTTP", "HTTPS", "TLS_PASSTHROUGH"):
            raise ValueError(f"unsupported listener protocol {v}")
        return v


class HeaderMatchSpec(BaseModel):
    name: str
    value: str


class MatchSpec(BaseModel):
    path_exact: Optional[str] = None
    path_prefix: Optional[str] = None
    method: Optional[str] = None
    headers: List[HeaderMatchSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_path(self):
        if self.path_exact is not None and self.path_prefix is not None:
            raise ValueError("a rule matches either an exact path or a path prefix, not both")
        return self


class RuleStatus(BaseModel):
    id: str
    arn: str
    name: str
    priority: int
    listener_id: str
    service_id: str
    update_priority_needed: bool = False


class Rule(Resource):
    """A routing rule; its id encodes the desired priority as ``rule-<n>``."""

    kind: ClassVar[ResourceKind] = ResourceKind.RULE

    listener_id: str
    match: MatchSpec = Field(default_factory=MatchSpec)
    action: ActionSpec = Field(default_factory=ActionSpec)
    create_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: Optional[RuleStatus] = None

    @property
    def priority(self) -> int:
        """Desired priority parsed from the id.

        A malformed id is a bug in whatever built the stack, so it raises
        ``ConfigurationError`` rather than anything retryable.
        """
        found = _RULE_ID_RE.match(self.id)
        if not found:
            raise ConfigurationError("rule id", self.id, "rule-<priority>")
        priority = int(found.group(1))
        if not MIN_RULE_PRIORITY <= priority <= MAX_RULE_PRIORITY:
            raise ConfigurationError(
                "rule priority", priority, f"{MIN_RULE_PRIORITY}..{MAX_RULE_PRIORITY}"
            )
        return priority


# ----------------------------------------------------------------------
# Target group and targets
# ----------------------------------------------------------------------


class SourceType(str, Enum):
    """Kind of Kubernetes object a target group was built from."""

    SERVICE_EXPORT = "ServiceExport"
    HTTP_ROUTE = "HTTPRoute"
    GRPC_ROUTE = "GRPCRoute"
    INVALID = "INVALID"

    @classmethod
    def from_tag(cls, value: Optional[str]) -> Optional["SourceType"]:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.INVALID


EKS_CLUSTER_NAME_KEY = "EKSClusterName"
K8S_SERVICE_NAME_KEY = "K8SServiceName"
K8S_SERVICE_NAMESPACE_KEY = "K8SServiceNamespace"
K8S_ROUTE_NAME_KEY = "K8SRouteName"
K8S_ROUTE_NAMESPACE_KEY = "K8SRouteNamespace"
K8S_SOURCE_TYPE_KEY = "K8SSourceType"


class TargetGroupTagFields(BaseModel):
    """Provenance tags recording which Kubernetes objects a target group serves."""

    cluster_name: str = ""
    source_type: Optional[SourceType] = None
    k8s_service_name: str = ""
    k8s_service_namespace: str = ""
    k8s_route_name: str = ""
    k8s_route_namespace: str = ""

    @property
    def is_route(self) -> bool:
        return self.source_type in (SourceType.HTTP_ROUTE, SourceType.GRPC_ROUTE)

    @property
    def is_service_export(self) -> bool:
        return self.source_type == SourceType.SERVICE_EXPORT

    @classmethod
    def from_tags(cls, tags: Dict[str, str]) -> "TargetGroupTagFields":
        return cls(
            cluster_name=tags.get(EKS_CLUSTER_NAME_KEY, ""),
            source_type=SourceType.from_tag(tags.get(K8S_SOURCE_TYPE_KEY)),
            k8s_service_name=tags.get(K8S_SERVICE_NAME_KEY, ""),
            k8s_service_namespace=tags.get(K8S_SERVICE_NAMESPACE_KEY, ""),
            k8s_route_name=tags.get(K8S_ROUTE_NAME_KEY, ""),
            k8s_route_namespace=tags.get(K8S_ROUTE_NAMESPACE_KEY, ""),
        )

    def to_tags(self) -> Dict[str, str]:
        tags = {
            EKS_CLUSTER_NAME_KEY: self.cluster_name,
            K8S_SERVICE_NAME_KEY: self.k8s_service_name,
            K8S_SERVICE_NAMESPACE_KEY: self.k8s_service_namespace,
            K8S_SOURCE_TYPE_KEY: self.source_type.value if self.source_type else "",
        }
        if self.is_route:
            tags[K8S_ROUTE_NAME_KEY] = self.k8s_route_name
            tags[K8S_ROUTE_NAMESPACE_KEY] = self.k8s_route_namespace
        return tags


class TargetGroupSpec(BaseModel):
    vpc_id: str
    type: str = "IP"
    port: int
    protocol: str = "HTTP"
    protocol_version: str = "HTTP1"
    ip_address_type: str = "IPV4"
    health_check: Optional[HealthCheckConfig] = None
    tags: TargetGroupTagFields

    @model_validator(mode="after")
    def check_required_tags(self):
        t = self.tags
        if not (t.k8s_service_name and t.k8s_service_namespace and t.cluster_name and t.source_type):
            raise ValueError("one or more required target group fields are missing")
        if t.is_route and not (t.k8s_route_name and t.k8s_route_namespace):
            raise ValueError("route name or namespace missing for route-based target group")
        return self


class TargetGroupStatus(BaseModel):
    id: str
    arn: str
    name: str


class TargetGroup(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.TARGET_GROUP

    spec: TargetGroupSpec
    is_deleted: bool = False
    status: Optional[TargetGroupStatus] = None


class TargetSpec(BaseModel):
    ip: str
    port: int


class Targets(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.TARGETS

    target_group_id: str
    targets: List[TargetSpec] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Policies
# ----------------------------------------------------------------------


class PolicyTargetKind(str, Enum):
    """Remote resource kinds a policy can attach to."""

    SERVICE_NETWORK = "ServiceNetwork"
    SERVICE = "Service"

    @classmethod
    def parse(cls, value: Union[str, "PolicyTargetKind"]) -> "PolicyTargetKind":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedKindError(value, [k.value for k in cls]) from None


class PolicyStatus(BaseModel):
    resource_id: str
    id: Optional[str] = None
    arn: Optional[str] = None
    state: Optional[str] = None


class AccessLogSubscription(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.ACCESS_LOG_SUBSCRIPTION

    target_kind: PolicyTargetKind
    target_name: str
    destination_arn: str
    is_deleted: bool = False
    status: Optional[PolicyStatus] = None

    @field_validator("target_kind", mode="before")
    @classmethod
    def validate_target_kind(cls, v):
        return PolicyTargetKind.parse(v)


class IAMAuthPolicy(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.IAM_AUTH_POLICY

    target_kind: PolicyTargetKind
    target_name: str
    policy: str
    is_deleted: bool = False
    status: Optional[PolicyStatus] = None

    @field_validator("target_kind", mode="before")
    @classmethod
    def validate_target_kind(cls, v):
        return PolicyTargetKind.parse(v)


RESOURCE_TYPES: Dict[ResourceKind, Type[Resource]] = {
    cls.kind: cls
    for cls in (
        ServiceNetwork,
        Service,
        Listener,
        Rule,
        TargetGroup,
        Targets,
        AccessLogSubscription,
        IAMAuthPolicy,
    )
}


# ----------------------------------------------------------------------
# Stack
# ----------------------------------------------------------------------


class Stack:
    """The desired-state graph for one reconciliation pass.

    Resources are indexed by kind and keep insertion order, which is the
    order synthesizers process them in.
    """

    def __init__(self, stack_id: str) -> None:
        self.stack_id = stack_id
        self._resources: Dict[ResourceKind, Dict[str, Resource]] = {
            kind: {} for kind in RESOURCE_TYPES
        }

    @staticmethod
    def _resolve_kind(kind: Union[ResourceKind, str, Type[Resource]]) -> ResourceKind:
        if isinstance(kind, type) and issubclass(kind, Resource) and kind in RESOURCE_TYPES.values():
            return kind.kind
        try:
            return ResourceKind(kind)
        except ValueError:
            raise UnsupportedKindError(kind, [k.value for k in ResourceKind]) from None

    def add_resource(self, resource: Resource) -> Resource:
        if not isinstance(resource, Resource) or type(resource) not in RESOURCE_TYPES.values():
            raise UnsupportedKindError(type(resource).__name__, [k.value for k in ResourceKind])
        bucket = self._resources[resource.kind]
        if resource.id in bucket:
            raise ConfigurationError(
                "resource id", resource.id, f"unique among {resource.kind.value} resources"
            )
        bucket[resource.id] = resource
        return resource

    def get(self, kind: Union[ResourceKind, str, Type[Resource]], resource_id: str) -> Resource:
        resolved = self._resolve_kind(kind)
        try:
            return self._resources[resolved][resource_id]
        except KeyError:
            raise NotFoundError(resolved.value, resource_id) from None

    def list_resources(self, kind: Union[ResourceKind, str, Type[Resource]]) -> List[Resource]:
        return list(self._resources[self._resolve_kind(kind)].values())

    def __iter__(self) -> Iterator[Resource]:
        for bucket in self._resources.values():
            yield from bucket.values()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._resources.values())
