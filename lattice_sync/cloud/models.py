"""Pydantic models for the remote shapes the engine consumes."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AssociationStatus(str, Enum):
    """Status of a service-network VPC or service association."""

    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    ACTIVE = "ACTIVE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    CREATE_FAILED = "CREATE_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"


class TargetGroupStatus(str, Enum):
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    ACTIVE = "ACTIVE"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    CREATE_FAILED = "CREATE_FAILED"
    DELETE_FAILED = "DELETE_FAILED"


class TargetStatus(str, Enum):
    DRAINING = "DRAINING"
    UNAVAILABLE = "UNAVAILABLE"
    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    INITIAL = "INITIAL"
    UNUSED = "UNUSED"


IN_PROGRESS_STATUSES = frozenset(
    {"CREATE_IN_PROGRESS", "UPDATE_IN_PROGRESS", "DELETE_IN_PROGRESS"}
)


# ----------------------------------------------------------------------
# Service networks
# ----------------------------------------------------------------------


class ServiceNetworkSummary(BaseModel):
    id: str
    arn: str
    name: str
    created_at: Optional[datetime] = None


class ServiceNetworkInfo(BaseModel):
    """A service network together with the tags fetched for it."""

    network: ServiceNetworkSummary
    tags: Dict[str, str] = Field(default_factory=dict)


class VpcAssociation(BaseModel):
    id: str
    arn: str
    status: str
    service_network_id: Optional[str] = None
    service_network_arn: Optional[str] = None
    vpc_id: Optional[str] = None
    security_group_ids: List[str] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Services
# ----------------------------------------------------------------------


class ServiceSummary(BaseModel):
    id: str
    arn: str
    name: str
    status: Optional[str] = None
    dns_name: Optional[str] = None
    custom_domain_name: Optional[str] = None
    certificate_arn: Optional[str] = None


class ServiceAssociation(BaseModel):
    id: str
    arn: str
    status: str
    service_id: Optional[str] = None
    service_network_id: Optional[str] = None
    service_network_name: Optional[str] = None
    dns_name: Optional[str] = None


# ----------------------------------------------------------------------
# Listeners and rules
# ----------------------------------------------------------------------


class ListenerSummary(BaseModel):
    id: str
    arn: str
    name: str
    port: int
    protocol: str


class PathMatch(BaseModel):
    exact: Optional[str] = None
    prefix: Optional[str] = None
    case_sensitive: bool = True


class HeaderMatch(BaseModel):
    name: str
    exact: Optional[str] = None
    case_sensitive: bool = False


class HttpMatch(BaseModel):
    method: Optional[str] = None
    path: Optional[PathMatch] = None
    headers: List[HeaderMatch] = Field(default_factory=list)


class WeightedTargetGroup(BaseModel):
    target_group_id: str
    weight: int = 1


class RuleAction(BaseModel):
    """Either a forward to weighted target groups or a fixed response."""

    forward: List[WeightedTargetGroup] = Field(default_factory=list)
    fixed_response_status: Optional[int] = None

    @classmethod
    def not_found(cls) -> "RuleAction":
        return cls(fixed_response_status=404)


class RuleSummary(BaseModel):
    id: str
    arn: str
    name: str
    priority: int = 0
    is_default: bool = False


class RuleDetail(RuleSummary):
    match: Optional[HttpMatch] = None
    action: Optional[RuleAction] = None


class RuleUpdate(BaseModel):
    rule_id: str
    priority: int


# ----------------------------------------------------------------------
# Target groups and targets
# ----------------------------------------------------------------------


class HealthCheckConfig(BaseModel):
    enabled: Optional[bool] = None
    protocol: Optional[str] = None
    protocol_version: Optional[str] = None
    path: Optional[str] = None
    port: Optional[int] = None
    interval_seconds: Optional[int] = None
    timeout_seconds: Optional[int] = None
    healthy_threshold: Optional[int] = None
    unhealthy_threshold: Optional[int] = None
    matcher: Optional[str] = None


class TargetGroupSummary(BaseModel):
    """List or get view of a target group.

    ``protocol_version`` and ``health_check`` are only known after a get.
    """

    id: str
    arn: str
    name: str
    status: str
    type: Optional[str] = None
    port: Optional[int] = None
    protocol: Optional[str] = None
    protocol_version: Optional[str] = None
    ip_address_type: Optional[str] = None
    vpc_id: Optional[str] = None
    service_arns: List[str] = Field(default_factory=list)
    health_check: Optional[HealthCheckConfig] = None
    created_at: Optional[datetime] = None


class Target(BaseModel):
    id: str
    port: int

    def key(self):
        return (self.id, self.port)


class TargetSummary(Target):
    status: Optional[str] = None
    reason_code: Optional[str] = None


class TargetFailure(Target):
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None


class TargetsResult(BaseModel):
    successful: List[Target] = Field(default_factory=list)
    unsuccessful: List[TargetFailure] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Policies
# ----------------------------------------------------------------------


class AccessLogSubscriptionSummary(BaseModel):
    id: str
    arn: str
    resource_id: Optional[str] = None
    resource_arn: Optional[str] = None
    destination_arn: str


class AuthPolicy(BaseModel):
    policy: Optional[str] = None
    state: Optional[str] = None
