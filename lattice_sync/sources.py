"""
Source Resolution

Unused target group collection needs to know whether the Kubernetes object a
target group was built from (an HTTPRoute, GRPCRoute or ServiceExport) still
exists and what it would build today. That lookup lives in the controller
runtime, so the engine only sees it through ``TargetGroupSourceResolver``.

Service networks are collected the same way: ``ServiceNetworkUsageResolver``
reports whether any gateway still declares a network of a given name.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field

from .model import TargetGroupSpec, TargetGroupTagFields


class TargetGroupSource(BaseModel):
    """What the originating object of a target group currently looks like.

    Attributes:
        deleting: The object carries a deletion timestamp.
        target_groups: Target group specs rebuilt from the object, one for a
            service export and one per backend reference for a route.
    """

    deleting: bool = False
    target_groups: List[TargetGroupSpec] = Field(default_factory=list)


class TargetGroupSourceResolver(ABC):
    """Looks up the Kubernetes object recorded in a target group's tags."""

    @abstractmethod
    def resolve(self, tags: TargetGroupTagFields) -> Optional[TargetGroupSource]:
        """Return the current source, or ``None`` if it no longer exists.

        Any other lookup failure should raise; the target group is then kept
        until a later pass can resolve it.
        """


class StaticSourceResolver(TargetGroupSourceResolver):
    """Resolver backed by a fixed mapping, for embedding and tests.

    Keys are ``(source_type, namespace, name)`` where namespace and name are
    the route's for route target groups and the service's for exports.
    """

    def __init__(self, sources: Optional[dict] = None) -> None:
        self.sources = dict(sources or {})

    @staticmethod
    def key_for(tags: TargetGroupTagFields):
        if tags.is_route:
            return (tags.source_type, tags.k8s_route_namespace, tags.k8s_route_name)
        return (tags.source_type, tags.k8s_service_namespace, tags.k8s_service_name)

    def resolve(self, tags: TargetGroupTagFields) -> Optional[TargetGroupSource]:
        return self.sources.get(self.key_for(tags))


class ServiceNetworkUsageResolver(ABC):
    """Answers whether any gateway still declares a service network."""

    @abstractmethod
    def is_in_use(self, name: str) -> bool:
        """True when a gateway that is not being deleted is named ``name``.

        Gateways in every namespace count, so a network shared by gateways of
        the same name outlives the deletion of any one of them.
        """


class StaticUsageResolver(ServiceNetworkUsageResolver):
    """Usage resolver backed by a fixed set of gateway names."""

    def __init__(self, names=None) -> None:
        self.names = set(names or [])

    def is_in_use(self, name: str) -> bool:
        return name in self.names
