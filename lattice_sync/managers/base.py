"""Shared plumbing for resource managers."""

from typing import Optional

from ..cache import ReconciliationCache
from ..cloud.base import NetworkingAPI
from ..cloud.models import RuleAction, ServiceNetworkInfo, WeightedTargetGroup
from ..config import ControllerSettings, get_config
from ..errors import LatticeSyncError
from ..model import ActionSpec, Service, TargetGroupRef
from ..ownership import OwnershipProtocol


class BaseManager:
    """Base class that all resource managers inherit from.

    Holds the remote API, the controller settings, the ownership protocol and
    the cache of the pass the manager was built for. Managers never keep
    state of their own between calls; anything learned during a pass goes
    into ``self.cache``.
    """

    resource_type: str = ""

    def __init__(
        self,
        api: NetworkingAPI,
        settings: Optional[ControllerSettings] = None,
        cache: Optional[ReconciliationCache] = None,
    ) -> None:
        self.api = api
        self.settings = settings or get_config()
        self.cache = cache if cache is not None else ReconciliationCache()
        self.ownership = OwnershipProtocol(api, self.settings)

    def _resolve_service_network(self, name: str) -> ServiceNetworkInfo:
        """Look a service network up by name, preferring what this pass already saw."""
        info = self.cache.get_service_network(name)
        if info is None:
            info = self.api.find_service_network(name)
            self.cache.put_service_network(name, info)
        return info

    def _remote_service_id(self, service: Service) -> str:
        if service.status is not None:
            return service.status.id
        return self.cache.require_service(service.id).id

    def _resolve_target_group_id(self, ref: TargetGroupRef) -> str:
        """Remote id for a weighted target group reference."""
        if ref.lattice_id:
            return ref.lattice_id
        status = self.cache.get_target_group(ref.target_group_id)
        if status is None or not status.id:
            raise LatticeSyncError(
                f"target group {ref.target_group_id} has no remote id yet",
                {"target_group_id": ref.target_group_id},
            )
        return status.id

    def _build_action(self, action: ActionSpec) -> RuleAction:
        """Remote action for ``action``: weighted forward, or a fixed 404 when empty."""
        if not action.target_groups:
            return RuleAction.not_found()
        return RuleAction(
            forward=[
                WeightedTargetGroup(target_group_id=self._resolve_target_group_id(ref), weight=ref.weight)
                for ref in action.target_groups
            ]
        )
