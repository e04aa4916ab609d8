"""
Per-pass Reconciliation Cache

Remote identities resolved earlier in a pass (a service network's id, a
listener's id, a target group's id) are recorded here so later synthesizers
can look them up without going back to the remote API. One cache is built
per pass and dropped at the end of it; nothing survives between passes.
"""

import threading
from typing import Dict, List, Optional

from .cloud.models import ListenerSummary, ServiceNetworkInfo
from .errors import NotFoundError
from .model import ListenerStatus, ServiceStatus, TargetGroupStatus


class ReconciliationCache:
    """Lock-guarded index of remote identities resolved during one pass."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._service_networks: Dict[str, ServiceNetworkInfo] = {}
        self._services: Dict[str, ServiceStatus] = {}
        self._listeners: Dict[str, ListenerStatus] = {}
        self._target_groups: Dict[str, TargetGroupStatus] = {}
        self._remote_listeners: Dict[str, List[ListenerSummary]] = {}

    # ------------------------------------------------------------------
    # Service networks (keyed by name)
    # ------------------------------------------------------------------

    def put_service_network(self, name: str, info: ServiceNetworkInfo):
        with self._lock:
            self._service_networks[name] = info

    def get_service_network(self, name: str) -> Optional[ServiceNetworkInfo]:
        with self._lock:
            return self._service_networks.get(name)

    # ------------------------------------------------------------------
    # Services, listeners and target groups (keyed by stack id)
    # ------------------------------------------------------------------

    def put_service(self, resource_id: str, status: ServiceStatus):
        with self._lock:
            self._services[resource_id] = status

    def get_service(self, resource_id: str) -> Optional[ServiceStatus]:
        with self._lock:
            return self._services.get(resource_id)

    def require_service(self, resource_id: str) -> ServiceStatus:
        status = self.get_service(resource_id)
        if status is None:
            raise NotFoundError("Service", resource_id, source="reconciliation cache")
        return status

    def put_listener(self, resource_id: str, status: ListenerStatus):
        with self._lock:
            self._listeners[resource_id] = status

    def get_listener(self, resource_id: str) -> Optional[ListenerStatus]:
        with self._lock:
            return self._listeners.get(resource_id)

    def require_listener(self, resource_id: str) -> ListenerStatus:
        status = self.get_listener(resource_id)
        if status is None:
            raise NotFoundError("Listener", resource_id, source="reconciliation cache")
        return status

    def listeners_for_service(self, service_id: str) -> List[ListenerStatus]:
        """Listeners recorded this pass whose remote service id is ``service_id``."""
        with self._lock:
            return [s for s in self._listeners.values() if s.service_id == service_id]

    def put_target_group(self, resource_id: str, status: TargetGroupStatus):
        with self._lock:
            self._target_groups[resource_id] = status

    def get_target_group(self, resource_id: str) -> Optional[TargetGroupStatus]:
        with self._lock:
            return self._target_groups.get(resource_id)

    def require_target_group(self, resource_id: str) -> TargetGroupStatus:
        status = self.get_target_group(resource_id)
        if status is None:
            raise NotFoundError("TargetGroup", resource_id, source="reconciliation cache")
        return status

    # ------------------------------------------------------------------
    # Remote listener listings (keyed by remote service id)
    # ------------------------------------------------------------------

    def put_remote_listeners(self, service_id: str, listeners: List[ListenerSummary]):
        with self._lock:
            self._remote_listeners[service_id] = list(listeners)

    def get_remote_listeners(self, service_id: str) -> Optional[List[ListenerSummary]]:
        with self._lock:
            listeners = self._remote_listeners.get(service_id)
            return list(listeners) if listeners is not None else None

    def forget_remote_listeners(self, service_id: str):
        with self._lock:
            self._remote_listeners.pop(service_id, None)

    def clear(self):
        with self._lock:
            self._service_networks.clear()
            self._services.clear()
            self._listeners.clear()
            self._target_groups.clear()
            self._remote_listeners.clear()

    def __len__(self) -> int:
        with self._lock:
            return (
                len(self._service_networks)
                + len(self._services)
                + len(self._listeners)
                + len(self._target_groups)
            )
