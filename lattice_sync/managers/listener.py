"""Listener convergence keyed by (port, protocol)."""

from typing import List

from ..cloud.models import ListenerSummary, RuleAction
from ..errors import NotFoundError
from ..logging import get_logger
from ..model import Listener, ListenerStatus, Service
from .. import naming
from .base import BaseManager

logger = get_logger(__name__)


class ListenerManager(BaseManager):
    """Finds or creates listeners; they have no update path once created."""

    resource_type = "Listener"

    def upsert(self, listener: Listener, service: Service) -> ListenerStatus:
        service_id = self._remote_service_id(service)
        for existing in self.list(service_id):
            if existing.port == listener.port and existing.protocol == listener.protocol:
                logger.debug("Listener already exists", service=service_id, listener=existing.id,
                             port=listener.port, protocol=listener.protocol)
                return self._remember(listener, existing, service_id)

        name = naming.listener_name(service.name, service.namespace, listener.port, listener.protocol)
        logger.info("Creating listener", service=service_id, name=name,
                    port=listener.port, protocol=listener.protocol)
        created = self.api.create_listener(
            service_id,
            name,
            listener.port,
            listener.protocol,
            self._default_action(listener),
            self.ownership.default_tags(),
        )
        self.cache.forget_remote_listeners(service_id)
        return self._remember(listener, created, service_id)

    def delete(self, listener_id: str, service_id: str):
        logger.info("Deleting listener", service=service_id, listener=listener_id)
        try:
            self.api.delete_listener(service_id, listener_id)
        except NotFoundError:
            logger.debug("Listener already gone", service=service_id, listener=listener_id)
        self.cache.forget_remote_listeners(service_id)

    def list(self, service_id: str) -> List[ListenerSummary]:
        """Remote listeners of a service, listed at most once per pass."""
        listeners = self.cache.get_remote_listeners(service_id)
        if listeners is None:
            listeners = self.api.list_listeners(service_id)
            self.cache.put_remote_listeners(service_id, listeners)
        return listeners

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _default_action(self, listener: Listener) -> RuleAction:
        """Fixed 404 unless TLS passthrough, which can only forward."""
        if listener.protocol == "TLS_PASSTHROUGH" and listener.default_action.target_groups:
            return self._build_action(listener.default_action)
        return RuleAction.not_found()

    def _remember(self, listener: Listener, summary: ListenerSummary, service_id: str) -> ListenerStatus:
        status = ListenerStatus(id=summary.id, arn=summary.arn, name=summary.name, service_id=service_id)
        self.cache.put_listener(listener.id, status)
        return status
