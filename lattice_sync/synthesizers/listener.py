"""Listener synthesis, including removal of listeners no longer desired."""

from typing import List

from ..logging import get_logger
from ..model import Listener, ResourceKind, Service
from .base import BaseSynthesizer

logger = get_logger(__name__)


class ListenerSynthesizer(BaseSynthesizer):
    kind = ResourceKind.LISTENER

    def synthesize(self) -> None:
        listeners = self.stack.list_resources(Listener)
        logger.debug("Synthesizing listeners", count=len(listeners))
        errors = self._for_each(listeners, self._synthesize_one)
        errors += self._for_each(self._live_services(), self._delete_stale, label="delete stale")
        self._raise_collected(errors)

    def _synthesize_one(self, listener: Listener):
        service = self.stack.get(Service, listener.service_id)
        if service.is_deleted:
            return
        listener.status = self.manager.upsert(listener, service)

    def _live_services(self) -> List[Service]:
        return [
            s for s in self.stack.list_resources(Service)
            if not s.is_deleted and self.cache.get_service(s.id) is not None
        ]

    def _delete_stale(self, service: Service):
        service_id = self.cache.require_service(service.id).id
        desired = {
            (l.port, l.protocol)
            for l in self.stack.list_resources(Listener)
            if l.service_id == service.id
        }
        converged = {s.id for s in self.cache.listeners_for_service(service_id)}
        for remote in self.manager.list(service_id):
            if remote.id in converged or (remote.port, remote.protocol) in desired:
                continue
            if not self.manager.ownership.is_arn_managed(remote.arn):
                logger.info("Listener not owned by controller, skipping deletion",
                            service=service_id, listener=remote.id)
                continue
            logger.info("Deleting listener no longer desired", service=service_id, listener=remote.id,
                        port=remote.port, protocol=remote.protocol)
            self.manager.delete(remote.id, service_id)
