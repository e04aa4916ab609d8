"""
Rule synthesis.

Rules are first converged one by one, each landing in whatever priority slot
was free. Remote rules of the stack's listeners that match no desired rule
are then deleted, and finally each listener whose rules are out of order gets
one batch priority update.
"""

from collections import OrderedDict
from typing import Dict, List, Set, Tuple

from ..errors import LatticeSyncError
from ..logging import get_logger
from ..model import Listener, ResourceKind, Rule, Service
from .base import BaseSynthesizer

logger = get_logger(__name__)

ListenerKey = Tuple[str, str]


class RuleSynthesizer(BaseSynthesizer):
    kind = ResourceKind.RULE

    def synthesize(self) -> None:
        rules = self.stack.list_resources(Rule)
        logger.debug("Synthesizing rules", count=len(rules))

        by_listener: Dict[ListenerKey, List[Rule]] = OrderedDict()
        failed: Set[ListenerKey] = set()
        reorder: Set[ListenerKey] = set()

        def converge(rule: Rule):
            listener = self.stack.get(Listener, rule.listener_id)
            service = self.stack.get(Service, listener.service_id)
            if service.is_deleted:
                return
            key = self._listener_key(listener)
            by_listener.setdefault(key, []).append(rule)
            try:
                rule.status = self.manager.upsert(rule, listener, service)
            except LatticeSyncError:
                failed.add(key)
                raise
            if rule.status.update_priority_needed:
                reorder.add(key)

        errors = self._for_each(rules, converge)

        # Deleting or reordering next to a rule that failed could evict it.
        settled = [key for key in self._stack_listener_keys() if key not in failed]
        errors += self._for_each(
            settled,
            lambda key: self._delete_stale(key, by_listener.get(key, [])),
            label="delete stale",
        )
        errors += self._for_each(
            [key for key in settled if key in reorder],
            lambda key: self.manager.update_priorities(key[0], key[1], by_listener[key]),
            label="update priorities",
        )
        self._raise_collected(errors)

    def _listener_key(self, listener: Listener) -> ListenerKey:
        status = listener.status or self.cache.require_listener(listener.id)
        return (status.service_id, status.id)

    def _stack_listener_keys(self) -> List[ListenerKey]:
        """Remote (service id, listener id) of every listener converged this pass."""
        keys = []
        for listener in self.stack.list_resources(Listener):
            status = listener.status or self.cache.get_listener(listener.id)
            if status is not None:
                keys.append((status.service_id, status.id))
        return keys

    def _delete_stale(self, key: ListenerKey, desired: List[Rule]):
        service_id, listener_id = key
        keep = {rule.status.id for rule in desired if rule.status is not None}
        for remote in self.manager.list(service_id, listener_id):
            if remote.is_default or remote.id in keep:
                continue
            if not self.manager.ownership.is_arn_managed(remote.arn):
                logger.info("Rule not owned by controller, skipping deletion",
                            listener=listener_id, rule=remote.id)
                continue
            logger.info("Deleting rule no longer desired", service=service_id, listener=listener_id,
                        rule=remote.id, priority=remote.priority)
            self.manager.delete(remote.id, listener_id, service_id)
