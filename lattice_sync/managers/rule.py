"""
Rule convergence: match-equivalence, priority allocation and batch re-priority.

A desired rule is matched to a remote one purely by its match predicates.
When nothing matches, the rule is created in the first free priority slot of
the listener; the desired ordering is applied afterwards in one batch call so
a priority-only change never forces a rule to be rebuilt.
"""

from typing import List, Optional

from ..cloud.models import HeaderMatch, HttpMatch, PathMatch, RuleAction, RuleDetail, RuleSummary, RuleUpdate
from ..errors import LatticeSyncError, RetryError
from ..logging import get_logger
from ..model import MAX_RULE_PRIORITY, MIN_RULE_PRIORITY, Listener, MatchSpec, Rule, RuleStatus, Service
from .. import naming
from .base import BaseManager

logger = get_logger(__name__)


def build_http_match(spec: MatchSpec) -> HttpMatch:
    """Remote match for a desired ``MatchSpec``.

    Paths match case-sensitively and header names case-insensitively, which
    is what Gateway API requires of both.
    """
    path = None
    if spec.path_exact is not None:
        path = PathMatch(exact=spec.path_exact, case_sensitive=True)
    elif spec.path_prefix is not None:
        path = PathMatch(prefix=spec.path_prefix, case_sensitive=True)
    headers = [HeaderMatch(name=h.name, exact=h.value, case_sensitive=False) for h in spec.headers]
    return HttpMatch(method=spec.method, path=path, headers=headers)


def _path_key(path: Optional[PathMatch]):
    if path is None or (path.exact is None and path.prefix is None):
        return None
    return (path.exact, path.prefix, path.case_sensitive)


def _header_key(header: HeaderMatch):
    return (header.name.lower(), header.exact)


def is_match_equal(desired: Optional[HttpMatch], remote: Optional[HttpMatch]) -> bool:
    """True when two matches select the same requests.

    Method, exact path, prefix path and the header set must all agree.
    Headers are compared by membership, so their order does not matter; a
    missing header list and an empty one are the same.
    """
    desired = desired or HttpMatch()
    remote = remote or HttpMatch()
    if (desired.method or None) != (remote.method or None):
        return False
    if _path_key(desired.path) != _path_key(remote.path):
        return False
    if len(desired.headers) != len(remote.headers):
        return False
    remote_headers = [_header_key(h) for h in remote.headers]
    return all(_header_key(h) in remote_headers for h in desired.headers)


def is_action_equal(desired: Optional[RuleAction], remote: Optional[RuleAction]) -> bool:
    """True when both actions forward to the same weighted target groups,
    or return the same fixed response."""
    desired = desired or RuleAction()
    remote = remote or RuleAction()
    if desired.forward or remote.forward:
        wanted = {(tg.target_group_id, tg.weight) for tg in desired.forward}
        current = {(tg.target_group_id, tg.weight) for tg in remote.forward}
        return len(desired.forward) == len(remote.forward) and wanted == current
    return desired.fixed_response_status == remote.fixed_response_status


def next_available_priority(rules: List[RuleSummary]) -> int:
    """Lowest priority slot not taken by a non-default rule.

    Raises ``RetryError`` once every slot in 1..99 is in use.
    """
    taken = {r.priority for r in rules if not r.is_default}
    for priority in range(MIN_RULE_PRIORITY, MAX_RULE_PRIORITY + 1):
        if priority not in taken:
            return priority
    raise RetryError("no available priorities", used=len(taken))


class RuleManager(BaseManager):
    """Creates, updates in place, re-prioritizes and deletes listener rules."""

    resource_type = "Rule"

    def upsert(self, rule: Rule, listener: Listener, service: Service) -> RuleStatus:
        """Converge ``rule`` on its listener and return its remote status.

        ``status.update_priority_needed`` is set when the rule ended up in a
        different slot than the one its id asks for.
        """
        desired_priority = rule.priority
        service_id = self._remote_service_id(service)
        listener_id = self._remote_listener_id(listener)

        match = build_http_match(rule.match)
        action = self._build_action(rule.action)
        current = self.api.get_rules(service_id, listener_id)

        existing = None
        for candidate in current:
            if candidate.is_default:
                continue
            if is_match_equal(match, candidate.match):
                existing = candidate
                break

        if existing is None:
            status = self._create(rule, match, action, current, service_id, listener_id)
        else:
            status = self._update_if_needed(existing, match, action, service_id, listener_id)

        status.update_priority_needed = status.priority != desired_priority
        return status

    def update_priorities(self, service_id: str, listener_id: str, rules: List[Rule]):
        """Move every rule into the slot its id asks for, in one remote call."""
        updates = []
        for rule in rules:
            if rule.status is None:
                raise LatticeSyncError(f"rule {rule.id} has not been synthesized", {"rule": rule.id})
            updates.append(RuleUpdate(rule_id=rule.status.id, priority=rule.priority))
        if not updates:
            return

        logger.info("Updating rule priorities", service=service_id, listener=listener_id, count=len(updates))
        self.api.batch_update_rules(service_id, listener_id, updates)

    def delete(self, rule_id: str, listener_id: str, service_id: str):
        logger.info("Deleting rule", service=service_id, listener=listener_id, rule=rule_id)
        self.api.delete_rule(service_id, listener_id, rule_id)

    def list(self, service_id: str, listener_id: str) -> List[RuleSummary]:
        return self.api.list_rules(service_id, listener_id)

    def get(self, service_id: str, listener_id: str, rule_id: str) -> RuleDetail:
        return self.api.get_rule(service_id, listener_id, rule_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _remote_listener_id(self, listener: Listener) -> str:
        if listener.status is not None:
            return listener.status.id
        return self.cache.require_listener(listener.id).id

    def _create(
        self,
        rule: Rule,
        match: HttpMatch,
        action: RuleAction,
        current: List[RuleDetail],
        service_id: str,
        listener_id: str,
    ) -> RuleStatus:
        # Any free slot will do; update_priorities reorders once all rules exist.
        priority = next_available_priority(current)
        name = naming.rule_name(rule.create_time, rule.priority)
        logger.info("Creating rule", service=service_id, listener=listener_id, name=name, priority=priority)
        created = self.api.create_rule(
            service_id, listener_id, name, priority, match, action, self.ownership.default_tags()
        )
        return RuleStatus(
            id=created.id,
            arn=created.arn,
            name=created.name,
            priority=created.priority,
            listener_id=listener_id,
            service_id=service_id,
        )

    def _update_if_needed(
        self,
        existing: RuleDetail,
        match: HttpMatch,
        action: RuleAction,
        service_id: str,
        listener_id: str,
    ) -> RuleStatus:
        status = RuleStatus(
            id=existing.id,
            arn=existing.arn,
            name=existing.name,
            priority=existing.priority,
            listener_id=listener_id,
            service_id=service_id,
        )
        if is_action_equal(action, existing.action):
            logger.debug("Rule unchanged", rule=existing.id, priority=existing.priority)
            return status

        # Keep the existing slot so the update cannot collide with another rule.
        try:
            self.api.update_rule(service_id, listener_id, existing.id, existing.priority, match, action)
        except LatticeSyncError as e:
            logger.warning("Failed to update rule action", rule=existing.id, error=str(e))
            return status
        logger.info("Updated rule action", rule=existing.id, priority=existing.priority)
        return status
