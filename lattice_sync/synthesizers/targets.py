"""Targets synthesis."""

from ..logging import get_logger
from ..model import ResourceKind, TargetGroup, Targets
from .base import BaseSynthesizer

logger = get_logger(__name__)


class TargetsSynthesizer(BaseSynthesizer):
    kind = ResourceKind.TARGETS

    def synthesize(self) -> None:
        all_targets = self.stack.list_resources(Targets)
        logger.debug("Synthesizing targets", count=len(all_targets))
        self._raise_collected(self._for_each(all_targets, self._synthesize_one))

    def _synthesize_one(self, targets: Targets):
        target_group = self.stack.get(TargetGroup, targets.target_group_id)
        if target_group.is_deleted:
            logger.debug("Skipping targets of deleted target group", target_group=target_group.id)
            return
        self.manager.update(targets, target_group)
