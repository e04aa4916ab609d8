"""Target registration diffing."""

from ..cloud.models import Target
from ..errors import ConfigurationError, RetryError
from ..logging import get_logger
from ..model import TargetGroup, Targets
from .base import BaseManager

logger = get_logger(__name__)


class TargetsManager(BaseManager):
    """Makes a target group's registrations equal the desired (ip, port) set."""

    resource_type = "Targets"

    def update(self, targets: Targets, target_group: TargetGroup):
        """Deregister stale targets, then register the missing ones.

        Raises ``RetryError`` if the remote side rejects any registration.
        """
        if targets.target_group_id != target_group.id:
            raise ConfigurationError(
                "targets.target_group_id", targets.target_group_id, f"target group {target_group.id}"
            )
        status = target_group.status or self.cache.require_target_group(target_group.id)
        tg_id = status.id

        desired = {(t.ip, t.port) for t in targets.targets}
        remote = {t.key() for t in self.api.list_targets(tg_id)}

        stale = sorted(remote - desired)
        if stale:
            result = self.api.deregister_targets(tg_id, [Target(id=ip, port=port) for ip, port in stale])
            if result.unsuccessful:
                logger.warning("Some stale targets failed to deregister",
                               target_group=tg_id, unsuccessful=len(result.unsuccessful))
            else:
                logger.info("Deregistered stale targets", target_group=tg_id, count=len(stale))

        missing = sorted(desired - remote)
        if not missing:
            logger.debug("Targets up to date", target_group=tg_id, count=len(desired))
            return

        result = self.api.register_targets(tg_id, [Target(id=ip, port=port) for ip, port in missing])
        if result.unsuccessful:
            raise RetryError(
                "failed to register targets",
                target_group=tg_id,
                unsuccessful=len(result.unsuccessful),
            )
        logger.info("Registered targets", target_group=tg_id, count=len(result.successful))
