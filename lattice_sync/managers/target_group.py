"""
Target Group Manager

Target groups have no stable remote identity besides a name with a random
suffix, so every lookup scans the target groups of the VPC and compares the
immutable fields plus the provenance tags. Status handling:

- ``ACTIVE`` is the only state reported back as success.
- ``CREATE_FAILED`` is treated as absent; a new group is created beside it.
- Any in-progress state and ``DELETE_FAILED`` raise ``RetryError``.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from ..cloud.models import HealthCheckConfig, Target, TargetGroupSummary, TargetStatus
from ..cloud.models import TargetGroupStatus as RemoteTargetGroupStatus
from ..errors import LatticeSyncError, NotFoundError, RetryError
from ..logging import get_logger
from ..model import TargetGroup, TargetGroupSpec, TargetGroupStatus, TargetGroupTagFields
from .. import naming
from .base import BaseManager

logger = get_logger(__name__)


def default_health_check(protocol_version: Optional[str]) -> HealthCheckConfig:
    """Health check applied when a target group spec does not carry one.

    Mirrors the service defaults: HTTP ``GET /`` expecting 200, enabled only
    for HTTP1 groups. GRPC groups are health checked over HTTP1. Interval, timeout and
    threshold values of 0 reset them to the service defaults.
    """
    protocol_version = protocol_version or "HTTP1"
    health_check_version = "HTTP1" if protocol_version == "GRPC" else protocol_version
    return HealthCheckConfig(
        enabled=protocol_version == "HTTP1",
        protocol="HTTP",
        protocol_version=health_check_version,
        path="/",
        port=None,
        interval_seconds=0,
        timeout_seconds=0,
        healthy_threshold=0,
        unhealthy_threshold=0,
        matcher="200",
    )


class TargetGroupListing(BaseModel):
    """A target group of the controller's VPC with its tags.

    ``tags`` is ``None`` when they could not be fetched.
    """

    target_group: TargetGroupSummary
    tags: Optional[Dict[str, str]] = None


class TargetGroupManager(BaseManager):
    """Create, update, delete and compare remote target groups."""

    resource_type = "TargetGroup"

    def upsert(self, target_group: TargetGroup) -> TargetGroupStatus:
        spec = target_group.spec
        existing = self._find(spec)
        if existing is None:
            status = self._create(spec)
        else:
            status = self._update(spec, existing)
        self.cache.put_target_group(target_group.id, status)
        return status

    def delete(self, target_group: TargetGroup):
        """Deregister every target and delete the group.

        Raises ``RetryError`` without touching anything while a target is
        still in use.
        """
        status = target_group.status
        if status is None or not status.id:
            existing = self._find(target_group.spec)
            if existing is None:
                logger.info("Target group does not exist, nothing to delete",
                            prefix=naming.tg_name_prefix(target_group.spec, self.settings.long_tg_names))
                return
            status = TargetGroupStatus(id=existing.id, arn=existing.arn, name=existing.name)
            target_group.status = status
        self.delete_remote(status)

    def delete_remote(self, status: TargetGroupStatus):
        """Delete a remote target group identified only by its status."""
        try:
            targets = self.api.list_targets(status.id)
        except NotFoundError:
            logger.debug("Target group already deleted", id=status.id)
            return

        in_use = [t for t in targets if t.status != TargetStatus.UNUSED]
        if in_use:
            raise RetryError(
                "target group still has targets in use",
                target_group=status.id,
                count=len(in_use),
                statuses=sorted({str(t.status) for t in in_use}),
            )

        if targets:
            result = self.api.deregister_targets(status.id, [Target(id=t.id, port=t.port) for t in targets])
            if result.unsuccessful:
                raise RetryError(
                    "failed to deregister targets",
                    target_group=status.id,
                    unsuccessful=len(result.unsuccessful),
                    message=result.unsuccessful[0].failure_message,
                )
            logger.info("Deregistered targets", target_group=status.id, count=len(targets))

        try:
            self.api.delete_target_group(status.id)
        except NotFoundError:
            logger.info("Target group already deleted", id=status.id)
            return
        logger.info("Deleted target group", id=status.id, name=status.name)

    def get(self, target_group_id: str) -> TargetGroupSummary:
        return self.api.get_target_group(target_group_id)

    def list(self) -> List[TargetGroupListing]:
        """Every target group in the controller's VPC, with tags where readable."""
        listings = []
        for summary in self.api.list_target_groups(vpc_id=self.settings.cluster_vpc_id):
            try:
                detail = self.api.get_target_group(summary.id)
            except NotFoundError:
                continue
            if detail.vpc_id != self.settings.cluster_vpc_id:
                continue
            try:
                tags = self.api.list_tags(detail.arn)
            except LatticeSyncError as e:
                logger.info("Failed to list target group tags", arn=detail.arn, error=str(e))
                tags = None
            listings.append(TargetGroupListing(target_group=detail, tags=tags))
        return listings

    def is_target_group_match(
        self,
        spec: TargetGroupSpec,
        remote: TargetGroupSummary,
        tag_fields: Optional[TargetGroupTagFields] = None,
    ) -> bool:
        """True when ``remote`` is the target group ``spec`` describes.

        Tags are fetched when ``tag_fields`` is not given. The protocol
        version is only known after a get, so it is checked last.
        """
        if (
            remote.port != spec.port
            or remote.protocol != spec.protocol
            or remote.ip_address_type != spec.ip_address_type
            or remote.type != spec.type
            or remote.vpc_id != spec.vpc_id
        ):
            return False

        if tag_fields is None:
            try:
                tag_fields = TargetGroupTagFields.from_tags(self.api.list_tags(remote.arn))
            except NotFoundError:
                return False
        if tag_fields != spec.tags:
            return False

        protocol_version = remote.protocol_version
        if protocol_version is None:
            protocol_version = self.api.get_target_group(remote.id).protocol_version
        return protocol_version == spec.protocol_version

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, spec: TargetGroupSpec) -> Optional[TargetGroupSummary]:
        for remote in self.api.list_target_groups(vpc_id=spec.vpc_id):
            if remote.status == RemoteTargetGroupStatus.CREATE_FAILED:
                continue
            if not self.is_target_group_match(spec, remote):
                continue
            if remote.status == RemoteTargetGroupStatus.ACTIVE:
                logger.debug("Target group already exists", name=remote.name, arn=remote.arn)
                return remote
            raise RetryError("target group is not active", name=remote.name, status=remote.status)
        return None

    def _create(self, spec: TargetGroupSpec) -> TargetGroupStatus:
        name = naming.generate_tg_name(spec, self.settings.long_tg_names)
        tags = self.ownership.default_tags(spec.tags.to_tags())
        logger.info("Creating target group", name=name, port=spec.port, protocol=spec.protocol,
                    protocol_version=spec.protocol_version)
        created = self.api.create_target_group(
            name,
            spec.type,
            spec.port,
            spec.protocol,
            spec.protocol_version,
            spec.ip_address_type or None,
            spec.vpc_id,
            spec.health_check or default_health_check(spec.protocol_version),
            tags,
        )
        if created.status != RemoteTargetGroupStatus.ACTIVE:
            raise RetryError("target group is not active yet", name=created.name, status=created.status)
        return TargetGroupStatus(id=created.id, arn=created.arn, name=created.name)

    def _update(self, spec: TargetGroupSpec, existing: TargetGroupSummary) -> TargetGroupStatus:
        desired = spec.health_check or default_health_check(spec.protocol_version)
        current = existing.health_check
        if current is None:
            current = self.api.get_target_group(existing.id).health_check
        if current != desired:
            logger.info("Updating target group health check", id=existing.id, name=existing.name)
            self.api.update_target_group(existing.id, desired)
        return TargetGroupStatus(id=existing.id, arn=existing.arn, name=existing.name)
