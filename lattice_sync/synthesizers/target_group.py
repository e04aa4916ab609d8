"""
Target group synthesis and collection of unused target groups.

Some changes to a route or service export (a protocol change, for example)
produce a new target group instead of modifying the old one. The old group
then sits in the VPC with no service referencing it; ``synthesize_unused_delete``
finds such groups by their provenance tags and removes the ones whose source
object is gone or no longer builds a matching target group.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..cache import ReconciliationCache
from ..errors import ConflictError, LatticeSyncError
from ..logging import get_logger
from ..managers.target_group import TargetGroupListing
from ..model import ResourceKind, SourceType, Stack, TargetGroup, TargetGroupStatus, TargetGroupTagFields
from ..sources import TargetGroupSourceResolver
from .base import BaseSynthesizer

logger = get_logger(__name__)

STILL_REFERENCED_MESSAGE = "still referenced by a service"


class TargetGroupSynthesizer(BaseSynthesizer):
    kind = ResourceKind.TARGET_GROUP

    def __init__(
        self,
        manager,
        stack: Stack,
        cache: ReconciliationCache,
        resolver: Optional[TargetGroupSourceResolver] = None,
    ) -> None:
        super().__init__(manager, stack, cache)
        self.resolver = resolver

    def synthesize(self) -> None:
        """Create or update every target group not marked deleted."""
        wanted = [tg for tg in self.stack.list_resources(TargetGroup) if not tg.is_deleted]
        logger.debug("Synthesizing target groups", count=len(wanted))
        self._raise_collected(self._for_each(wanted, self._upsert))

    def synthesize_delete(self) -> None:
        """Delete every target group marked deleted."""
        deleted = [tg for tg in self.stack.list_resources(TargetGroup) if tg.is_deleted]
        self._raise_collected(self._for_each(deleted, self.manager.delete, label="delete"))

    def synthesize_unused_delete(self) -> None:
        """Delete unreferenced target groups whose source no longer wants them."""
        if self.resolver is None:
            logger.debug("No target group source resolver, skipping unused target group collection")
            return

        stale = [listing for listing in self.manager.list() if self._should_delete(listing)]
        self._raise_collected(self._for_each(stale, self._delete_unused, label="delete unused"))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _upsert(self, target_group: TargetGroup):
        target_group.status = self.manager.upsert(target_group)

    def _delete_unused(self, listing: TargetGroupListing):
        tg = listing.target_group
        try:
            self.manager.delete_remote(TargetGroupStatus(id=tg.id, arn=tg.arn, name=tg.name))
        except ConflictError as e:
            if STILL_REFERENCED_MESSAGE in str(e).lower():
                logger.info("Target group still referenced, will retry later", arn=tg.arn)
                return
            raise

    def _should_delete(self, listing: TargetGroupListing) -> bool:
        tg = listing.target_group
        settings = self.manager.settings

        if listing.tags is None:
            logger.debug("Ignoring target group without readable tags", arn=tg.arn)
            return False
        if tg.vpc_id != settings.cluster_vpc_id:
            logger.debug("Ignoring target group of another VPC", arn=tg.arn, vpc=tg.vpc_id)
            return False

        fields = TargetGroupTagFields.from_tags(listing.tags)
        if fields.cluster_name != settings.cluster_name:
            logger.debug("Ignoring target group of another cluster", arn=tg.arn, cluster=fields.cluster_name)
            return False
        if (
            fields.source_type in (None, SourceType.INVALID)
            or not fields.k8s_service_name
            or not fields.k8s_service_namespace
            or (fields.is_route and not (fields.k8s_route_name and fields.k8s_route_namespace))
        ):
            logger.info("Ignoring target group with missing provenance tags", arn=tg.arn, name=tg.name)
            return False
        if tg.service_arns:
            logger.debug("Target group is referenced by a service", arn=tg.arn)
            return False

        try:
            source = self.resolver.resolve(fields)
        except LatticeSyncError as e:
            logger.info("Could not resolve target group source, keeping it", arn=tg.arn, error=str(e))
            return False

        if source is None or source.deleting:
            logger.info("Will delete target group, source is gone", arn=tg.arn, name=tg.name)
            return True

        if fields.is_service_export:
            return self._export_out_of_date(listing, source.target_groups)
        return self._route_out_of_date(listing, fields, source.target_groups)

    def _export_out_of_date(self, listing: TargetGroupListing, specs) -> bool:
        tg = listing.target_group
        for spec in specs:
            if (
                spec.port == tg.port
                and spec.protocol == tg.protocol
                and spec.protocol_version == tg.protocol_version
                and spec.ip_address_type == tg.ip_address_type
            ):
                logger.debug("Service export target group is up to date", arn=tg.arn)
                return False
        logger.info("Will delete target group, fields differ from service export", arn=tg.arn, name=tg.name)
        return True

    def _route_out_of_date(self, listing: TargetGroupListing, fields: TargetGroupTagFields, specs) -> bool:
        tg = listing.target_group
        matched = False
        for spec in specs:
            try:
                if self.manager.is_target_group_match(spec, tg, fields):
                    matched = True
                    break
            except LatticeSyncError as e:
                logger.info("Target group comparison failed", arn=tg.arn, error=str(e))
        if not matched:
            logger.info("Will delete target group, no longer built by its route", arn=tg.arn, name=tg.name)
            return True

        # An unreferenced group that still matches is only kept while young.
        min_age = timedelta(seconds=self.manager.settings.tg_gc_min_age_seconds)
        if tg.created_at is not None and datetime.now(timezone.utc) - _aware(tg.created_at) > min_age:
            logger.info("Will delete target group, unreferenced past grace period", arn=tg.arn, name=tg.name)
            return True
        return False


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
