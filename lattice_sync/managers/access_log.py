"""Access log subscriptions on service networks and services."""

from typing import Optional

from ..cloud.models import AccessLogSubscriptionSummary
from ..errors import ConflictError, InvalidError, NotFoundError
from ..logging import get_logger
from ..model import AccessLogSubscription, PolicyStatus
from ..ownership import is_managed
from .policy import PolicyManager, PolicyTarget

logger = get_logger(__name__)

ACCESS_LOG_POLICY_TAG = "application-networking.k8s.aws/AccessLogPolicy"

_TARGET_RESOURCE_TYPES = ("SERVICE_NETWORK", "SERVICE")


def destination_service(arn: str) -> str:
    """Service segment of a destination ARN (``s3``, ``logs`` or ``firehose``)."""
    parts = arn.split(":", 5)
    return parts[2] if len(parts) == 6 else ""


class AccessLogSubscriptionManager(PolicyManager):
    """Creates, retargets and deletes access log subscriptions.

    Subscriptions created here carry ``ACCESS_LOG_POLICY_TAG`` set to the
    desired resource id, which is how a retried create recognizes its own
    subscription.
    """

    resource_type = "AccessLogSubscription"

    def upsert(self, subscription: AccessLogSubscription) -> PolicyStatus:
        """Create the subscription or move ours to the desired destination."""
        target = self._resolve_policy_target(subscription.target_kind, subscription.target_name)
        existing = self._find_own(target, subscription)
        if existing is None:
            return self._create(target, subscription)
        if existing.destination_arn == subscription.destination_arn:
            logger.debug("Access log subscription up to date", arn=existing.arn)
            return self._status(target, existing)
        subscription.status = self._status(target, existing)
        return self.update(subscription)

    def create(self, subscription: AccessLogSubscription) -> PolicyStatus:
        target = self._resolve_policy_target(subscription.target_kind, subscription.target_name)
        return self._create(target, subscription)

    def update(self, subscription: AccessLogSubscription) -> PolicyStatus:
        """Point an existing subscription at a new destination.

        The destination type of a subscription cannot change remotely, so a
        move between types is done as delete then create.
        """
        target = self._resolve_policy_target(subscription.target_kind, subscription.target_name)
        status = subscription.status
        if status is None or not status.id:
            return self.upsert(subscription)

        current = self._find_by_id(target, status.id)
        if current is None:
            return self._create(target, subscription)
        if destination_service(current.destination_arn) != destination_service(subscription.destination_arn):
            logger.info("Replacing access log subscription", arn=current.arn,
                        destination=subscription.destination_arn)
            self._delete_remote(current.id)
            return self._create(target, subscription)

        logger.info("Updating access log subscription destination", arn=current.arn,
                    destination=subscription.destination_arn)
        try:
            updated = self.api.update_access_log_subscription(current.id, subscription.destination_arn)
        except NotFoundError as e:
            raise self._translate_not_found(subscription, e) from e
        return self._status(target, updated)

    def delete(self, subscription: AccessLogSubscription):
        status = subscription.status
        if status is None or not status.id:
            try:
                target = self._resolve_policy_target(subscription.target_kind, subscription.target_name)
            except NotFoundError:
                logger.debug("Access log target already gone", target=subscription.target_name)
                return
            existing = self._find_own(target, subscription)
            if existing is None:
                return
            subscription_id = existing.id
        else:
            subscription_id = status.id
        self._delete_remote(subscription_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create(self, target: PolicyTarget, subscription: AccessLogSubscription) -> PolicyStatus:
        tags = self.ownership.default_tags({ACCESS_LOG_POLICY_TAG: subscription.id})
        logger.info("Creating access log subscription", target=target.arn,
                    destination=subscription.destination_arn)
        try:
            created = self.api.create_access_log_subscription(target.id, subscription.destination_arn, tags)
        except NotFoundError as e:
            raise self._translate_not_found(subscription, e) from e
        except ConflictError:
            existing = self._find_own(target, subscription)
            if existing is not None and existing.destination_arn == subscription.destination_arn:
                logger.debug("Access log subscription already created", arn=existing.arn)
                return self._status(target, existing)
            raise
        return self._status(target, created)

    def _delete_remote(self, subscription_id: str):
        try:
            self.api.delete_access_log_subscription(subscription_id)
        except NotFoundError:
            logger.debug("Access log subscription already deleted", id=subscription_id)
            return
        logger.info("Deleted access log subscription", id=subscription_id)

    def _find_own(
        self, target: PolicyTarget, subscription: AccessLogSubscription
    ) -> Optional[AccessLogSubscriptionSummary]:
        for existing in self.api.list_access_log_subscriptions(target.id):
            tags = self.api.list_tags(existing.arn)
            if tags.get(ACCESS_LOG_POLICY_TAG) == subscription.id and is_managed(tags, self.ownership.managed_by):
                return existing
        return None

    def _find_by_id(self, target: PolicyTarget, subscription_id: str) -> Optional[AccessLogSubscriptionSummary]:
        for existing in self.api.list_access_log_subscriptions(target.id):
            if existing.id == subscription_id:
                return existing
        return None

    @staticmethod
    def _translate_not_found(subscription: AccessLogSubscription, err: NotFoundError):
        """A missing policy target stays NotFound; a missing destination is invalid input."""
        if err.resource_type in _TARGET_RESOURCE_TYPES:
            return NotFoundError(subscription.target_kind.value, subscription.target_name)
        return InvalidError(f"destination {subscription.destination_arn} not found")

    @staticmethod
    def _status(target: PolicyTarget, summary: AccessLogSubscriptionSummary) -> PolicyStatus:
        return PolicyStatus(resource_id=target.id, id=summary.id, arn=summary.arn)
