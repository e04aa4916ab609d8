"""Access log subscription and IAM auth policy synthesis."""

from ..logging import get_logger
from ..model import AccessLogSubscription, IAMAuthPolicy, ResourceKind
from .base import BaseSynthesizer

logger = get_logger(__name__)


class AccessLogSubscriptionSynthesizer(BaseSynthesizer):
    kind = ResourceKind.ACCESS_LOG_SUBSCRIPTION

    def synthesize(self) -> None:
        subscriptions = self.stack.list_resources(AccessLogSubscription)
        self._raise_collected(self._for_each(subscriptions, self._synthesize_one))

    def _synthesize_one(self, subscription: AccessLogSubscription):
        if subscription.is_deleted:
            self.manager.delete(subscription)
            return
        subscription.status = self.manager.upsert(subscription)


class IAMAuthPolicySynthesizer(BaseSynthesizer):
    kind = ResourceKind.IAM_AUTH_POLICY

    def synthesize(self) -> None:
        policies = self.stack.list_resources(IAMAuthPolicy)
        self._raise_collected(self._for_each(policies, self._synthesize_one))

    def _synthesize_one(self, policy: IAMAuthPolicy):
        if policy.is_deleted:
            self.manager.delete(policy)
            return
        policy.status = self.manager.put(policy)
