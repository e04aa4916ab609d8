"""IAM auth policies on service networks and services."""

from typing import Optional

from ..cloud.models import AuthPolicy
from ..errors import NotFoundError, UnsupportedKindError
from ..logging import get_logger
from ..model import IAMAuthPolicy, PolicyStatus, PolicyTargetKind
from .policy import PolicyManager, PolicyTarget

logger = get_logger(__name__)

AUTH_TYPE_IAM = "AWS_IAM"
AUTH_TYPE_NONE = "NONE"
POLICY_STATE_ACTIVE = "Active"


class IAMAuthPolicyManager(PolicyManager):
    """Writes and removes auth policies, switching the target's auth type with them."""

    resource_type = "IAMAuthPolicy"

    def put(self, policy: IAMAuthPolicy) -> PolicyStatus:
        target = self._resolve_policy_target(policy.target_kind, policy.target_name)
        current = self._current(target)
        if current is not None and current.policy == policy.policy and current.state == POLICY_STATE_ACTIVE:
            logger.debug("Auth policy up to date", target=target.arn)
            return PolicyStatus(resource_id=target.id, state=current.state)

        self._set_auth_type(target, AUTH_TYPE_IAM)
        logger.info("Putting auth policy", target=target.arn, kind=target.kind.value)
        result = self.api.put_auth_policy(target.id, policy.policy)
        return PolicyStatus(resource_id=target.id, state=result.state)

    def delete(self, policy: IAMAuthPolicy):
        try:
            target = self._resolve_policy_target(policy.target_kind, policy.target_name)
        except NotFoundError:
            logger.debug("Auth policy target already gone", target=policy.target_name)
            return
        self._set_auth_type(target, AUTH_TYPE_NONE)
        try:
            self.api.delete_auth_policy(target.id)
        except NotFoundError:
            logger.debug("Auth policy already deleted", target=target.arn)
            return
        logger.info("Deleted auth policy", target=target.arn)

    def _current(self, target: PolicyTarget) -> Optional[AuthPolicy]:
        try:
            return self.api.get_auth_policy(target.id)
        except NotFoundError:
            return None

    def _set_auth_type(self, target: PolicyTarget, auth_type: str):
        if target.kind == PolicyTargetKind.SERVICE_NETWORK:
            self.api.update_service_network_auth_type(target.id, auth_type)
        elif target.kind == PolicyTargetKind.SERVICE:
            self.api.update_service(target.id, auth_type=auth_type)
        else:
            raise UnsupportedKindError(target.kind, [k.value for k in PolicyTargetKind])
