"""Resolution of policy target references to remote resources."""

from pydantic import BaseModel

from ..model import PolicyTargetKind
from ..errors import UnsupportedKindError
from .base import BaseManager


class PolicyTarget(BaseModel):
    """The remote resource a policy is attached to."""

    kind: PolicyTargetKind
    name: str
    id: str
    arn: str


class PolicyManager(BaseManager):
    """Base for managers of policies attached to service networks or services."""

    def _resolve_policy_target(self, kind: PolicyTargetKind, name: str) -> PolicyTarget:
        """Find the remote resource ``kind``/``name``; raises ``NotFoundError`` if absent."""
        if kind == PolicyTargetKind.SERVICE_NETWORK:
            network = self.api.find_service_network(name, self.settings.aws_account_id).network
            return PolicyTarget(kind=kind, name=name, id=network.id, arn=network.arn)
        if kind == PolicyTargetKind.SERVICE:
            service = self.api.find_service(name)
            return PolicyTarget(kind=kind, name=name, id=service.id, arn=service.arn)
        raise UnsupportedKindError(kind, [k.value for k in PolicyTargetKind])
