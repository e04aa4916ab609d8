"""
Ownership and Tagging Protocol

Every resource the controller creates is tagged with ``MANAGED_BY_TAG`` set to
``"{account}/{cluster}/{vpc}"``. Mutating or deleting a pre-existing remote
resource is only allowed when that tag matches this controller. Resources
shared in from another account (RAM) are never mutated.

The ownership answer is read from the remote tags on every call and never
cached, since other tools and controllers may change it between passes.
"""

from enum import Enum
from typing import Dict, Optional

from .config import ControllerSettings
from .errors import InvalidError
from .logging import get_logger

logger = get_logger(__name__)

MANAGED_BY_TAG = "application-networking.k8s.aws/ManagedBy"
OWNED_BY_VPC_TAG = "K8SServiceNetworkOwnedByVPC"


class Ownership(str, Enum):
    """Where a remote resource lives relative to the controller's account."""

    LOCAL = "local"
    SHARED = "shared"


def default_tags(settings: ControllerSettings) -> Dict[str, str]:
    """Tags applied to every resource this controller creates."""
    return {MANAGED_BY_TAG: settings.managed_by}


def is_managed(tags: Optional[Dict[str, str]], managed_by: str) -> bool:
    return bool(tags) and tags.get(MANAGED_BY_TAG) == managed_by


def account_from_arn(arn: Optional[str]) -> str:
    """Return the account segment of an ARN.

    ``arn:partition:service:region:account:resource``. Raises ``InvalidError``
    for a missing or malformed ARN.
    """
    if arn is None:
        raise InvalidError("ARN is nil")
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn" or not parts[2] or not parts[5]:
        raise InvalidError(f"failed to parse ARN {arn!r}")
    return parts[4]


def classify_ownership(arn: Optional[str], account_id: str) -> Ownership:
    """Classify ``arn`` as local to ``account_id`` or shared in from elsewhere."""
    if account_from_arn(arn) == account_id:
        return Ownership.LOCAL
    return Ownership.SHARED


class OwnershipProtocol:
    """Answers "is this remote resource mine?" against live tags.

    Parameters
    ----------
    api:
        A ``NetworkingAPI`` used to read and write tags.
    settings:
        Controller identity; ``settings.managed_by`` is the tag value.
    """

    def __init__(self, api, settings: ControllerSettings) -> None:
        self.api = api
        self.settings = settings

    @property
    def managed_by(self) -> str:
        return self.settings.managed_by

    def default_tags(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        tags = dict(extra or {})
        tags.update(default_tags(self.settings))
        return tags

    def classify(self, arn: Optional[str]) -> Ownership:
        return classify_ownership(arn, self.settings.aws_account_id)

    def tags(self, arn: str) -> Dict[str, str]:
        return self.api.list_tags(arn)

    def is_arn_managed(self, arn: str) -> bool:
        return is_managed(self.tags(arn), self.managed_by)

    def check_and_acquire_ownership(self, arn: str) -> bool:
        """Return True if the resource is ours, claiming it if nobody has.

        A resource without any management tag (for example one created by an
        older controller release) is tagged and treated as owned. A resource
        tagged by a different controller is left alone.
        """
        tags = self.tags(arn)
        owner = tags.get(MANAGED_BY_TAG)
        if owner == self.managed_by:
            return True
        if owner:
            logger.info("Resource owned by another controller", arn=arn, managed_by=owner)
            return False

        logger.info("Backfilling management tag", arn=arn, managed_by=self.managed_by)
        self.api.tag_resource(arn, default_tags(self.settings))
        return True
