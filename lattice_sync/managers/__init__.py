"""
Resource Managers for lattice_sync

One manager per resource kind. Each owns the convergence algorithm for its
kind: find-or-create, update-in-place decisions and the handling of remote
statuses that are still transitioning.
"""

from .access_log import AccessLogSubscriptionManager
from .auth_policy import IAMAuthPolicyManager
from .base import BaseManager
from .listener import ListenerManager
from .rule import RuleManager, is_action_equal, is_match_equal, next_available_priority
from .service import ServiceManager, diff_service_networks
from .service_network import ServiceNetworkManager
from .target_group import TargetGroupListing, TargetGroupManager, default_health_check
from .targets import TargetsManager

__all__ = [
    "BaseManager",
    "ServiceNetworkManager",
    "ServiceManager",
    "ListenerManager",
    "RuleManager",
    "TargetGroupManager",
    "TargetsManager",
    "AccessLogSubscriptionManager",
    "IAMAuthPolicyManager",
    "TargetGroupListing",
    "default_health_check",
    "diff_service_networks",
    "is_match_equal",
    "is_action_equal",
    "next_available_priority",
]
