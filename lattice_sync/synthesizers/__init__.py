"""
Synthesizers for lattice_sync

One synthesizer per resource kind. A synthesizer walks every resource of its
kind in the stack, drives the matching manager, writes statuses back and
removes remote objects the stack no longer wants.
"""

from .base import BaseSynthesizer
from .listener import ListenerSynthesizer
from .policy import AccessLogSubscriptionSynthesizer, IAMAuthPolicySynthesizer
from .rule import RuleSynthesizer
from .service import ServiceSynthesizer
from .service_network import ServiceNetworkSynthesizer
from .target_group import TargetGroupSynthesizer
from .targets import TargetsSynthesizer

__all__ = [
    "BaseSynthesizer",
    "ServiceNetworkSynthesizer",
    "TargetGroupSynthesizer",
    "TargetsSynthesizer",
    "ServiceSynthesizer",
    "ListenerSynthesizer",
    "RuleSynthesizer",
    "AccessLogSubscriptionSynthesizer",
    "IAMAuthPolicySynthesizer",
]
