"""
Stack Deployer

Runs one reconciliation pass: builds the managers and synthesizers for the
pass around a fresh ``ReconciliationCache`` and invokes them in dependency
order. The first phase that fails stops the pass; its error is raised so the
caller can requeue the whole stack.
"""

from typing import Callable, List, Optional, Tuple

from .cache import ReconciliationCache
from .cloud.base import NetworkingAPI
from .config import ControllerSettings, get_config
from .dns import DnsEndpointPublisher, NullDnsPublisher
from .errors import LatticeSyncError, is_retryable
from .logging import get_logger, reconciliation_pass, time_operation
from .managers import (
    AccessLogSubscriptionManager,
    IAMAuthPolicyManager,
    ListenerManager,
    RuleManager,
    ServiceManager,
    ServiceNetworkManager,
    TargetGroupManager,
    TargetsManager,
)
from .model import ServiceNetwork, ServiceNetworkStatus, Stack
from .sources import ServiceNetworkUsageResolver, TargetGroupSourceResolver
from .synthesizers import (
    AccessLogSubscriptionSynthesizer,
    IAMAuthPolicySynthesizer,
    ListenerSynthesizer,
    RuleSynthesizer,
    ServiceNetworkSynthesizer,
    ServiceSynthesizer,
    TargetGroupSynthesizer,
    TargetsSynthesizer,
)

logger = get_logger(__name__)

Phase = Tuple[str, Callable[[], None]]


class StackDeployer:
    """Converges stacks onto the remote control plane.

    Parameters
    ----------
    api:
        The remote capability every manager talks to.
    settings:
        Controller identity; defaults to the global configuration.
    dns_publisher:
        Receives (custom domain, assigned domain) once a service converges.
    source_resolver:
        Enables collection of unused target groups when given.
    usage_resolver:
        Enables collection of service networks no gateway declares when given.
    """

    def __init__(
        self,
        api: NetworkingAPI,
        settings: Optional[ControllerSettings] = None,
        dns_publisher: Optional[DnsEndpointPublisher] = None,
        source_resolver: Optional[TargetGroupSourceResolver] = None,
        usage_resolver: Optional[ServiceNetworkUsageResolver] = None,
    ) -> None:
        self.api = api
        self.settings = settings or get_config()
        self.dns_publisher = dns_publisher or NullDnsPublisher()
        self.source_resolver = source_resolver
        self.usage_resolver = usage_resolver

    def ensure_default_service_network(self) -> Optional[ServiceNetworkStatus]:
        """Create the configured default service network, if any.

        Failure is logged and reported as ``None``; the controller carries on
        without the default network.
        """
        name = self.settings.default_service_network
        if not name:
            return None
        manager = ServiceNetworkManager(self.api, self.settings, ReconciliationCache())
        try:
            return manager.create_or_update(ServiceNetwork(id=name, name=name))
        except LatticeSyncError as e:
            logger.info("Could not set up default service network, proceeding without it",
                        name=name, error=str(e))
            return None

    def deploy(self, stack: Stack) -> None:
        """Run every phase for ``stack``; raises the first phase error."""
        cache = ReconciliationCache()
        with reconciliation_pass(stack.stack_id) as pass_id:
            logger.info("Starting reconciliation pass", resources=len(stack))
            try:
                for name, run in self.phases(stack, cache):
                    with time_operation(logger, name, stack_id=stack.stack_id):
                        try:
                            run()
                        except LatticeSyncError as e:
                            logger.info("Reconciliation pass stopped", phase=name, retryable=is_retryable(e))
                            raise
            finally:
                cache.clear()
            logger.info("Reconciliation pass converged", pass_id=pass_id)

    def phases(self, stack: Stack, cache: ReconciliationCache) -> List[Phase]:
        """The ordered phases of one pass, all sharing ``cache``."""

        def build(manager_cls):
            return manager_cls(self.api, self.settings, cache)

        service_networks = ServiceNetworkSynthesizer(build(ServiceNetworkManager), stack, cache, self.usage_resolver)
        target_groups = TargetGroupSynthesizer(build(TargetGroupManager), stack, cache, self.source_resolver)
        return [
            ("service_network", service_networks.synthesize),
            ("target_group", target_groups.synthesize),
            ("targets", TargetsSynthesizer(build(TargetsManager), stack, cache).synthesize),
            ("service", ServiceSynthesizer(build(ServiceManager), stack, cache, self.dns_publisher).synthesize),
            ("listener", ListenerSynthesizer(build(ListenerManager), stack, cache).synthesize),
            ("rule", RuleSynthesizer(build(RuleManager), stack, cache).synthesize),
            (
                "access_log_subscription",
                AccessLogSubscriptionSynthesizer(build(AccessLogSubscriptionManager), stack, cache).synthesize,
            ),
            ("iam_auth_policy", IAMAuthPolicySynthesizer(build(IAMAuthPolicyManager), stack, cache).synthesize),
            ("target_group_delete", target_groups.synthesize_delete),
            ("target_group_unused_delete", target_groups.synthesize_unused_delete),
            ("service_network_unused_delete", service_networks.synthesize_unused_delete),
        ]
