"""Deterministic remote names for desired-state resources.

Remote objects carry no stable identity besides their names, so these
functions must produce the same name on every pass for the same input.
"""

import random
import string
from datetime import datetime

MAX_NAMESPACE_LENGTH = 55
MAX_NAME_LENGTH = 55
RANDOM_SUFFIX_LENGTH = 10


def truncate(name: str, length: int) -> str:
    """Cut ``name`` to ``length`` characters and drop trailing dashes."""
    return name[:length].rstrip("-")


def service_name(name: str, namespace: str) -> str:
    """Remote service name for a route; the remote limit is 40 characters."""
    return f"{truncate(name, 20)}-{truncate(namespace, 18)}"


def listener_name(name: str, namespace: str, port: int, protocol: str) -> str:
    proto = "tls" if protocol == "TLS_PASSTHROUGH" else protocol.lower()
    return f"{truncate(name, 20)}-{truncate(namespace, 18)}-{port}-{proto}"


def rule_name(create_time: datetime, priority: int) -> str:
    return f"k8s-{int(create_time.timestamp())}-rule-{priority}"


def tg_name_prefix(spec, long_names: bool = False) -> str:
    """Prefix shared by every target group generated for ``spec``.

    Parameters
    ----------
    spec:
        A ``TargetGroupSpec``.
    long_names:
        Append the route name and VPC id, for clusters where several routes
        reference the same service.
    """
    prefix = "k8s-{}-{}".format(
        truncate(spec.tags.k8s_service_namespace, MAX_NAMESPACE_LENGTH),
        truncate(spec.tags.k8s_service_name, MAX_NAME_LENGTH),
    )
    if long_names:
        if spec.tags.k8s_route_name:
            prefix += f"-{truncate(spec.tags.k8s_route_name, 20)}"
        prefix += f"-{spec.vpc_id}"
    return prefix


def generate_tg_name(spec, long_names: bool = False) -> str:
    """Remote target group name: prefix plus a random suffix (limit 128)."""
    suffix = "".join(random.choice(string.ascii_lowercase) for _ in range(RANDOM_SUFFIX_LENGTH))
    return f"{tg_name_prefix(spec, long_names)}-{suffix}"
